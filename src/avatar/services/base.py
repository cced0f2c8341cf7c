"""Shared plumbing for the avatar's HTTP service adapters.

Credentials are read from the environment, optionally populated from
``.env`` files, and sent as HTTP basic auth.
"""

import os
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv

from avatar.core.errors import RequestRejected, ServiceError


def _load_env_files() -> None:
    """Load environment variables from .env files.

    Searches for .env in:
    1. Current working directory
    2. Project root (where pyproject.toml is)
    3. User's home config directory (~/.config/avatar/)
    """
    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return

    current = Path.cwd()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            project_env = parent / ".env"
            if project_env.exists():
                load_dotenv(project_env)
                return

    user_env = Path.home() / ".config" / "avatar" / ".env"
    if user_env.exists():
        load_dotenv(user_env)


# Load .env files on module import
_load_env_files()


def get_auth(service: str) -> Optional[httpx.BasicAuth]:
    """Basic auth for a service from AVATAR_<SERVICE>_USERNAME/PASSWORD.

    Args:
        service: Service name, e.g. ``"dialog"`` or ``"qa"``.

    Returns:
        BasicAuth, or None when no username is configured.
    """
    prefix = f"AVATAR_{service.upper()}"
    username = os.environ.get(f"{prefix}_USERNAME")
    if not username:
        return None
    return httpx.BasicAuth(username, os.environ.get(f"{prefix}_PASSWORD", ""))


def check_response(response: httpx.Response, service: str) -> None:
    """Raise RequestRejected for a non-success response."""
    if response.status_code >= 400:
        raise RequestRejected(
            f"{service} returned {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
            retryable=response.status_code >= 500 or response.status_code == 429,
        )


def parse_json(response: httpx.Response, service: str) -> dict:
    """Decode a JSON object body or raise ServiceError."""
    try:
        data = response.json()
    except ValueError as e:
        raise ServiceError(f"{service} returned invalid JSON: {e}")
    if not isinstance(data, dict):
        raise ServiceError(f"{service} returned {type(data).__name__}, expected object")
    return data
