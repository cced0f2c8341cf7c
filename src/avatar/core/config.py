"""Configuration management for the avatar.

Loads configuration from YAML files with support for:
- Default configuration (bundled with package)
- User configuration (~/.config/avatar/config.yaml)
- Path expansion (~, environment variables)
"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from avatar.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class BehaviorConfig:
    """Conversation behavior of the avatar."""

    max_answer_length: int = 255
    restart_interval: float = 30.0  # Seconds in ERROR before restarting
    pipeline: str = "thunderstone"
    dialog_name: str = "xray"
    # Pipelines whose answers are announced with a template instead of spoken
    provider_templates: dict[str, str] = field(default_factory=lambda: {
        "woodside": "Here is what I found in the {0} corpus.",
    })

    def __post_init__(self) -> None:
        # Templates are formatted with the pipeline name as {0}
        for pipeline, template in self.provider_templates.items():
            try:
                str(template).format(pipeline)
            except (AttributeError, KeyError, IndexError, ValueError) as e:
                raise ValueError(
                    f"Invalid provider template for {pipeline!r}: {template!r} ({e!r})"
                ) from e


@dataclass
class PhrasesConfig:
    """Canned phrases, one list per category."""

    greeting: list[str] = field(default_factory=lambda: [
        "Hello", "Yo", "Whats up", "Hey you", "Hows it hanging",
    ])
    farewell: list[str] = field(default_factory=lambda: [
        "Goodbye", "Laters", "Later Taters", "See ya", "Bye Bye",
        "Take Care", "Peace Out",
    ])
    failure: list[str] = field(default_factory=lambda: [
        "I'm sorry, but I didn't understand your question.", "Huh",
        "I didn't catch that", "What did you say again?", "Come again",
        "What was that", "pardon",
    ])
    error: list[str] = field(default_factory=lambda: [
        "Oh bugger, something has gone wrong.", "Oh Shoot", "Oh no",
        "Oh Fudge",
    ])


@dataclass
class AppearanceConfig:
    """Color and animation speed per conversation state and per mood.

    Keys are enum member names, values are ``{"color": "#RRGGBB",
    "speed": float}`` mappings.
    """

    states: dict[str, dict[str, Any]] = field(default_factory=lambda: {
        "CONNECTING": {"color": "#F1F1F2", "speed": 0.0},
        "SLEEPING_LISTENING": {"color": "#F1F1F2", "speed": 0.0},
        "LISTENING": {"color": "#00A6A0", "speed": 1.0},
        "THINKING": {"color": "#EE3E96", "speed": 1.0},
        "ANSWERING": {"color": "#8CC63F", "speed": 1.0},
        "DID_NOT_UNDERSTAND": {"color": "#F0B400", "speed": 1.0},
        "ERROR": {"color": "#FF0000", "speed": 0.0},
    })
    moods: dict[str, dict[str, Any]] = field(default_factory=lambda: {
        "SLEEPING": {"color": "#FFFFFF", "speed": 0.0},
        "IDLE": {"color": "#F1F1F2", "speed": 1.0},
        "INTERESTED": {"color": "#83D1F5", "speed": 1.1},
        "URGENT": {"color": "#DD731C", "speed": 2.0},
        "UPSET": {"color": "#D9182D", "speed": 1.5},
        "SHY": {"color": "#F389AF", "speed": 0.9},
    })


@dataclass
class DialogServiceConfig:
    """Scripted dialog service connection."""

    base_url: str = "https://gateway.watsonplatform.net/dialog/api"
    timeout: float = 30.0


@dataclass
class QAServiceConfig:
    """Question-answering service connection."""

    base_url: str = "http://localhost:8080"
    timeout: float = 30.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = "~/.local/share/avatar/logs/avatar.log"
    console: bool = True
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class AvatarConfig:
    """Root configuration for the avatar."""

    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    phrases: PhrasesConfig = field(default_factory=PhrasesConfig)
    appearance: AppearanceConfig = field(default_factory=AppearanceConfig)
    dialog: DialogServiceConfig = field(default_factory=DialogServiceConfig)
    qa: QAServiceConfig = field(default_factory=QAServiceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _expand_path(path: str) -> str:
    """Expand ~ and environment variables in path."""
    return os.path.expandvars(os.path.expanduser(path))


def _dict_to_config(data: dict[str, Any], config_class: type) -> Any:
    """Convert a dictionary to a dataclass config, handling nested configs."""
    if not data:
        return config_class()

    field_types = {f.name: f.type for f in config_class.__dataclass_fields__.values()}

    kwargs = {}
    for key, value in data.items():
        if key not in field_types:
            continue

        field_type = field_types[key]

        if isinstance(value, dict):
            if hasattr(field_type, "__dataclass_fields__"):
                value = _dict_to_config(value, field_type)

        if isinstance(value, str) and ("~" in value or "$" in value):
            value = _expand_path(value)

        kwargs[key] = value

    return config_class(**kwargs)


def _merge_dicts(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def _project_dir() -> Path:
    """Directory holding the bundled config/ folder (src layout)."""
    return Path(__file__).resolve().parents[3]


def _config_search_path() -> list[Path]:
    """Candidate config files, lowest precedence first."""
    return [
        _project_dir() / "config" / "default.yaml",
        Path("/etc/avatar/config.yaml"),
        Path.home() / ".config" / "avatar" / "config.yaml",
        Path.cwd() / "avatar.yaml",
    ]


def _find_config_files() -> list[Path]:
    """Find the configuration files that exist, in order of precedence."""
    return [path for path in _config_search_path() if path.is_file()]


def load_config(config_path: Optional[str] = None) -> AvatarConfig:
    """Load avatar configuration from files.

    Configuration is loaded in this order (later overrides earlier):
    1. Built-in defaults
    2. Default config (bundled)
    3. System config (/etc/avatar/config.yaml)
    4. User config (~/.config/avatar/config.yaml)
    5. Local config (./avatar.yaml)
    6. Explicit config_path if provided

    Mappings are merged key by key, so a file may override a single
    state's color without restating the whole appearance table.

    Args:
        config_path: Optional explicit path to a config file.

    Returns:
        Loaded AvatarConfig instance.
    """
    merged_config: dict[str, Any] = asdict(get_default_config())

    config_files = _find_config_files()

    if config_path:
        explicit_path = Path(_expand_path(config_path))
        if explicit_path.exists():
            config_files.append(explicit_path)

    for config_file in config_files:
        try:
            with open(config_file) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("config_file_skipped", path=str(config_file), error=str(e))
            continue
        if data and "avatar" in data:
            merged_config = _merge_dicts(merged_config, data["avatar"])

    return _dict_to_config(merged_config, AvatarConfig)


def get_default_config() -> AvatarConfig:
    """Get the default configuration without loading from files.

    Returns:
        Default AvatarConfig instance.
    """
    return AvatarConfig()
