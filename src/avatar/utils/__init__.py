"""Avatar utilities module."""

from avatar.utils.logging import setup_logging, get_logger
from avatar.utils.text import remove_tags, truncate_answer

__all__ = [
    "setup_logging",
    "get_logger",
    "remove_tags",
    "truncate_answer",
]
