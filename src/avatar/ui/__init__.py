"""Avatar UI components.

Rich console host for interactive sessions.
"""

from avatar.ui.console import ConsoleDisplay, QuestionPanel, parse_command

__all__ = [
    "ConsoleDisplay",
    "QuestionPanel",
    "parse_command",
]
