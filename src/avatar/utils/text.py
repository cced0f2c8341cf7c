"""Text helpers for answers spoken by the avatar.

Answers from the question-answering service may carry inline markup
(highlighting, line breaks). The avatar never speaks markup, and long
answers are cut to a displayable length.
"""

import re

# Any angle-bracketed tag, opening or closing, with or without attributes
TAG_PATTERN = re.compile(r"<[^>]*>")


def remove_tags(text: str) -> str:
    """Remove markup tags from text.

    Args:
        text: Text possibly containing tags such as ``<b>`` or ``<br/>``.

    Returns:
        Text with every tag removed.
    """
    return TAG_PATTERN.sub("", text)


def truncate_answer(text: str, max_length: int) -> str:
    """Strip tags from an answer and cut it to a maximum length.

    Tags are removed first so the result never exceeds ``max_length``
    characters of visible text.

    Args:
        text: Raw answer text.
        max_length: Maximum number of characters to keep.

    Returns:
        Displayable answer text.
    """
    answer = remove_tags(text)
    if len(answer) > max_length:
        answer = answer[:max_length]
    return answer
