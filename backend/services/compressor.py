"""Page text compression before scoring."""
import re
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def compress(text: Optional[str], max_chars: int) -> str:
    """
    Collapse whitespace runs, trim, and truncate page text.

    Args:
        text: Raw page text (None is treated as empty)
        max_chars: Maximum number of characters to keep

    Returns:
        Single-line text of at most max_chars characters
    """
    if not text:
        return ""
    cleaned = _WHITESPACE.sub(" ", text).strip()
    return cleaned[:max(max_chars, 0)]
