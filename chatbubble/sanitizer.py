import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x1f]")
_WHITESPACE = re.compile(r"\s+")


def sanitize(s: Optional[str]) -> str:
    """Flattens user text to a single line safe to embed in a prompt."""
    if not s:
        return ""
    text = str(s).replace("\r", " ")
    text = _CONTROL_CHARS.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()
