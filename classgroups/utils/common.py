"""
Common helpers shared by the engine, the store and the routes.
"""

import re
import time

_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: object) -> str:
    """Trim and collapse internal whitespace. None/blank -> ''."""
    if name is None:
        return ""
    return _WHITESPACE.sub(" ", str(name)).strip()


def name_key(name: str) -> str:
    """Case-insensitive lookup key for a (normalized) name."""
    return name.lower()


def names_match(a: str, b: str) -> bool:
    return name_key(a) == name_key(b)


def normalize_token(value: object) -> str | None:
    """Device ids and tokens: trimmed string, blank -> None."""
    if value is None:
        return None
    token = str(value).strip()
    return token or None


def now_ms() -> int:
    """Milliseconds since the epoch, the timestamp unit stored on students."""
    return int(time.time() * 1000)
