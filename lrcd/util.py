from __future__ import annotations


def _normalize_token(value, max_chars: int) -> str | None:
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    if max_chars > 0 and len(s) > int(max_chars):
        return None

    # Names travel as single space-separated tokens in response lines.
    if any(ch.isspace() for ch in s) or "\x00" in s:
        return None

    return s


def normalize_nick(value, *, max_chars: int = 32) -> str | None:
    return _normalize_token(value, max_chars)


def normalize_room(value, *, max_chars: int = 64) -> str | None:
    return _normalize_token(value, max_chars)
