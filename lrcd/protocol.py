from __future__ import annotations

import enum
from dataclasses import dataclass

from .constants import COMMANDS, ESCAPE_PREFIX, RESPONSES, WIRE_ENCODING


class LineKind(enum.Enum):
    EMPTY = "empty"
    COMMAND = "command"
    MESSAGE = "message"
    UNKNOWN_COMMAND = "unknown_command"


@dataclass(frozen=True)
class ParsedLine:
    kind: LineKind
    command: str | None = None
    args: str = ""
    text: str = ""


def parse_line(line: str) -> ParsedLine:
    """Classify one client line as a command, chat text, or an unknown command.

    Surrounding whitespace is ignored. A line starting with ``//`` is chat
    text with one leading slash removed.
    """
    s = line.strip()
    if not s:
        return ParsedLine(LineKind.EMPTY)

    parts = s.split(maxsplit=1)
    word = parts[0]
    rest = parts[1] if len(parts) > 1 else ""

    if word in COMMANDS:
        return ParsedLine(LineKind.COMMAND, command=word, args=rest)

    if s.startswith(ESCAPE_PREFIX):
        return ParsedLine(LineKind.MESSAGE, text=s[1:])

    if s.startswith("/"):
        return ParsedLine(LineKind.UNKNOWN_COMMAND, command=word, args=rest)

    return ParsedLine(LineKind.MESSAGE, text=s)


def make_line(kind: str, *fields: str) -> str:
    if kind not in RESPONSES:
        raise ValueError(f"unknown response kind {kind!r}")
    parts = [kind]
    parts.extend(str(f) for f in fields if f is not None and str(f) != "")
    return " ".join(parts)


def encode_line(line: str) -> bytes:
    return (line + "\n").encode(WIRE_ENCODING)


def decode_line(raw: bytes) -> str:
    return raw.decode(WIRE_ENCODING, "replace")
