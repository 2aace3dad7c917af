"""Response queueing helpers for the LRC hub."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import R_ERROR, R_OK
from .protocol import make_line
from .stats import StatsManager

if TYPE_CHECKING:
    from .session import Session


class MessageHelper:
    """
    Builds response lines and appends them to an outgoing list.

    The outgoing list holds ``(session, line)`` pairs; the event loop turns
    them into socket writes once the current line has been fully processed.
    """

    def __init__(self, stats: StatsManager) -> None:
        self.stats = stats

    def queue_line(
        self, outgoing: list[tuple[Session, str]], session: Session, line: str
    ) -> None:
        outgoing.append((session, line))

    def queue(
        self,
        outgoing: list[tuple[Session, str]],
        session: Session,
        kind: str,
        *fields: str,
    ) -> None:
        self.queue_line(outgoing, session, make_line(kind, *fields))

    def emit_ok(
        self,
        outgoing: list[tuple[Session, str]],
        session: Session,
        detail: str | None = None,
    ) -> None:
        self.queue(outgoing, session, R_OK, detail or "")

    def emit_error(
        self,
        outgoing: list[tuple[Session, str]],
        session: Session,
        text: str | None = None,
    ) -> None:
        self.stats.inc("errors_sent")
        self.queue(outgoing, session, R_ERROR, text or "")
