from __future__ import annotations

import logging

from .commands import CommandHandler
from .config import ServerConfig
from .constants import C_BYE, C_JOIN, C_LEAVE, C_NICK, C_PRIV, R_LEFT, R_MESSAGE
from .messages import MessageHelper
from .nicks import NickDirectory
from .protocol import LineKind, make_line, parse_line
from .rooms import RoomRegistry
from .session import Session, SessionState
from .stats import StatsManager

# Commands each state accepts; anything else gets ERROR.
_ALLOWED_COMMANDS: dict[SessionState, frozenset[str]] = {
    SessionState.INIT: frozenset({C_NICK, C_BYE}),
    SessionState.OUTSIDE: frozenset({C_NICK, C_BYE, C_JOIN, C_PRIV}),
    SessionState.INSIDE: frozenset({C_NICK, C_BYE, C_JOIN, C_LEAVE, C_PRIV}),
}


class MessageRouter:
    """
    Protocol engine for the LRC hub.

    This class is responsible for:
    - Classifying each complete line (command, chat text, unknown command)
    - Enforcing which commands each session state accepts
    - Fanning chat text out to the sender's room
    - Disconnect cleanup (room removal, LEFT notice, nickname release)

    It never performs I/O. Responses are appended to the caller's
    ``outgoing`` list as ``(session, line)`` pairs.
    """

    def __init__(
        self,
        rooms: RoomRegistry,
        nicks: NickDirectory,
        config: ServerConfig | None = None,
        stats: StatsManager | None = None,
    ) -> None:
        self.rooms = rooms
        self.nicks = nicks
        self.config = config or ServerConfig()
        self.stats = stats or StatsManager()
        self.log = logging.getLogger("lrcd.router")
        self.messages = MessageHelper(self.stats)
        self.commands = CommandHandler(self)

    def route_line(
        self,
        session: Session,
        line: str,
        outgoing: list[tuple[Session, str]],
    ) -> bool:
        """
        Process one complete line from `session`.

        Returns False once the session has said /bye and its connection
        should be closed after the queued output is flushed.
        """
        if session.state is SessionState.CLOSED:
            return False

        parsed = parse_line(line)
        if parsed.kind is LineKind.EMPTY:
            return True

        self.stats.inc("lines_in")
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "RX session=%s state=%s kind=%s line=%r",
                session.label,
                session.state.value,
                parsed.kind.value,
                line,
            )

        if parsed.kind is LineKind.UNKNOWN_COMMAND:
            self.messages.emit_error(outgoing, session, f"unknown command {parsed.command}")
            return True

        if parsed.kind is LineKind.MESSAGE:
            self._handle_message(session, parsed.text, outgoing)
            return True

        command = parsed.command or ""
        if command not in _ALLOWED_COMMANDS[session.state]:
            self.messages.emit_error(
                outgoing,
                session,
                f"{command} not allowed while {session.state.value}",
            )
            return True

        return self.commands.handle(session, command, parsed.args, outgoing)

    def _handle_message(
        self,
        session: Session,
        text: str,
        outgoing: list[tuple[Session, str]],
    ) -> None:
        room = session.room
        nick = session.nickname
        if room is None or nick is None:
            self.messages.emit_error(outgoing, session, "join a room first")
            return

        line = make_line(R_MESSAGE, nick, text)
        recipients = room.broadcast(outgoing, line, exclude=session)
        # Echo goes straight to the sender, never through the room broadcast.
        self.messages.queue_line(outgoing, session, line)

        self.stats.inc("msgs_forwarded")
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "Forwarded session=%s room=%s recipients=%s",
                session.label,
                room.name,
                recipients,
            )

    def leave_room(
        self,
        session: Session,
        outgoing: list[tuple[Session, str]],
    ) -> None:
        """Take `session` out of its room and tell the remaining members."""
        nick = session.nickname
        room = session.exit_room()
        self.rooms.remove_member(room, session)
        room.broadcast(outgoing, make_line(R_LEFT, nick), exclude=session)
        self.stats.inc("leaves")
        self.log.info("LEAVE session=%s room=%s", session.label, room.name)

    def handle_disconnect(
        self,
        session: Session,
        outgoing: list[tuple[Session, str]],
    ) -> None:
        """
        Release everything `session` holds.

        Used for /bye and for transport failures alike; safe to call twice.
        """
        if session.state is SessionState.CLOSED:
            return

        if session.state is SessionState.INSIDE:
            self.leave_room(session, outgoing)

        self.nicks.release(session, session.nickname)
        session.close()
