"""Slash command handling for the LRC hub."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .constants import (
    C_BYE,
    C_JOIN,
    C_LEAVE,
    C_NICK,
    C_PRIV,
    R_BYE,
    R_JOINED,
    R_NEWNICK,
    R_PRIVATE,
)
from .nicks import NicknameInUse
from .protocol import make_line
from .session import Session, SessionState
from .util import normalize_nick, normalize_room

if TYPE_CHECKING:
    from .router import MessageRouter


class CommandHandler:
    """Implements /nick, /join, /leave, /priv and /bye.

    The router has already checked that the command is allowed in the
    session's current state.
    """

    def __init__(self, router: MessageRouter) -> None:
        self.router = router
        self.log = router.log

    def handle(
        self,
        session: Session,
        command: str,
        args: str,
        outgoing: list[tuple[Session, str]],
    ) -> bool:
        """Run one command. Returns False when the connection should close."""
        if command == C_NICK:
            self._nick(session, args, outgoing)
        elif command == C_JOIN:
            self._join(session, args, outgoing)
        elif command == C_LEAVE:
            self._leave(session, outgoing)
        elif command == C_PRIV:
            self._priv(session, args, outgoing)
        elif command == C_BYE:
            self._bye(session, outgoing)
            return False
        else:
            self.router.messages.emit_error(outgoing, session, f"unknown command {command}")
        return True

    def _nick(self, session: Session, args: str, outgoing: list[tuple[Session, str]]) -> None:
        messages = self.router.messages
        parts = args.split()
        if len(parts) != 1:
            messages.emit_error(outgoing, session, "usage: /nick <name>")
            return

        new_nick = normalize_nick(parts[0], max_chars=self.router.config.nick_max_chars)
        if new_nick is None:
            messages.emit_error(outgoing, session, "invalid nickname")
            return

        old_nick = session.nickname
        if old_nick == new_nick:
            messages.emit_ok(outgoing, session)
            return

        try:
            self.router.nicks.claim(session, new_nick, old_nick)
        except NicknameInUse:
            messages.emit_error(outgoing, session, "nickname in use")
            return

        session.set_nickname(new_nick)
        self.router.stats.inc("nick_changes")
        self.log.info("NICK session=%s old=%r new=%r", session.label, old_nick, new_nick)

        messages.emit_ok(outgoing, session)

        room = session.room
        if room is not None and old_nick is not None:
            room.broadcast(outgoing, make_line(R_NEWNICK, old_nick, new_nick), exclude=session)

    def _join(self, session: Session, args: str, outgoing: list[tuple[Session, str]]) -> None:
        messages = self.router.messages
        parts = args.split()
        if len(parts) != 1:
            messages.emit_error(outgoing, session, "usage: /join <room>")
            return

        name = normalize_room(parts[0], max_chars=self.router.config.max_room_name_len)
        if name is None:
            messages.emit_error(outgoing, session, "invalid room name")
            return

        current = session.room
        if current is not None and current.name == name:
            messages.emit_ok(outgoing, session)
            return

        if session.state is SessionState.INSIDE:
            self.router.leave_room(session, outgoing)

        room = self.router.rooms.add_member(name, session)
        session.enter(room)
        self.router.stats.inc("joins")
        self.log.info("JOIN session=%s room=%s members=%s", session.label, name, len(room))

        messages.emit_ok(outgoing, session)
        room.broadcast(outgoing, make_line(R_JOINED, session.nickname), exclude=session)

    def _leave(self, session: Session, outgoing: list[tuple[Session, str]]) -> None:
        self.router.leave_room(session, outgoing)
        self.router.messages.emit_ok(outgoing, session)

    def _priv(self, session: Session, args: str, outgoing: list[tuple[Session, str]]) -> None:
        messages = self.router.messages
        parts = args.split(maxsplit=1)
        if len(parts) != 2 or not parts[1].strip():
            messages.emit_error(outgoing, session, "usage: /priv <name> <text>")
            return

        target_nick, text = parts[0], parts[1].strip()
        target = self.router.nicks.lookup(target_nick)
        if target is None:
            messages.emit_error(outgoing, session, f"no such nickname {target_nick}")
            return

        messages.queue(outgoing, target, R_PRIVATE, session.nickname or "", text)
        messages.emit_ok(outgoing, session)
        self.router.stats.inc("privs_delivered")
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug("PRIV session=%s to=%s", session.label, target.label)

    def _bye(self, session: Session, outgoing: list[tuple[Session, str]]) -> None:
        self.router.messages.queue(outgoing, session, R_BYE)
        self.log.info("BYE session=%s", session.label)
        self.router.handle_disconnect(session, outgoing)
