from __future__ import annotations

import enum
import itertools
import logging
import socket
from dataclasses import dataclass
from typing import Any, Union

from .framing import LineFramer
from .protocol import encode_line
from .rooms import Room


class SessionState(enum.Enum):
    INIT = "init"
    OUTSIDE = "outside"
    INSIDE = "inside"
    CLOSED = "closed"


@dataclass(frozen=True)
class Init:
    """Connected, no nickname yet."""


@dataclass(frozen=True)
class Outside:
    nickname: str


@dataclass(frozen=True)
class Inside:
    nickname: str
    room: Room


@dataclass(frozen=True)
class Closed:
    """Disconnect cleanup has run; the session ignores further input."""


Status = Union[Init, Outside, Inside, Closed]

_STATE_OF = {
    Init: SessionState.INIT,
    Outside: SessionState.OUTSIDE,
    Inside: SessionState.INSIDE,
    Closed: SessionState.CLOSED,
}

_session_ids = itertools.count(1)


class Session:
    """
    Server-side state for one client connection.

    Equality and hashing are by identity, so a Session can be a set member or
    dict key regardless of its current nickname or room. ``status`` is one of
    the variants above; transitions go through the methods below, which refuse
    combinations the protocol does not allow.
    """

    def __init__(
        self,
        sock: socket.socket | None = None,
        addr: Any = None,
        *,
        max_line_bytes: int = 4096,
    ) -> None:
        self.session_id = next(_session_ids)
        self.sock = sock
        self.addr = addr
        self.framer = LineFramer(max_line_bytes)
        self.outbound = bytearray()
        # Set once /bye is processed: flush what is queued, then close.
        self.closing = False
        self.status: Status = Init()

    def __repr__(self) -> str:
        return f"Session(id={self.session_id}, state={self.state.value}, nick={self.nickname!r})"

    @property
    def state(self) -> SessionState:
        return _STATE_OF[type(self.status)]

    @property
    def nickname(self) -> str | None:
        st = self.status
        if isinstance(st, (Outside, Inside)):
            return st.nickname
        return None

    @property
    def room(self) -> Room | None:
        st = self.status
        if isinstance(st, Inside):
            return st.room
        return None

    @property
    def label(self) -> str:
        """Short identifier for log lines."""
        nick = self.nickname
        return f"#{self.session_id}({nick})" if nick else f"#{self.session_id}"

    def set_nickname(self, nick: str) -> None:
        st = self.status
        if isinstance(st, Inside):
            self.status = Inside(nick, st.room)
        elif isinstance(st, (Init, Outside)):
            self.status = Outside(nick)
        else:
            raise RuntimeError("session is closed")

    def enter(self, room: Room) -> None:
        nick = self.nickname
        if nick is None:
            raise RuntimeError("cannot join a room without a nickname")
        self.status = Inside(nick, room)

    def exit_room(self) -> Room:
        st = self.status
        if not isinstance(st, Inside):
            raise RuntimeError("session is not inside a room")
        self.status = Outside(st.nickname)
        return st.room

    def close(self) -> None:
        self.status = Closed()

    def queue_line(self, line: str) -> int:
        payload = encode_line(line)
        self.outbound.extend(payload)
        return len(payload)


class SessionManager:
    """
    Owns the set of live sessions for the event loop.

    Sessions are keyed by their socket so readiness events can be routed back
    to the right session.
    """

    def __init__(self) -> None:
        self.log = logging.getLogger("lrcd.session")
        self.sessions: dict[socket.socket, Session] = {}

    def __len__(self) -> int:
        return len(self.sessions)

    def on_connection_accepted(
        self, sock: socket.socket, addr: Any, *, max_line_bytes: int
    ) -> Session:
        session = Session(sock, addr, max_line_bytes=max_line_bytes)
        self.sessions[sock] = session
        self.log.info("Session created session=%s peer=%s", session.label, addr)
        return session

    def on_connection_closed(self, session: Session) -> bool:
        """Forget a session. Returns False if it was already gone."""
        if session.sock is None:
            return False
        return self.sessions.pop(session.sock, None) is not None

    def is_live(self, session: Session) -> bool:
        return session.sock is not None and self.sessions.get(session.sock) is session

    def clear_all(self) -> list[Session]:
        """Forget every session and return them for teardown."""
        sessions = list(self.sessions.values())
        self.sessions.clear()
        return sessions

    def get_stats(self) -> dict[str, Any]:
        total = len(self.sessions)
        by_state = {s: 0 for s in SessionState}
        for sess in self.sessions.values():
            by_state[sess.state] += 1
        return {
            "total": total,
            "init": by_state[SessionState.INIT],
            "outside": by_state[SessionState.OUTSIDE],
            "inside": by_state[SessionState.INSIDE],
        }
