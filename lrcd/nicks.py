from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import Session


class NicknameInUse(Exception):
    def __init__(self, nick: str) -> None:
        super().__init__(f"nickname in use: {nick}")
        self.nick = nick


class NickDirectory:
    """
    Process-wide nickname ownership.

    A nickname maps to at most one live session. Claiming a new nickname
    releases the session's previous one in the same step.
    """

    def __init__(self) -> None:
        self._by_nick: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._by_nick)

    def __contains__(self, nick: object) -> bool:
        return nick in self._by_nick

    def lookup(self, nick: str) -> Session | None:
        return self._by_nick.get(nick)

    def owner_is_other(self, nick: str, session: Session) -> bool:
        owner = self._by_nick.get(nick)
        return owner is not None and owner is not session

    def claim(self, session: Session, new_nick: str, old_nick: str | None = None) -> None:
        """Register `new_nick` for `session`, releasing `old_nick`.

        Raises NicknameInUse if another session holds `new_nick`.
        """
        if self.owner_is_other(new_nick, session):
            raise NicknameInUse(new_nick)

        if old_nick is not None and old_nick != new_nick:
            self.release(session, old_nick)
        self._by_nick[new_nick] = session

    def release(self, session: Session, nick: str | None) -> None:
        """Drop `nick` if it is still owned by `session`."""
        if nick is None:
            return
        if self._by_nick.get(nick) is session:
            del self._by_nick[nick]

    def clear_all(self) -> None:
        self._by_nick.clear()

    def nicknames(self) -> list[str]:
        return sorted(self._by_nick)
