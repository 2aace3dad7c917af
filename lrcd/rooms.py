"""Room membership for the LRC hub.

Rooms are created on the first ``/join`` that names them and pruned as soon as
their last member leaves. A pruned room comes back as a fresh, empty room the
next time someone joins it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .session import Session


class Room:
    """A named set of sessions that receive each other's broadcasts."""

    def __init__(self, name: str) -> None:
        self._name = name
        # dict keys as an insertion-ordered set: broadcast order is join order.
        self._members: dict[Session, None] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def members(self) -> list[Session]:
        return list(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, session: object) -> bool:
        return session in self._members

    def __repr__(self) -> str:
        return f"Room({self._name!r}, members={len(self._members)})"

    def add(self, session: Session) -> None:
        self._members[session] = None

    def discard(self, session: Session) -> None:
        self._members.pop(session, None)

    def broadcast(
        self,
        outgoing: list[tuple[Session, str]],
        line: str,
        *,
        exclude: Session | None = None,
    ) -> int:
        """Queue `line` for every member except `exclude`. Returns recipients."""
        count = 0
        for member in self._members:
            if member is exclude:
                continue
            outgoing.append((member, line))
            count += 1
        return count


class RoomRegistry:
    """Maps room names to Room objects; at most one Room per name."""

    def __init__(self) -> None:
        self.log = logging.getLogger("lrcd.rooms")
        self.rooms: dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, name: object) -> bool:
        return name in self.rooms

    def get(self, name: str) -> Room | None:
        return self.rooms.get(name)

    def get_or_create(self, name: str) -> Room:
        room = self.rooms.get(name)
        if room is None:
            room = Room(name)
            self.rooms[name] = room
            self.log.debug("Room created room=%s", name)
        return room

    def add_member(self, name: str, session: Session) -> Room:
        """Add a session to a room, creating the room if needed."""
        room = self.get_or_create(name)
        room.add(session)
        return room

    def remove_member(self, room: Room, session: Session) -> None:
        """Remove a session from a room, pruning the room once it is empty."""
        room.discard(session)
        if not room and self.rooms.get(room.name) is room:
            self.rooms.pop(room.name, None)
            self.log.debug("Room pruned room=%s", room.name)

    def clear_all(self) -> None:
        self.rooms.clear()

    def get_stats(self) -> dict[str, Any]:
        rooms_total = len(self.rooms)
        memberships = sum(len(r) for r in self.rooms.values())
        top_rooms = sorted(
            ((name, len(room)) for name, room in self.rooms.items()),
            key=lambda x: (-x[1], x[0]),
        )[:5]
        return {
            "rooms_total": rooms_total,
            "memberships": memberships,
            "top_rooms": top_rooms,
        }
