import pytest

from lrcd.nicks import NickDirectory, NicknameInUse
from lrcd.rooms import RoomRegistry
from lrcd.session import Session


def test_room_created_on_first_reference() -> None:
    reg = RoomRegistry()
    a = Session()
    room = reg.add_member("lobby", a)
    assert reg.get("lobby") is room
    assert a in room
    assert reg.get_or_create("lobby") is room


def test_empty_room_is_pruned_and_recreated() -> None:
    reg = RoomRegistry()
    a = Session()
    room = reg.add_member("lobby", a)
    reg.remove_member(room, a)
    assert "lobby" not in reg
    assert len(reg) == 0

    again = reg.add_member("lobby", a)
    assert again is not room
    assert again.name == "lobby"
    assert again.members == [a]


def test_broadcast_excludes_sender_in_join_order() -> None:
    reg = RoomRegistry()
    a, b, c = Session(), Session(), Session()
    for s in (a, b, c):
        reg.add_member("r", s)
    room = reg.get("r")
    assert room is not None

    outgoing: list = []
    n = room.broadcast(outgoing, "LEFT x", exclude=b)
    assert n == 2
    assert outgoing == [(a, "LEFT x"), (c, "LEFT x")]


def test_room_stats() -> None:
    reg = RoomRegistry()
    reg.add_member("a", Session())
    reg.add_member("b", Session())
    reg.add_member("b", Session())
    stats = reg.get_stats()
    assert stats["rooms_total"] == 2
    assert stats["memberships"] == 3
    assert stats["top_rooms"][0] == ("b", 2)


def test_nick_claim_and_conflict() -> None:
    d = NickDirectory()
    a, b = Session(), Session()
    d.claim(a, "alice")
    assert d.lookup("alice") is a

    with pytest.raises(NicknameInUse):
        d.claim(b, "alice")
    assert d.lookup("alice") is a

    # Re-claiming one's own nickname is fine.
    d.claim(a, "alice", "alice")
    assert d.lookup("alice") is a


def test_nick_rename_frees_old_name() -> None:
    d = NickDirectory()
    a, b = Session(), Session()
    d.claim(a, "alice")
    d.claim(a, "alicia", "alice")
    assert "alice" not in d
    assert d.lookup("alicia") is a

    d.claim(b, "alice")
    assert d.lookup("alice") is b
    assert d.nicknames() == ["alice", "alicia"]


def test_nick_release_only_by_owner() -> None:
    d = NickDirectory()
    a, b = Session(), Session()
    d.claim(a, "alice")
    d.release(b, "alice")
    assert d.lookup("alice") is a
    d.release(a, "alice")
    assert d.lookup("alice") is None
    d.release(a, None)
