import pytest

from lrcd.rooms import Room
from lrcd.session import Inside, Outside, Session, SessionManager, SessionState


def test_new_session_is_init() -> None:
    s = Session()
    assert s.state is SessionState.INIT
    assert s.nickname is None
    assert s.room is None


def test_nickname_moves_init_to_outside() -> None:
    s = Session()
    s.set_nickname("alice")
    assert s.state is SessionState.OUTSIDE
    assert s.status == Outside("alice")


def test_enter_and_exit_room() -> None:
    s = Session()
    s.set_nickname("alice")
    room = Room("lobby")
    s.enter(room)
    assert s.state is SessionState.INSIDE
    assert s.room is room

    s.set_nickname("alicia")
    assert s.status == Inside("alicia", room)

    assert s.exit_room() is room
    assert s.state is SessionState.OUTSIDE
    assert s.room is None


def test_illegal_transitions_raise() -> None:
    s = Session()
    with pytest.raises(RuntimeError):
        s.enter(Room("lobby"))
    s.set_nickname("alice")
    with pytest.raises(RuntimeError):
        s.exit_room()
    s.close()
    assert s.state is SessionState.CLOSED
    with pytest.raises(RuntimeError):
        s.set_nickname("bob")


def test_sessions_compare_by_identity() -> None:
    a, b = Session(), Session()
    a.set_nickname("x")
    b.set_nickname("x")
    assert a != b
    assert len({a, b}) == 2
    assert a.session_id != b.session_id


def test_queue_line_appends_newline() -> None:
    s = Session()
    n = s.queue_line("OK")
    s.queue_line("BYE")
    assert n == 3
    assert bytes(s.outbound) == b"OK\nBYE\n"


def test_manager_stats_without_sockets() -> None:
    mgr = SessionManager()
    assert mgr.get_stats() == {"total": 0, "init": 0, "outside": 0, "inside": 0}
    assert not mgr.is_live(Session())
    assert mgr.on_connection_closed(Session()) is False
