import pytest

from lrcd.framing import LineFramer, LineTooLong


def test_single_line() -> None:
    f = LineFramer()
    f.feed(b"/nick alice\n")
    assert f.next_line() == b"/nick alice"
    assert f.next_line() is None
    assert len(f) == 0


def test_line_split_across_feeds() -> None:
    f = LineFramer()
    f.feed(b"/ni")
    assert f.next_line() is None
    f.feed(b"ck ali")
    assert f.next_line() is None
    f.feed(b"ce\n")
    assert f.next_line() == b"/nick alice"
    assert f.next_line() is None


def test_multiple_lines_in_one_feed() -> None:
    f = LineFramer()
    f.feed(b"one\ntwo\nthr")
    assert list(f.lines()) == [b"one", b"two"]
    f.feed(b"ee\n")
    assert list(f.lines()) == [b"three"]


def test_trailing_carriage_return_is_stripped() -> None:
    f = LineFramer()
    f.feed(b"hello\r\nworld\n")
    assert f.next_line() == b"hello"
    assert f.next_line() == b"world"


def test_only_one_carriage_return_is_stripped() -> None:
    f = LineFramer()
    f.feed(b"x\r\r\n")
    assert f.next_line() == b"x\r"


def test_empty_lines_are_distinct() -> None:
    f = LineFramer()
    f.feed(b"\n\r\nhi\n")
    assert list(f.lines()) == [b"", b"", b"hi"]


def test_consumed_bytes_are_discarded() -> None:
    f = LineFramer()
    for i in range(100):
        f.feed(b"line %d\n" % i)
        assert f.next_line() == b"line %d" % i
    f.feed(b"partial")
    assert len(f) == len(b"partial")


def test_limit_applies_to_unterminated_remainder() -> None:
    f = LineFramer(max_line_bytes=8)
    f.feed(b"12345678")
    f.ensure_within_limit()
    f.feed(b"9")
    with pytest.raises(LineTooLong):
        f.ensure_within_limit()


def test_limit_ignores_completed_lines() -> None:
    f = LineFramer(max_line_bytes=8)
    f.feed(b"a long line well past the limit\nok")
    assert f.next_line() == b"a long line well past the limit"
    f.ensure_within_limit()
    assert len(f) == 2
