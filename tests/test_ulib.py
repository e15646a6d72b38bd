import io

from xvtools.ulib import atoi, gets, strcmp


def test_atoi_plain_number():
    assert atoi("123") == 123


def test_atoi_stops_at_non_digit():
    assert atoi("12ab") == 12


def test_atoi_no_sign_or_space():
    assert atoi("-5") == 0
    assert atoi(" 7") == 0
    assert atoi("") == 0


def test_atoi_bytes():
    assert atoi(b"42") == 42


def test_strcmp_equal():
    assert strcmp("abc", "abc") == 0


def test_strcmp_ordering():
    assert strcmp("a", "b") < 0
    assert strcmp("b", "a") > 0


def test_strcmp_prefix_difference():
    assert strcmp("abc", "ab") == ord("c")
    assert strcmp("ab", "abc") == -ord("c")


def test_strcmp_unsigned_bytes():
    assert strcmp(b"\xff", b"a") > 0


def test_strcmp_stops_at_nul():
    assert strcmp("ab\0x", "ab\0y") == 0


def test_gets_reads_one_line():
    stream = io.StringIO("hello\nworld")
    assert gets(stream, 100) == "hello\n"
    assert gets(stream, 100) == "world"
    assert gets(stream, 100) == ""


def test_gets_respects_limit():
    stream = io.StringIO("hello\n")
    assert gets(stream, 4) == "hel"
    assert gets(stream, 4) == "lo\n"


def test_gets_stops_at_carriage_return():
    stream = io.StringIO("ab\rcd")
    assert gets(stream, 100) == "ab\r"


def test_gets_bytes_stream():
    stream = io.BytesIO(b"xy\nz")
    assert gets(stream, 100) == b"xy\n"


def test_gets_tiny_limit_reads_nothing():
    stream = io.StringIO("abc")
    assert gets(stream, 1) == ""
    assert stream.read() == "abc"