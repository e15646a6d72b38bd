"""Small C-style string helpers used by the user programs."""

from __future__ import annotations

from typing import IO, AnyStr

__all__ = ["atoi", "strcmp", "gets"]


def _as_bytes(s: str | bytes) -> bytes:
    return s.encode("utf-8") if isinstance(s, str) else bytes(s)


def atoi(s: str | bytes) -> int:
    """Return the value of the leading decimal digits of *s*.

    No sign or leading white space is accepted; a string that does not
    start with a digit yields 0.
    """
    text = s.decode("latin-1") if isinstance(s, (bytes, bytearray)) else s
    value = 0
    for ch in text:
        if not "0" <= ch <= "9":
            break
        value = value * 10 + (ord(ch) - ord("0"))
    return value


def strcmp(p: str | bytes, q: str | bytes) -> int:
    """Compare two NUL-terminated strings as unsigned bytes.

    Returns the difference of the first differing bytes, or 0 when the
    strings are equal up to their terminators. The end of the sequence
    counts as a terminator.
    """
    a = _as_bytes(p).split(b"\0", 1)[0] + b"\0"
    b = _as_bytes(q).split(b"\0", 1)[0] + b"\0"
    for x, y in zip(a, b):
        if x != y or x == 0:
            return x - y
    return 0


def gets(stream: IO[AnyStr], limit: int) -> AnyStr:
    """Read one line of at most ``limit - 1`` characters from *stream*.

    Reading stops after a newline or carriage return, which is kept, or
    at end of input. An empty result means end of input.
    """
    empty = stream.read(0)
    pieces = []
    while len(pieces) + 1 < limit:
        c = stream.read(1)
        if not c:
            break
        pieces.append(c)
        if c in ("\n", "\r", b"\n", b"\r"):
            break
    return empty.join(pieces)