"""Minimal formatted output understanding %d, %u, %x, %p, %s and %%."""

from __future__ import annotations

import re
import sys
from typing import IO, Any, Iterator

__all__ = ["format", "fprintf", "printf"]

_DIGITS = "0123456789ABCDEF"
_SPEC = re.compile(r"%(ll[dux]|l[dux]|[dupxs%]|.?)", re.DOTALL)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= 1 << 31 else value


def _printint(value: int, base: int, signed: bool) -> str:
    xx = _to_int32(int(value))
    negative = signed and xx < 0
    x = -xx if negative else xx & 0xFFFFFFFF
    digits = []
    while True:
        digits.append(_DIGITS[x % base])
        x //= base
        if x == 0:
            break
    if negative:
        digits.append("-")
    return "".join(reversed(digits))


def _printptr(value: int) -> str:
    return "0x" + "".join(
        _DIGITS[(int(value) >> shift) & 0xF] for shift in range(60, -4, -4)
    )


def _next_arg(args: Iterator[Any]) -> Any:
    try:
        return next(args)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _convert(spec: str, args: Iterator[Any]) -> str:
    if spec == "":
        return ""
    if spec == "%":
        return "%"
    if spec == "p":
        return _printptr(_next_arg(args))
    if spec == "s":
        s = _next_arg(args)
        if s is None:
            return "(null)"
        if isinstance(s, (bytes, bytearray)):
            return bytes(s).decode("latin-1")
        return str(s)
    kind = spec[-1]
    if spec.rstrip("dux") in ("", "l", "ll") and kind in "dux":
        base = 16 if kind == "x" else 10
        return _printint(_next_arg(args), base, kind == "d")
    return "%" + spec


def format(fmt: str, *args: Any) -> str:
    """Return *fmt* with its conversions replaced by *args*.

    Unknown conversions are copied with their ``%`` to draw attention;
    integer conversions work on 32-bit values, ``%p`` on 64-bit ones.
    """
    it = iter(args)
    return _SPEC.sub(lambda m: _convert(m.group(1), it), fmt)


def fprintf(stream: IO[str], fmt: str, *args: Any) -> None:
    """Write the formatted text to *stream*."""
    stream.write(format(fmt, *args))


def printf(fmt: str, *args: Any) -> None:
    """Write the formatted text to standard output."""
    fprintf(sys.stdout, fmt, *args)