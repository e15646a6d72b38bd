"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import IO, Sequence

__all__ = ["Counts", "wc", "main"]

# NUL separates words too.
_SEPARATORS = frozenset(" \r\t\n\v\0")


@dataclass(frozen=True)
class Counts:
    lines: int
    words: int
    chars: int


def wc(stream: IO) -> Counts:
    """Count the lines, words and characters readable from *stream*."""
    lines = words = chars = 0
    inword = False
    while True:
        chunk = stream.read(512)
        if not chunk:
            break
        if isinstance(chunk, (bytes, bytearray)):
            chunk = bytes(chunk).decode("latin-1")
        chars += len(chunk)
        lines += chunk.count("\n")
        for ch in chunk:
            if ch in _SEPARATORS:
                inword = False
            elif not inword:
                words += 1
                inword = True
    return Counts(lines, words, chars)


def _report(counts: Counts, name: str) -> None:
    sys.stdout.write(f"{counts.lines} {counts.words} {counts.chars} {name}\n")


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if not args:
            _report(wc(sys.stdin.buffer), "")
            return 0
        for path in args:
            try:
                stream = open(path, "rb")
            except OSError:
                sys.stdout.write(f"wc: cannot open {path}\n")
                return 1
            with stream:
                _report(wc(stream), path)
    except OSError:
        sys.stdout.write("wc: read error\n")
        return 1
    return 0