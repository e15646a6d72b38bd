"""Simple grep supporting only the ^ . * $ operators."""

from __future__ import annotations

import sys
from typing import IO, Sequence

__all__ = ["match", "grep", "main"]

_BUFSIZE = 1024


def match(regex: str, text: str) -> bool:
    """Return whether *regex* matches anywhere in *text*."""
    if regex.startswith("^"):
        return _matchhere(regex, 1, text, 0)
    return any(_matchhere(regex, 0, text, i) for i in range(len(text) + 1))


def _matchhere(regex: str, ri: int, text: str, ti: int) -> bool:
    if ri == len(regex):
        return True
    if ri + 1 < len(regex) and regex[ri + 1] == "*":
        return _matchstar(regex[ri], regex, ri + 2, text, ti)
    if regex[ri] == "$" and ri + 1 == len(regex):
        return ti == len(text)
    if ti < len(text) and regex[ri] in (".", text[ti]):
        return _matchhere(regex, ri + 1, text, ti + 1)
    return False


def _matchstar(c: str, regex: str, ri: int, text: str, ti: int) -> bool:
    while True:
        if _matchhere(regex, ri, text, ti):
            return True
        if ti < len(text) and (text[ti] == c or c == "."):
            ti += 1
        else:
            return False


def grep(pattern: str, stream: IO[str], out: IO[str]) -> int:
    """Write the newline-terminated lines of *stream* matching *pattern*.

    A final line without a newline is not considered, and reading stops
    when a single line fills the whole buffer. Returns the lines written.
    """
    pending = ""
    count = 0
    while True:
        chunk = stream.read(_BUFSIZE - 1 - len(pending))
        if not chunk:
            break
        *lines, pending = (pending + chunk).split("\n")
        for line in lines:
            if match(pattern, line):
                out.write(line + "\n")
                count += 1
    return count


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        sys.stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern, paths = args[0], args[1:]
    if not paths:
        grep(pattern, sys.stdin, sys.stdout)
        return 0
    for path in paths:
        try:
            stream = open(path, encoding="latin-1", newline="")
        except OSError:
            sys.stdout.write(f"grep: cannot open {path}\n")
            return 1
        with stream:
            grep(pattern, stream, sys.stdout)
    return 0