"""Concatenate files to standard output."""

from __future__ import annotations

import sys
from typing import BinaryIO, Sequence

__all__ = ["cat", "main"]

_CHUNK = 512


def cat(src: BinaryIO, dst: BinaryIO) -> int:
    """Copy everything from *src* to *dst* and return the bytes copied."""
    total = 0
    while True:
        try:
            chunk = src.read(_CHUNK)
        except OSError as exc:
            raise OSError("cat: read error") from exc
        if not chunk:
            return total
        try:
            dst.write(chunk)
        except OSError as exc:
            raise OSError("cat: write error") from exc
        total += len(chunk)


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    out = sys.stdout.buffer
    try:
        if not args:
            cat(sys.stdin.buffer, out)
            return 0
        for path in args:
            try:
                stream = open(path, "rb")
            except OSError:
                sys.stderr.write(f"cat: cannot open {path}\n")
                return 1
            with stream:
                cat(stream, out)
    except OSError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    finally:
        out.flush()
    return 0