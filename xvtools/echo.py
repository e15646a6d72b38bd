"""Print the arguments separated by spaces."""

from __future__ import annotations

import sys
from typing import Sequence

__all__ = ["echo", "main"]


def echo(args: Sequence[str]) -> str:
    """Return the text echo writes for *args*; nothing at all for no args."""
    return " ".join(args) + "\n" if args else ""


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    sys.stdout.write(echo(args))
    return 0