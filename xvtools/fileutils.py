"""Small file and process commands: ln, rm, mkdir and kill."""

from __future__ import annotations

import os
import signal
import sys
from typing import Sequence

from .ulib import atoi

__all__ = ["ln_main", "rm_main", "mkdir_main", "kill_main"]

_KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)


def _args(argv: Sequence[str] | None) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


def ln_main(argv: Sequence[str] | None = None) -> int:
    """ln old new: create a hard link."""
    args = _args(argv)
    if len(args) != 2:
        sys.stderr.write("Usage: ln old new\n")
        return 1
    old, new = args
    try:
        os.link(old, new)
    except OSError:
        sys.stderr.write(f"link {old} {new}: failed\n")
    return 0


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        os.rmdir(path)
    else:
        os.unlink(path)


def rm_main(argv: Sequence[str] | None = None) -> int:
    """rm files...: remove files and empty directories, stopping at a failure."""
    args = _args(argv)
    if not args:
        sys.stderr.write("Usage: rm files...\n")
        return 1
    for path in args:
        try:
            _remove(path)
        except OSError:
            sys.stderr.write(f"rm: {path} failed to delete\n")
            break
    return 0


def mkdir_main(argv: Sequence[str] | None = None) -> int:
    """mkdir files...: create directories, stopping at a failure."""
    args = _args(argv)
    if not args:
        sys.stderr.write("Usage: mkdir files...\n")
        return 1
    for path in args:
        try:
            os.mkdir(path)
        except OSError:
            sys.stderr.write(f"mkdir: {path} failed to create\n")
            break
    return 0


def kill_main(argv: Sequence[str] | None = None) -> int:
    """kill pid...: kill each process; failures are ignored."""
    args = _args(argv)
    if not args:
        sys.stderr.write("usage: kill pid...\n")
        return 1
    for arg in args:
        pid = atoi(arg)
        if pid <= 0:
            continue
        try:
            os.kill(pid, _KILL_SIGNAL)
        except OSError:
            pass
    return 0