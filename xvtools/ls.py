"""List files and directory contents."""

from __future__ import annotations

import os
import stat
import sys
from typing import IO, Sequence

from .layout import FileType

__all__ = ["DIRSIZ", "fmtname", "ls", "main"]

DIRSIZ = 14
_BUFSIZE = 512


def fmtname(path: str) -> str:
    """The last component of *path*, blank-padded to ``DIRSIZ`` characters."""
    name = path[path.rfind("/") + 1 :]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _file_type(st: os.stat_result) -> FileType:
    if stat.S_ISDIR(st.st_mode):
        return FileType.DIR
    if stat.S_ISREG(st.st_mode):
        return FileType.FILE
    return FileType.DEVICE


def _line(path: str, st: os.stat_result) -> str:
    return f"{fmtname(path)} {int(_file_type(st))} {st.st_ino} {st.st_size}\n"


def ls(path: str, out: IO[str] | None = None, err: IO[str] | None = None) -> None:
    """Describe *path*, or each entry of it when it is a directory."""
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    try:
        st = os.stat(path)
    except OSError:
        err.write(f"ls: cannot open {path}\n")
        return
    if _file_type(st) is not FileType.DIR:
        out.write(_line(path, st))
        return
    if len(path) + 1 + DIRSIZ + 1 > _BUFSIZE:
        out.write("ls: path too long\n")
        return
    try:
        names = sorted(os.listdir(path))
    except OSError:
        err.write(f"ls: cannot open {path}\n")
        return
    for name in [".", "..", *names]:
        full = f"{path}/{name[:DIRSIZ]}"
        try:
            entry = os.stat(full)
        except OSError:
            out.write(f"ls: cannot stat {full}\n")
            continue
        out.write(_line(full, entry))


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    for path in args or ["."]:
        ls(path)
    return 0