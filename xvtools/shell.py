"""Parser for the shell's command language.

A line is made of commands separated by ``;`` (sequence), ``&`` (run in
the background) and ``|`` (pipe). A command is a list of words with
``<``, ``>`` and ``>>`` redirections, or a parenthesised line followed
by redirections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Union

from .layout import OpenFlag

__all__ = [
    "MAXARGS",
    "ShellSyntaxError",
    "ExecCmd",
    "RedirCmd",
    "PipeCmd",
    "ListCmd",
    "BackCmd",
    "Command",
    "Token",
    "Parser",
    "parse_command",
    "gettoken",
]

MAXARGS = 10

_WHITESPACE = " \t\r\n\v"
_SYMBOLS = "<|>&;()"


class ShellSyntaxError(ValueError):
    """The command line cannot be parsed."""

    def __init__(self, message: str, leftovers: str = "") -> None:
        super().__init__(message)
        self.leftovers = leftovers


@dataclass
class ExecCmd:
    """Run a program with arguments; ``argv[0]`` names the program."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run *cmd* with file descriptor *fd* opened on *file* with *mode*."""

    cmd: "Command"
    file: str
    mode: int
    fd: int


@dataclass
class PipeCmd:
    """Connect the output of *left* to the input of *right*."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run *left*, wait for it, then run *right*."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run *cmd* without waiting for it."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


class Token(NamedTuple):
    """A token: its kind, its text and the position after it.

    The kind is ``"a"`` for a word, ``"+"`` for ``>>``, the symbol itself
    for the other operators, and ``""`` at the end of the line.
    """

    kind: str
    text: str
    pos: int


def _skip_space(line: str, pos: int) -> int:
    while pos < len(line) and line[pos] in _WHITESPACE:
        pos += 1
    return pos


def gettoken(line: str, pos: int) -> Token:
    """Read the token of *line* at *pos*, skipping white space around it."""
    start = _skip_space(line, pos)
    s = start
    if s >= len(line):
        kind = ""
    else:
        c = line[s]
        if c in "|();&<":
            kind = c
            s += 1
        elif c == ">":
            kind = ">"
            s += 1
            if s < len(line) and line[s] == ">":
                kind = "+"
                s += 1
        else:
            kind = "a"
            while (
                s < len(line)
                and line[s] not in _WHITESPACE
                and line[s] not in _SYMBOLS
            ):
                s += 1
    return Token(kind, line[start:s], _skip_space(line, s))


_REDIRECTIONS = {
    "<": (OpenFlag.RDONLY, 0),
    ">": (OpenFlag.WRONLY | OpenFlag.CREATE | OpenFlag.TRUNC, 1),
    "+": (OpenFlag.WRONLY | OpenFlag.CREATE, 1),
}


class Parser:
    """Recursive-descent parser for one command line."""

    def __init__(self, line: str) -> None:
        self.line = line
        self.pos = 0

    def _peek(self, toks: str) -> bool:
        self.pos = _skip_space(self.line, self.pos)
        return self.pos < len(self.line) and self.line[self.pos] in toks

    def _next(self) -> Token:
        tok = gettoken(self.line, self.pos)
        self.pos = tok.pos
        return tok

    def parse(self) -> Command:
        """Parse the whole line, raising ShellSyntaxError on leftovers."""
        cmd = self._parseline()
        self._peek("")
        if self.pos != len(self.line):
            rest = self.line[self.pos :]
            raise ShellSyntaxError(f"syntax (leftovers: {rest})", rest)
        return cmd

    def _parseline(self) -> Command:
        cmd = self._parsepipe()
        while self._peek("&"):
            self._next()
            cmd = BackCmd(cmd)
        if self._peek(";"):
            self._next()
            cmd = ListCmd(cmd, self._parseline())
        return cmd

    def _parsepipe(self) -> Command:
        cmd = self._parseexec()
        if self._peek("|"):
            self._next()
            cmd = PipeCmd(cmd, self._parsepipe())
        return cmd

    def _parseredirs(self, cmd: Command) -> Command:
        while self._peek("<>"):
            op = self._next()
            target = self._next()
            if target.kind != "a":
                raise ShellSyntaxError("missing file for redirection")
            mode, fd = _REDIRECTIONS[op.kind]
            cmd = RedirCmd(cmd, target.text, int(mode), fd)
        return cmd

    def _parseblock(self) -> Command:
        if not self._peek("("):
            raise ShellSyntaxError("parseblock")
        self._next()
        cmd = self._parseline()
        if not self._peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self._next()
        return self._parseredirs(cmd)

    def _parseexec(self) -> Command:
        if self._peek("("):
            return self._parseblock()
        exec_cmd = ExecCmd()
        ret = self._parseredirs(exec_cmd)
        while not self._peek("|)&;"):
            tok = self._next()
            if tok.kind == "":
                break
            if tok.kind != "a":
                raise ShellSyntaxError("syntax")
            exec_cmd.argv.append(tok.text)
            if len(exec_cmd.argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            ret = self._parseredirs(ret)
        return ret


def parse_command(line: str) -> Command:
    """Parse one command line into a command tree."""
    return Parser(line).parse()