import io

import pytest

from xvtools.wc import Counts, main, wc


@pytest.mark.parametrize(
    "data",
    [b"", b"hello world\nfoo\n", b"  lead\ttab\r\nx\vy", b"a" * 1500 + b"\n b"],
)
def test_counts_match_independent_measures(data):
    c = wc(io.BytesIO(data))
    assert c.chars == len(data)
    assert c.lines == data.count(b"\n")
    assert c.words == len(data.split())


def test_nul_separates_words():
    assert wc(io.BytesIO(b"a\0b")) == Counts(0, 2, 3)


def test_text_stream():
    c = wc(io.StringIO("one two\nthree\n"))
    assert (c.lines, c.words) == (2, 3)


def test_main_file(tmp_path, capsys):
    path = tmp_path / "f"
    data = b"x y\nz\n"
    path.write_bytes(data)
    assert main([str(path)]) == 0
    c = wc(io.BytesIO(data))
    assert capsys.readouterr().out == f"{c.lines} {c.words} {c.chars} {path}\n"


def test_main_cannot_open(tmp_path, capsys):
    missing = str(tmp_path / "nope")
    assert main([missing]) == 1
    assert capsys.readouterr().out == f"wc: cannot open {missing}\n"


def test_main_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"a b\n")))
    assert main([]) == 0
    assert capsys.readouterr().out == "1 2 4 \n"