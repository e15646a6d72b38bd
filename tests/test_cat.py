import io

from xvtools.cat import cat, main


def test_cat_copies_everything():
    data = bytes(range(256)) * 9
    dst = io.BytesIO()
    assert cat(io.BytesIO(data), dst) == len(data)
    assert dst.getvalue() == data


def test_cat_empty():
    dst = io.BytesIO()
    assert cat(io.BytesIO(b""), dst) == 0
    assert dst.getvalue() == b""


class _BrokenWriter(io.RawIOBase):
    def writable(self):
        return True

    def write(self, b):
        raise OSError("disk full")


def test_cat_write_error():
    try:
        cat(io.BytesIO(b"data"), _BrokenWriter())
    except OSError as exc:
        assert str(exc) == "cat: write error"
    else:
        raise AssertionError("expected OSError")


def test_main_concatenates_files(tmp_path, capsysbinary):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"first\n")
    b.write_bytes(b"second\n")
    assert main([str(a), str(b)]) == 0
    assert capsysbinary.readouterr().out == b"first\nsecond\n"


def test_main_cannot_open(tmp_path, capsys):
    missing = str(tmp_path / "missing")
    assert main([missing]) == 1
    assert capsys.readouterr().err == f"cat: cannot open {missing}\n"


def test_main_stdin(monkeypatch, capsysbinary):
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"piped")))
    assert main([]) == 0
    assert capsysbinary.readouterr().out == b"piped"