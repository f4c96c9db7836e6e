"""Tests for the command-line interface."""

import io
import sys

import pytest

from cssvars.__main__ import main


def _run(monkeypatch, *args, stdin=None):
    monkeypatch.setattr(sys, "argv", ["cssvars", *args])
    if stdin is not None:
        monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    main()


@pytest.fixture
def stylesheet(tmp_path):
    path = tmp_path / "a.css"
    path.write_text(":root { --main: red; }\n.b { color: var(--main) }\n", encoding="utf-8")
    return path


def test_lists_definitions(monkeypatch, capsys, stylesheet):
    _run(monkeypatch, str(stylesheet))

    out = capsys.readouterr().out
    assert out == f"{stylesheet.resolve().as_uri()}:1:9 --main red :root\n"


def test_references(monkeypatch, capsys, stylesheet):
    _run(monkeypatch, str(stylesheet), "--references")

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[1].endswith(":2:13 --main var() .b")


def test_name_filter(monkeypatch, capsys, tmp_path):
    path = tmp_path / "t.css"
    path.write_text(":root { --a: 1 !important; --b: 2 }", encoding="utf-8")

    _run(monkeypatch, str(path), "--name=--a")

    assert capsys.readouterr().out.endswith(" --a 1 !important :root\n")


def test_language_from_extension(monkeypatch, capsys, tmp_path):
    path = tmp_path / "page.html"
    path.write_text('<div style="--gap: 2px"></div>', encoding="utf-8")

    _run(monkeypatch, str(path))

    assert capsys.readouterr().out.endswith(":1:13 --gap 2px inline-style\n")


def test_stdin(monkeypatch, capsys):
    _run(monkeypatch, "-", "--language", "html", stdin="<style>.x { --y: 1 }</style>")

    assert capsys.readouterr().out == "stdin:1:13 --y 1 .x\n"


def test_selector(monkeypatch, capsys, tmp_path):
    path = tmp_path / "page.html"
    path.write_text('<div id="app"><p class="x y">1</p><p>2</p></div>', encoding="utf-8")

    _run(monkeypatch, str(path), "--selector", "#app > p")

    assert capsys.readouterr().out == "p.x.y\np\n"


def test_invalid_selector_exits_2(monkeypatch, capsys, tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<p></p>", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, str(path), "--selector", "p[")

    assert excinfo.value.code == 2
    assert capsys.readouterr().err


def test_nothing_found_exits_1(monkeypatch, capsys, tmp_path):
    path = tmp_path / "empty.css"
    path.write_text(".a { color: red }", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, str(path))

    assert excinfo.value.code == 1
    assert capsys.readouterr().out == ""


def test_no_arguments_prints_help(monkeypatch, capsys):
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch)

    assert excinfo.value.code == 1
    assert "usage:" in capsys.readouterr().err
