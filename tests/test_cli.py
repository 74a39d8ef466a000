"""Tests for the command line entry point."""

from __future__ import annotations

import json

from PIL import Image

from art_primitive.cli import main


def _write_input(tmp_path) -> str:
    path = tmp_path / "in.png"
    img = Image.new("RGB", (12, 8), (20, 40, 60))
    img.paste((240, 200, 10), (0, 0, 6, 8))
    img.save(path)
    return str(path)


def test_cli_writes_image_and_json(tmp_path, capsys) -> None:
    out = tmp_path / "out.png"
    shapes = tmp_path / "shapes.json"

    code = main([_write_input(tmp_path), "-o", str(out), "--shapes", "3",
                 "--mutations", "10", "--seed", "7", "--kinds", "rectangle,ellipse",
                 "--json", str(shapes)])

    assert code == 0
    assert Image.open(out).size == (12, 8)
    payload = json.loads(shapes.read_text(encoding="utf-8"))
    assert payload["seed"] == 7
    assert payload["size"] == [12, 8]
    assert len(payload["shapes"]) <= 3
    assert "[OK] Wrote image to" in capsys.readouterr().out


def test_cli_resizes_with_dx(tmp_path) -> None:
    out = tmp_path / "out.png"

    code = main([_write_input(tmp_path), "-o", str(out), "--shapes", "1",
                 "--mutations", "2", "--dx", "6", "--seed", "1"])

    assert code == 0
    assert Image.open(out).size == (6, 4)


def test_cli_reports_bad_config(tmp_path, capsys) -> None:
    code = main([_write_input(tmp_path), "-o", str(tmp_path / "x.png"),
                 "--kinds", "hexagon"])

    assert code == 2
    assert "hexagon" in capsys.readouterr().err


def test_cli_reports_unreadable_input(tmp_path, capsys) -> None:
    bogus = tmp_path / "bogus.png"
    bogus.write_text("not an image", encoding="utf-8")

    code = main([str(bogus), "-o", str(tmp_path / "x.png")])

    assert code == 2
    assert "Cannot read image" in capsys.readouterr().err
