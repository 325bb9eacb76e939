"""Tests for the wattbeat-level CLI."""

import json

import numpy as np
import pytest

from wattbeat.cli import main


@pytest.fixture
def prices_file(tmp_path, year_prices):
    path = tmp_path / "prices.txt"
    np.savetxt(path, year_prices[: 24 * 60])
    return path


def test_cli_prints_summary(prices_file, capsys):
    main([str(prices_file), "--columns", "500", "-d", "easy"])
    out = capsys.readouterr().out

    assert "Hash:" in out
    assert "Samples: 1440" in out


def test_cli_writes_manifest(prices_file, tmp_path):
    output = tmp_path / "level.json"
    main([str(prices_file), "--columns", "500", "-o", str(output)])

    with open(output) as f:
        manifest = json.load(f)
    assert manifest["metadata"]["n_columns"] == 500
    assert manifest["metadata"]["difficulty"] == "normal"


def test_cli_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "missing.txt")])

    assert excinfo.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_cli_insufficient_data(tmp_path, capsys):
    path = tmp_path / "short.txt"
    np.savetxt(path, np.arange(10, dtype=float))

    with pytest.raises(SystemExit) as excinfo:
        main([str(path)])

    assert excinfo.value.code == 1
    assert "Range too small" in capsys.readouterr().err


def test_cli_non_numeric_file(tmp_path, capsys):
    path = tmp_path / "prices.csv"
    path.write_text("date,price\n2025-01-01,abc\n")

    with pytest.raises(SystemExit) as excinfo:
        main([str(path)])

    assert excinfo.value.code == 1
    assert "Could not read prices" in capsys.readouterr().err


def test_cli_height_too_small(prices_file, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([str(prices_file), "--columns", "500", "--height", "10"])

    assert excinfo.value.code == 1
    assert "Error:" in capsys.readouterr().err
