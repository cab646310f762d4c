from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from image_buffer import main


def test_formats_json_lists_concrete_formats(runner: CliRunner) -> None:
    result = runner.invoke(main, ["formats", "--json"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.output)
    assert [row["format"] for row in rows] == ["RGB8", "RGBA8", "RGB16", "RGBA16", "RGB32", "RGBA32"]
    assert rows[3] == {
        "format": "RGBA16",
        "channels": 4,
        "channel_size": 2,
        "pixel_size": 8,
        "alpha": True,
        "domain": "hdr",
    }


def test_formats_table_renders(runner: CliRunner) -> None:
    result = runner.invoke(main, ["formats"])
    assert result.exit_code == 0, result.output
    assert "Pixel formats" in result.output
    assert "RGBA32" in result.output


def test_tonemap_names(runner: CliRunner) -> None:
    result = runner.invoke(main, ["tonemap-names"])
    assert result.exit_code == 0, result.output
    assert result.output.split() == [
        "gamma_correction",
        "reinhard",
        "hejil_richard",
        "uncharted",
        "aces",
        "gran_turismo",
    ]


def test_curve_json(runner: CliRunner) -> None:
    result = runner.invoke(main, ["curve", "Gamma-Correction", "--samples", "3", "--max-value", "1", "--gamma", "1", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["config"]["gamma"] == 1.0
    assert [point["output"] for point in payload["points"]] == [0, 128, 255]
    assert [point["input"] for point in payload["points"]] == [0.0, 0.5, 1.0]


def test_curve_table_renders(runner: CliRunner) -> None:
    result = runner.invoke(main, ["curve", "aces"])
    assert result.exit_code == 0, result.output
    assert "8-bit" in result.output


def test_curve_rejects_unknown_operator(runner: CliRunner) -> None:
    result = runner.invoke(main, ["curve", "filmic"])
    assert result.exit_code == 2
    assert "unknown operator 'filmic'" in result.output


def test_curve_rejects_invalid_override(runner: CliRunner) -> None:
    result = runner.invoke(main, ["curve", "aces", "--gamma", "0"])
    assert result.exit_code == 1
    assert "gamma: must be greater than zero" in result.output


def test_sample_json_reports_buffer(runner: CliRunner) -> None:
    result = runner.invoke(main, ["sample", "--width", "2", "--height", "1", "--format", "rgb8", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["format"] == "RGB8"
    assert payload["bytes"] == 6
    assert payload["pixels"] == [
        {"x": 0, "y": 0, "value": [64, 128, 64]},
        {"x": 1, "y": 0, "value": [191, 128, 64]},
    ]


def test_sample_resize_and_tonemap(runner: CliRunner) -> None:
    result = runner.invoke(
        main,
        ["sample", "--format", "rgba32", "--resize", "2x3", "--filter", "bilinear", "--tonemap", "reinhard", "--json"],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert (payload["width"], payload["height"], payload["format"]) == (2, 3, "RGBA8")
    assert all(pixel["value"][3] == 255 for pixel in payload["pixels"])


def test_sample_table_renders(runner: CliRunner) -> None:
    result = runner.invoke(main, ["sample", "--width", "1", "--height", "1"])
    assert result.exit_code == 0, result.output
    assert "1x1 RGBA8" in result.output


def test_sample_reports_library_errors(runner: CliRunner) -> None:
    result = runner.invoke(main, ["sample", "--format", "rgb565"])
    assert result.exit_code == 1
    assert "unknown pixel format" in result.output
    result = runner.invoke(main, ["sample", "--tonemap", "filmic"])
    assert result.exit_code == 1
    assert "unknown tone mapping operator" in result.output


def test_sample_rejects_malformed_size(runner: CliRunner) -> None:
    result = runner.invoke(main, ["sample", "--resize", "wide"])
    assert result.exit_code == 2


def test_config_file_drives_defaults(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "image-buffer.toml"
    config_path.write_text(
        '[buffer]\ndefault_format = "RGB16"\n\n[cli]\njson_pretty = true\n',
        encoding="utf-8",
    )
    result = runner.invoke(main, ["--config", str(config_path), "sample", "--width", "1", "--height", "1", "--json"])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("{\n  ")
    assert json.loads(result.output)["format"] == "RGB16"


def test_invalid_config_file_is_reported(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "bad.toml"
    config_path.write_text("[tonemap]\ngamma = 0\n", encoding="utf-8")
    result = runner.invoke(main, ["--config", str(config_path), "formats"])
    assert result.exit_code == 1
    assert "Config parsing failed: tonemap.gamma" in result.output


def test_missing_config_file_is_reported(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(main, ["--config", str(tmp_path / "missing.toml"), "formats"])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_logging_is_configured_only_when_verbose(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    assert runner.invoke(main, ["formats", "--json"]).exit_code == 0
    assert calls == []

    assert runner.invoke(main, ["--verbose", "formats", "--json"]).exit_code == 0
    assert len(calls) == 1
    assert calls[0]["level"] == logging.DEBUG
