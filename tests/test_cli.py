"""
tests/test_cli.py
Tests for hexbloop/cli.py commands that need no external tools
"""

import pytest
from PIL import Image

from hexbloop import __version__
from hexbloop.cli import main
from hexbloop.counters import CounterStore


def output_lines(capsys):
    return [line for line in capsys.readouterr().out.splitlines() if line.strip()]


class TestCli:
    """Tests for main() subcommands"""

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])

    def test_name_seeded(self, capsys):
        assert main(["name", "--count", "3", "--seed", "42", "--style", "blackmetal"]) == 0
        first = output_lines(capsys)
        main(["name", "--count", "3", "--seed", "42", "--style", "blackmetal"])
        assert output_lines(capsys) == first
        assert len(first) == 3

    def test_name_verbose_shows_style(self, capsys):
        main(["name", "--seed", "1", "--style", "witchhouse", "-v"])
        assert output_lines(capsys)[0].endswith("witchhouse")

    def test_moon(self, capsys):
        assert main(["moon", "--at", "2024-03-25T07:00:00"]) == 0
        out = "\n".join(output_lines(capsys))
        assert "Phase:" in out
        assert "morning" in out
        assert "overdrive" in out

    def test_artwork(self, tmp_path, capsys):
        path = tmp_path / "cover.png"
        assert main(["artwork", "-o", str(path), "--seed", "3", "--size", "64",
                     "--style", "cyber-matrix"]) == 0
        with Image.open(path) as img:
            assert img.size == (64, 64)
        assert "cyber-matrix" in capsys.readouterr().out

    def test_preview_custom_names(self, tmp_path, capsys):
        files = [str(tmp_path / "a.wav"), str(tmp_path / "b.flac")]
        assert main(["preview", *files, "--naming", "custom", "--prefix", "demo", "-f", "wav"]) == 0
        assert output_lines(capsys) == ["a.wav  ->  demo_001.wav", "b.flac  ->  demo_002.wav"]

    def test_bad_config_file(self, tmp_path, capsys):
        code = main(["preview", "a.wav", "--config", str(tmp_path / "missing.json")])
        assert code == 2
        assert "ERROR" in capsys.readouterr().out

    def test_counters_show_and_reset(self, capsys):
        CounterStore.default().next("global")
        main(["counters"])
        assert output_lines(capsys)[0].split() == ["global", "1"]
        assert main(["counters", "--reset"]) == 0
        assert CounterStore.default().snapshot() == {}

    def test_inspect_missing(self, tmp_path, capsys):
        assert main(["inspect", str(tmp_path / "nope.mp3")]) == 1

    def test_log_file(self, tmp_path):
        log = tmp_path / "debug.log"
        main(["--log-file", str(log), "moon"])
        assert log.exists()

    def test_moon_bad_timestamp(self, capsys):
        assert main(["moon", "--at", "last tuesday"]) == 2
        assert "ERROR" in capsys.readouterr().out
