"""
tests/test_engines.py
Tests for hexbloop/engines.py - process runner, effects strategies, mastering commands

The runner tests use the current Python interpreter as the "external tool",
so they need neither sox nor ffmpeg.
"""

import sys
import threading
import time
from pathlib import Path

import pytest

from conftest import FakeRunner
from hexbloop.config import OutputSettings
from hexbloop.engines import (
    CancellationToken,
    ExternalCommand,
    FfmpegEffectsApproximation,
    ProcessRunner,
    SoxEffects,
    build_mastering_command,
    build_transcode_command,
    mastering_filter_graph,
    resolve_output_format,
    run_effects_chain,
    tool_status,
)
from hexbloop.errors import Cancelled, ExternalToolFailed, ExternalToolUnavailable
from hexbloop.params import CompandParams, EchoParams, EffectsParameters

PARAMS = EffectsParameters(
    overdrive=2.0,
    bass_gain_db=3.0,
    treble_gain_db=-1.5,
    echo=EchoParams(delay_sec=0.5, decay=0.4),
    compand=CompandParams(attack_sec=0.2, ratio=4.0),
)

COPY_SCRIPT = "import shutil, sys; shutil.copyfile(sys.argv[1], sys.argv[2])"
FAIL_SCRIPT = "import sys; sys.stderr.write('boom: bad header'); sys.exit(3)"
EMPTY_SCRIPT = "import sys; open(sys.argv[2], 'w').close()"
SLEEP_SCRIPT = "import time; time.sleep(30)"


def python_runner(**kwargs) -> ProcessRunner:
    return ProcessRunner(executables={"pytool": Path(sys.executable)}, **kwargs)


def python_command(script: str, src: Path, dst: Path) -> ExternalCommand:
    return ExternalCommand("pytool", ["-c", script, str(src), str(dst)], src, dst)


@pytest.fixture
def src(tmp_path):
    path = tmp_path / "in.wav"
    path.write_bytes(b"RIFF....WAVEdata")
    return path


class TestProcessRunner:
    """Tests for ProcessRunner.run"""

    def test_success(self, src, tmp_path):
        dst = tmp_path / "out.wav"
        python_runner().run(python_command(COPY_SCRIPT, src, dst))
        assert dst.read_bytes() == src.read_bytes()

    def test_nonzero_exit_carries_stderr(self, src, tmp_path):
        with pytest.raises(ExternalToolFailed) as exc_info:
            python_runner().run(python_command(FAIL_SCRIPT, src, tmp_path / "out.wav"))
        assert exc_info.value.returncode == 3
        assert "boom: bad header" in str(exc_info.value)
        assert exc_info.value.tool == "pytool"

    def test_empty_output_is_failure(self, src, tmp_path):
        with pytest.raises(ExternalToolFailed):
            python_runner().run(python_command(EMPTY_SCRIPT, src, tmp_path / "out.wav"))

    def test_missing_tool(self, src, tmp_path):
        runner = ProcessRunner(executables={"ghost": None})
        assert runner.available("ghost") is False
        with pytest.raises(ExternalToolUnavailable):
            runner.run(ExternalCommand("ghost", [], src, tmp_path / "out.wav"))

    def test_unstartable_path(self, src, tmp_path):
        runner = ProcessRunner(executables={"ghost": tmp_path / "no" / "such" / "binary"})
        with pytest.raises(ExternalToolUnavailable):
            runner.run(ExternalCommand("ghost", [], src, tmp_path / "out.wav"))

    def test_cancel_terminates_process(self, src, tmp_path):
        token = CancellationToken()
        timer = threading.Timer(0.3, token.cancel)
        timer.start()
        started = time.monotonic()
        try:
            with pytest.raises(Cancelled):
                python_runner().run(python_command(SLEEP_SCRIPT, src, tmp_path / "out.wav"), token)
        finally:
            timer.cancel()
        assert time.monotonic() - started < 10

    def test_already_cancelled_never_starts(self, src, tmp_path):
        token = CancellationToken()
        token.cancel()
        dst = tmp_path / "out.wav"
        with pytest.raises(Cancelled):
            python_runner().run(python_command(COPY_SCRIPT, src, dst), token)
        assert not dst.exists()

    def test_timeout(self, src, tmp_path):
        with pytest.raises(ExternalToolFailed, match="timed out"):
            python_runner(timeout_s=0.3).run(python_command(SLEEP_SCRIPT, src, tmp_path / "out.wav"))

    def test_tool_status_lists_both_tools(self):
        runner = ProcessRunner(executables={"sox": None, "ffmpeg": Path("/x/ffmpeg")})
        assert tool_status(runner) == [("sox", None), ("ffmpeg", Path("/x/ffmpeg"))]


class TestEffectsStrategies:
    """Tests for the sox chain and its ffmpeg approximation"""

    def test_sox_argv(self):
        cmd = SoxEffects().build(PARAMS, Path("in.wav"), Path("out.wav"))
        assert cmd.tool == "sox"
        assert cmd.argv == [
            "in.wav", "out.wav",
            "gain", "-n", "-1.5",
            "overdrive", "2.000", "2.5",
            "bass", "+3",
            "treble", "-1.5",
            "echo", "0.8", "0.88", "500.0", "0.400",
            "compand", "0.2000,0.6", "6:-70,-60,-20", "-2", "-90", "0.25",
            "rate", "44100",
            "dither",
        ]

    def test_ffmpeg_filter_graph(self):
        graph = FfmpegEffectsApproximation().filter_graph(PARAMS)
        assert graph == (
            "volume=-1.5dB,volume=2.000dB,asoftclip=type=tanh,volume=-2.000dB,"
            "bass=g=3.000,treble=g=-1.500,aecho=0.8:0.88:500.0:0.400,"
            "acompressor=threshold=-20dB:ratio=4.000:attack=200.00:release=250:makeup=2"
        )

    def test_ffmpeg_writes_pcm_wav(self):
        cmd = FfmpegEffectsApproximation().build(PARAMS, Path("in.mp3"), Path("out.wav"))
        assert cmd.tool == "ffmpeg"
        assert cmd.argv[-7:] == ["-ar", "44100", "-ac", "2", "-c:a", "pcm_s16le", "out.wav"]


class TestRunEffectsChain:
    """Tests for run_effects_chain fallback"""

    def test_sox_first(self, src, tmp_path):
        runner = FakeRunner()
        outcome = run_effects_chain(PARAMS, src, tmp_path / "fx.wav", runner)
        assert outcome.strategy == "sox"
        assert outcome.skipped == []
        assert runner.tools_run() == ["sox"]

    def test_falls_back_when_sox_missing(self, src, tmp_path):
        runner = FakeRunner(unavailable={"sox"})
        outcome = run_effects_chain(PARAMS, src, tmp_path / "fx.wav", runner)
        assert outcome.strategy == "ffmpeg-approximation"
        assert len(outcome.skipped) == 1
        assert outcome.skipped[0].startswith("sox:")
        assert (tmp_path / "fx.wav").exists()

    def test_falls_back_when_sox_fails(self, src, tmp_path):
        runner = FakeRunner(failing={"sox"})
        outcome = run_effects_chain(PARAMS, src, tmp_path / "fx.wav", runner)
        assert outcome.strategy == "ffmpeg-approximation"
        assert runner.tools_run() == ["sox", "ffmpeg"]

    def test_all_strategies_fail(self, src, tmp_path):
        runner = FakeRunner(unavailable={"sox"}, failing={"ffmpeg"})
        with pytest.raises(ExternalToolFailed, match="All effects strategies failed"):
            run_effects_chain(PARAMS, src, tmp_path / "fx.wav", runner)

    def test_cancel_does_not_fall_back(self, src, tmp_path):
        token = CancellationToken()
        token.cancel()
        runner = FakeRunner()
        with pytest.raises(Cancelled):
            run_effects_chain(PARAMS, src, tmp_path / "fx.wav", runner, token)
        assert runner.tools_run() == []


class TestOutputFormats:
    """Tests for resolve_output_format"""

    def test_mp3_uses_mp3_bitrate(self):
        fmt = resolve_output_format(OutputSettings(format="mp3", mp3_bitrate=192))
        assert (fmt.extension, fmt.codec, fmt.bitrate_kbps) == (".mp3", "libmp3lame", 192)

    def test_lossless_has_no_bitrate(self):
        assert resolve_output_format(OutputSettings(format="flac")).bitrate_kbps is None
        assert resolve_output_format(OutputSettings(format="wav")).codec == "pcm_s16le"

    def test_aac_quality(self):
        fmt = resolve_output_format(OutputSettings(format="aac", quality="medium"))
        assert fmt.extension == ".m4a"
        assert fmt.bitrate_kbps == 192

    @pytest.mark.parametrize("suffix,key", [(".aiff", "wav"), (".FLAC", "flac"), (".m4a", "aac"),
                                            (".ogg", "ogg"), (".xyz", "mp3")])
    def test_original(self, suffix, key):
        assert resolve_output_format(OutputSettings(format="original"), suffix).key == key

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            resolve_output_format(OutputSettings(format="opus"))


class TestMasteringCommands:
    """Tests for build_mastering_command / build_transcode_command"""

    def test_filter_graph(self):
        assert mastering_filter_graph() == (
            "equalizer=f=100:t=q:w=1:g=0.3,"
            "equalizer=f=800:t=q:w=1.2:g=0.5,"
            "equalizer=f=1600:t=q:w=1:g=0.4,"
            "equalizer=f=5000:t=q:w=1:g=0.3,"
            "acompressor=threshold=-12dB:ratio=2:attack=100:release=1000:makeup=1.5,"
            "alimiter=limit=0.97"
        )

    def test_mastering_mp3(self):
        fmt = resolve_output_format(OutputSettings(format="mp3"))
        cmd = build_mastering_command(Path("fx.wav"), Path("out.mp3"), fmt)
        assert cmd.tool == "ffmpeg"
        assert cmd.argv[:7] == ["-y", "-hide_banner", "-loglevel", "error", "-i", "fx.wav", "-vn"]
        assert cmd.argv[7:9] == ["-af", mastering_filter_graph()]
        assert cmd.argv[9:] == ["-ar", "44100", "-ac", "2", "-c:a", "libmp3lame", "-b:a", "320k", "out.mp3"]

    def test_keep_input_rate(self):
        fmt = resolve_output_format(OutputSettings(format="flac"))
        cmd = build_mastering_command(Path("fx.wav"), Path("out.flac"), fmt, sample_rate=0)
        assert "-ar" not in cmd.argv
        assert "-b:a" not in cmd.argv

    def test_transcode_has_no_filters(self):
        fmt = resolve_output_format(OutputSettings(format="wav"))
        cmd = build_transcode_command(Path("a.wav"), Path("b.wav"), fmt)
        assert "-af" not in cmd.argv
        assert cmd.argv[-1] == "b.wav"
