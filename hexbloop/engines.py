"""
hexbloop/engines.py
External processing engines (sox, ffmpeg)

- Executable discovery (PATH first, then the usual install prefixes)
- ProcessRunner: one subprocess at a time, cancellable, stderr captured
- Effects strategies, tried in order: sox, then an ffmpeg approximation
- Mastering and plain-transcode command builders
"""

import shutil
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import (
    EFFECTS_CONFIG,
    MASTERING_CONFIG,
    ORIGINAL_FORMAT_BY_EXTENSION,
    OUTPUT_FORMATS,
    QUALITY_BITRATES,
    OutputSettings,
)
from .errors import Cancelled, ExternalToolFailed, ExternalToolUnavailable
from .logger import logger
from .params import EffectsParameters

STDERR_TAIL_CHARS = 500
POLL_INTERVAL_SEC = 0.1
TERMINATE_GRACE_SEC = 5.0

SEARCH_DIRS = (
    Path("/opt/homebrew/bin"),
    Path("/usr/local/bin"),
    Path("/usr/bin"),
)


# =============================================================================
# Discovery
# =============================================================================

def find_executable(name: str) -> Optional[Path]:
    """
    Find an executable by name.

    Returns:
        Path to the executable or None if not found
    """
    in_path = shutil.which(name)
    if in_path:
        return Path(in_path)

    # GUI launches on macOS often run with a minimal PATH
    for directory in SEARCH_DIRS:
        candidate = directory / name
        if candidate.exists():
            return candidate
    return None


def find_sox() -> Optional[Path]:
    return find_executable("sox")


def find_ffmpeg() -> Optional[Path]:
    return find_executable("ffmpeg")


# =============================================================================
# Cancellation
# =============================================================================

class CancellationToken:
    """Shared flag checked between stages and while a process runs."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("Processing cancelled")


# =============================================================================
# Process runner
# =============================================================================

@dataclass
class ExternalCommand:
    """One invocation of an external tool. argv excludes the executable."""
    tool: str
    argv: List[str]
    input_path: Path
    output_path: Path
    description: str = ""


class ProcessRunner:
    """
    Runs ExternalCommands.

    Executables are resolved lazily and cached; pass `executables` to pin
    paths (tool name -> path). No timeout unless timeout_s is given.
    """

    def __init__(self, executables: Optional[Dict[str, Path]] = None,
                 timeout_s: Optional[float] = None):
        self._executables: Dict[str, Optional[Path]] = dict(executables or {})
        self._lock = threading.Lock()
        self.timeout_s = timeout_s

    def resolve(self, tool: str) -> Path:
        """
        Raises:
            ExternalToolUnavailable: If the tool cannot be found
        """
        with self._lock:
            if tool not in self._executables:
                self._executables[tool] = find_executable(tool)
            path = self._executables[tool]
        if path is None:
            raise ExternalToolUnavailable(tool)
        return Path(path)

    def available(self, tool: str) -> bool:
        try:
            self.resolve(tool)
        except ExternalToolUnavailable:
            return False
        return True

    def run(self, command: ExternalCommand,
            cancel: Optional[CancellationToken] = None) -> None:
        """
        Run command to completion.

        Raises:
            ExternalToolUnavailable: Executable missing or not startable
            ExternalToolFailed: Non-zero exit, timeout, or missing/empty output
            Cancelled: Token was cancelled; the process is terminated first
        """
        if cancel is not None:
            cancel.raise_if_cancelled()
        exe = self.resolve(command.tool)
        argv = [str(exe)] + [str(a) for a in command.argv]
        logger.tool(command.tool, command.description or "run", details=" ".join(argv))

        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ExternalToolUnavailable(command.tool, f"Cannot start {command.tool}: {e}") from e

        stderr = self._wait(proc, command, cancel)

        if proc.returncode != 0:
            tail = stderr[-STDERR_TAIL_CHARS:].strip()
            raise ExternalToolFailed(
                command.tool,
                f"{command.tool} exited with code {proc.returncode}: {tail or 'no output'}",
                returncode=proc.returncode,
                stderr=stderr,
            )

        output = Path(command.output_path)
        if not output.exists() or output.stat().st_size == 0:
            raise ExternalToolFailed(
                command.tool,
                f"{command.tool} produced no output at {output}",
                returncode=proc.returncode,
                stderr=stderr,
            )

    def _wait(self, proc: subprocess.Popen, command: ExternalCommand,
              cancel: Optional[CancellationToken]) -> str:
        """Wait for proc, polling the token. Returns captured stderr."""
        started = time.monotonic()
        chunks = []
        while True:
            try:
                _, err = proc.communicate(timeout=POLL_INTERVAL_SEC)
                chunks.append(err or "")
                return "".join(chunks)
            except subprocess.TimeoutExpired:
                pass

            if cancel is not None and cancel.cancelled:
                self._stop(proc)
                logger.tool(command.tool, "terminated on cancel")
                raise Cancelled(f"{command.tool} cancelled")

            if self.timeout_s is not None and time.monotonic() - started > self.timeout_s:
                self._stop(proc)
                raise ExternalToolFailed(command.tool, f"{command.tool} timed out after {self.timeout_s}s")

    @staticmethod
    def _stop(proc: subprocess.Popen) -> None:
        proc.terminate()
        try:
            proc.communicate(timeout=TERMINATE_GRACE_SEC)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()


# =============================================================================
# Effects strategies
# =============================================================================

def _signed(value: float) -> str:
    return f"+{value:g}" if value >= 0 else f"{value:g}"


class SoxEffects:
    """The reference effects chain."""
    name = "sox"
    tool = "sox"

    def build(self, params: EffectsParameters, input_path: Path, output_path: Path) -> ExternalCommand:
        c = EFFECTS_CONFIG
        argv = [
            str(input_path), str(output_path),
            "gain", "-n", f"{c.input_gain_db:g}",
            "overdrive", f"{params.overdrive:.3f}", f"{c.overdrive_colour:g}",
            "bass", _signed(round(params.bass_gain_db, 3)),
            "treble", _signed(round(params.treble_gain_db, 3)),
            "echo", f"{c.echo_gain_in:g}", f"{c.echo_gain_out:g}",
            f"{params.echo.delay_sec * 1000:.1f}", f"{params.echo.decay:.3f}",
            "compand", f"{params.compand.attack_sec:.4f},{c.compand_decay_sec:g}",
            c.compand_transfer, f"{c.compand_gain_db:g}",
            f"{c.compand_initial_db:g}", f"{c.compand_delay_sec:g}",
            "rate", str(c.sample_rate),
            "dither",
        ]
        return ExternalCommand("sox", argv, Path(input_path), Path(output_path), "effects (sox)")


class FfmpegEffectsApproximation:
    """ffmpeg filter graph approximating the sox chain when sox is missing."""
    name = "ffmpeg-approximation"
    tool = "ffmpeg"

    def filter_graph(self, params: EffectsParameters) -> str:
        c = EFFECTS_CONFIG
        drive_db = params.overdrive
        return ",".join([
            f"volume={c.input_gain_db:g}dB",
            # overdrive: push into a tanh soft clipper, then back down
            f"volume={drive_db:.3f}dB",
            "asoftclip=type=tanh",
            f"volume={-drive_db:.3f}dB",
            f"bass=g={params.bass_gain_db:.3f}",
            f"treble=g={params.treble_gain_db:.3f}",
            f"aecho={c.echo_gain_in:g}:{c.echo_gain_out:g}:"
            f"{params.echo.delay_sec * 1000:.1f}:{params.echo.decay:.3f}",
            f"acompressor=threshold=-20dB:ratio={params.compand.ratio:.3f}:"
            f"attack={params.compand.attack_sec * 1000:.2f}:release=250:makeup=2",
        ])

    def build(self, params: EffectsParameters, input_path: Path, output_path: Path) -> ExternalCommand:
        argv = [
            "-y", "-hide_banner", "-loglevel", "error",
            "-i", str(input_path),
            "-af", self.filter_graph(params),
            "-ar", str(EFFECTS_CONFIG.sample_rate),
            "-ac", "2",
            "-c:a", "pcm_s16le",
            str(output_path),
        ]
        return ExternalCommand("ffmpeg", argv, Path(input_path), Path(output_path),
                               "effects (ffmpeg approximation)")


DEFAULT_EFFECTS_STRATEGIES = (SoxEffects(), FfmpegEffectsApproximation())


@dataclass
class EffectsOutcome:
    strategy: str
    output_path: Path
    skipped: List[str] = field(default_factory=list)  # "name: reason" per strategy that fell through


def run_effects_chain(
    params: EffectsParameters,
    input_path: Path,
    output_path: Path,
    runner: ProcessRunner,
    cancel: Optional[CancellationToken] = None,
    strategies: Sequence = DEFAULT_EFFECTS_STRATEGIES,
) -> EffectsOutcome:
    """
    Try each strategy in order until one produces output_path.

    Raises:
        ExternalToolFailed: If every strategy was unavailable or failed
        Cancelled: Propagated immediately, no fallback
    """
    skipped = []
    for strategy in strategies:
        if cancel is not None:
            cancel.raise_if_cancelled()
        command = strategy.build(params, Path(input_path), Path(output_path))
        try:
            runner.run(command, cancel)
        except (ExternalToolUnavailable, ExternalToolFailed) as e:
            logger.warning(f"Effects strategy {strategy.name} failed, trying next",
                           component="EFFECTS", details=str(e))
            skipped.append(f"{strategy.name}: {e}")
            continue
        return EffectsOutcome(strategy=strategy.name, output_path=Path(output_path), skipped=skipped)

    raise ExternalToolFailed("effects", "All effects strategies failed: " + "; ".join(skipped))


# =============================================================================
# Mastering / transcode
# =============================================================================

@dataclass(frozen=True)
class OutputFormat:
    key: str
    extension: str
    codec: str
    bitrate_kbps: Optional[int]  # None for lossless


LOSSLESS_FORMATS = ("wav", "flac")


def resolve_output_format(settings: OutputSettings, input_suffix: str = "") -> OutputFormat:
    """
    Concrete output format for one input.

    "original" maps the input's extension to the nearest supported format
    (AIFF becomes WAV); unknown extensions fall back to mp3.
    """
    key = settings.format
    if key == "original":
        key = ORIGINAL_FORMAT_BY_EXTENSION.get(input_suffix.lower(), "mp3")
    if key not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {settings.format}")
    extension, codec = OUTPUT_FORMATS[key]

    if key in LOSSLESS_FORMATS:
        bitrate = None
    elif key == "mp3":
        bitrate = settings.mp3_bitrate
    else:
        bitrate = QUALITY_BITRATES[settings.quality]
    return OutputFormat(key, extension, codec, bitrate)


def mastering_filter_graph() -> str:
    m = MASTERING_CONFIG
    filters = [f"equalizer=f={f}:t=q:w={w:g}:g={g:g}" for f, w, g in m.eq_bands]
    filters.append(
        f"acompressor=threshold={m.comp_threshold_db:g}dB:ratio={m.comp_ratio:g}:"
        f"attack={m.comp_attack_ms}:release={m.comp_release_ms}:makeup={m.comp_makeup:g}"
    )
    filters.append(f"alimiter=limit={m.limiter_limit:g}")
    return ",".join(filters)


def _encode_args(fmt: OutputFormat, sample_rate: int) -> List[str]:
    args = []
    if sample_rate:
        args += ["-ar", str(sample_rate)]
    args += ["-ac", str(MASTERING_CONFIG.channels), "-c:a", fmt.codec]
    if fmt.bitrate_kbps:
        args += ["-b:a", f"{fmt.bitrate_kbps}k"]
    return args


def build_mastering_command(input_path: Path, output_path: Path, fmt: OutputFormat,
                            sample_rate: int = 44100) -> ExternalCommand:
    """EQ -> compression -> limiting, encoded to fmt."""
    argv = [
        "-y", "-hide_banner", "-loglevel", "error",
        "-i", str(input_path),
        "-vn",
        "-af", mastering_filter_graph(),
    ] + _encode_args(fmt, sample_rate) + [str(output_path)]
    return ExternalCommand("ffmpeg", argv, Path(input_path), Path(output_path), "mastering")


def build_transcode_command(input_path: Path, output_path: Path, fmt: OutputFormat,
                            sample_rate: int = 44100) -> ExternalCommand:
    """Format conversion only, used when mastering is disabled."""
    argv = [
        "-y", "-hide_banner", "-loglevel", "error",
        "-i", str(input_path),
        "-vn",
    ] + _encode_args(fmt, sample_rate) + [str(output_path)]
    return ExternalCommand("ffmpeg", argv, Path(input_path), Path(output_path), "transcode")


def tool_status(runner: Optional[ProcessRunner] = None) -> List[Tuple[str, Optional[Path]]]:
    """(tool, path or None) for every external tool, for diagnostics."""
    runner = runner or ProcessRunner()
    status = []
    for tool in ("sox", "ffmpeg"):
        try:
            status.append((tool, runner.resolve(tool)))
        except ExternalToolUnavailable:
            status.append((tool, None))
    return status
