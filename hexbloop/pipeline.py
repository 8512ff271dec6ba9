"""
hexbloop/pipeline.py
Pipeline orchestrator: one input file through every stage, and batches of them

Per file:
    validating -> effects -> mastering -> artwork -> metadata -> cleaning_up
    -> succeeded | failed | cancelled

Degradable stages (effects fallback, artwork, metadata) add notes to the
result and carry on. Mastering failures and invalid inputs fail the file.
Nothing a single file does can abort the rest of its batch.
"""

import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .analyze import estimate_features
from .app_paths import get_default_output_dir
from .artwork import ArtworkGenerator, GenerationInputs, image_to_bytes, save_image
from .batch import BatchNamingEngine, BatchPreview
from .config import AUDIO_EXTENSIONS, EFFECTS_CONFIG, BatchNamingSettings, HexbloopConfig
from .counters import CounterStore
from .engines import (
    CancellationToken,
    OutputFormat,
    ProcessRunner,
    build_mastering_command,
    build_transcode_command,
    resolve_output_format,
    run_effects_chain,
)
from .errors import ArtworkGenerationFailed, Cancelled, HexbloopError, InvalidInput, MetadataEmbedFailed
from .logger import logger
from .lunar import TemporalInfluence, compute_temporal_influence, neutral_influence
from .metadata import CoverArt, embed_metadata, generate_metadata, supports
from .models import ArtworkInfo, BatchResult, ProcessingResult, ProcessingStatus, ProgressEvent, Stage
from .naming import NameRecord
from .params import EffectsParameters, synthesize
from .seeds import SeededRandom, stable_u32

ProgressCallback = Callable[[ProgressEvent], None]


def validate_input(path) -> Path:
    """
    Raises:
        InvalidInput: Missing, not a regular file, or extension not allowed
    """
    path = Path(path)
    if not path.exists():
        raise InvalidInput(f"File not found: {path}")
    if not path.is_file():
        raise InvalidInput(f"Not a regular file: {path}")
    if path.suffix.lower() not in AUDIO_EXTENSIONS:
        raise InvalidInput(
            f"Unsupported file type '{path.suffix or '(none)'}'; "
            f"expected one of {' '.join(AUDIO_EXTENSIONS)}"
        )
    return path


def naming_settings_for(config: HexbloopConfig) -> BatchNamingSettings:
    """
    Batch naming settings implied by processing.naming.

    mystical uses the batch section as configured, custom numbers files
    under the configured prefix, original keeps the input stems unmarked.
    """
    mode = config.processing.naming
    batch = config.batch
    if mode == "custom":
        return replace(batch, scheme="sequential")
    if mode == "original":
        return replace(batch, scheme="preserve", preserve_original=False)
    return batch


class PipelineOrchestrator:
    """
    Runs files through the processing pipeline.

    Collaborators are injectable: pass a ProcessRunner stand-in to run
    without sox/ffmpeg, a CounterStore backed by memory to keep session
    counters off disk, and a seeded SeededRandom for reproducible names.

    progress_callback may be called from worker threads when parallel
    processing is on.
    """

    def __init__(
        self,
        config: Optional[HexbloopConfig] = None,
        runner: Optional[ProcessRunner] = None,
        counters: Optional[CounterStore] = None,
        artwork_generator: Optional[ArtworkGenerator] = None,
        progress_callback: Optional[ProgressCallback] = None,
        analyze_audio: bool = True,
        rng: Optional[SeededRandom] = None,
        now: Optional[datetime] = None,
    ):
        self.config = config or HexbloopConfig()
        self.runner = runner or ProcessRunner()
        self.counters = counters or CounterStore.default()
        self.artwork_generator = artwork_generator or ArtworkGenerator()
        self.progress_callback = progress_callback
        self.analyze_audio = analyze_audio
        self.rng = rng
        self.now = now

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    def _moment(self) -> datetime:
        return self.now or datetime.now()

    def influence(self) -> TemporalInfluence:
        if not self.config.advanced.lunar_influence:
            return neutral_influence()
        return compute_temporal_influence(self._moment())

    def naming_engine(self, influence: Optional[TemporalInfluence] = None) -> BatchNamingEngine:
        """A fresh naming session (one per batch)."""
        return BatchNamingEngine(
            settings=naming_settings_for(self.config),
            counters=self.counters,
            rng=self.rng,
            now=self._moment(),
            influence=influence or self.influence(),
        )

    def resolve_output_dir(self, output_dir=None) -> Path:
        if output_dir:
            return Path(output_dir)
        if self.config.output.directory:
            return Path(self.config.output.directory).expanduser()
        return get_default_output_dir()

    def output_format_for(self, path) -> OutputFormat:
        return resolve_output_format(self.config.output, Path(path).suffix)

    def _emit(self, index: int, total: int, file_name: str, stage: Stage) -> None:
        logger.stage(file_name, stage.value)
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(ProgressEvent(index, total, file_name, stage))
        except Exception as e:
            logger.warning("Progress callback raised", component="PIPELINE", details=str(e))

    # -------------------------------------------------------------------------
    # Single file
    # -------------------------------------------------------------------------

    def process_file(
        self,
        input_path,
        output_dir=None,
        name_record: Optional[NameRecord] = None,
        index: int = 0,
        total: int = 1,
        cancel: Optional[CancellationToken] = None,
        influence: Optional[TemporalInfluence] = None,
    ) -> ProcessingResult:
        """
        Process one file. Never raises for per-file problems: the outcome,
        error kind and notes are on the returned result.
        """
        source = Path(input_path)
        result = ProcessingResult(original_path=source)
        started = time.monotonic()
        file_name = source.name

        try:
            with self._workspace(file_name, index, total) as work_dir:
                self._emit(index, total, file_name, Stage.VALIDATING)
                validate_input(source)
                if cancel is not None:
                    cancel.raise_if_cancelled()

                target_dir = self.resolve_output_dir(output_dir)
                fmt = self.output_format_for(source)
                influence = influence or self.influence()
                if name_record is None:
                    engine = self.naming_engine(influence)
                    name_record = engine.make_unique(engine.generate_name(source), target_dir,
                                                     fmt.extension)
                result.generated_name = name_record.text

                params = synthesize(influence, self.config.advanced.effects_overrides or None)
                logger.info(f"{file_name} -> {name_record.text}{fmt.extension}: {params.description}",
                            component="PIPELINE")

                staged = self._render_audio(result, source, work_dir, fmt, params,
                                            index, total, cancel)
                if cancel is not None:
                    cancel.raise_if_cancelled()

                cover = staged_art = None
                if self.config.processing.artwork:
                    self._emit(index, total, file_name, Stage.ARTWORK)
                    cover, staged_art = self._artwork(result, source, work_dir, name_record, influence)
                else:
                    result.note("artwork disabled")
                if cancel is not None:
                    cancel.raise_if_cancelled()

                self._emit(index, total, file_name, Stage.METADATA)
                self._metadata(result, staged, source, name_record, influence, cover)

                # Nothing reaches the output directory before this point
                target_dir.mkdir(parents=True, exist_ok=True)
                final_path = target_dir / f"{name_record.text}{fmt.extension}"
                shutil.move(str(staged), str(final_path))
                result.output_path = final_path
                if staged_art is not None:
                    # Names may contain dots, so no with_suffix()
                    art_path = target_dir / f"{name_record.text}{staged_art.suffix}"
                    shutil.move(str(staged_art), str(art_path))
                    result.artwork.path = art_path

            result.status = ProcessingStatus.SUCCEEDED
            self._emit(index, total, file_name, Stage.SUCCEEDED)
            logger.info(f"Processed {file_name} -> {final_path.name}", component="PIPELINE")

        except Cancelled as e:
            result.status = ProcessingStatus.CANCELLED
            result.error = str(e)
            result.error_kind = type(e).__name__
            self._emit(index, total, file_name, Stage.CANCELLED)
            logger.info(f"Cancelled {file_name}", component="PIPELINE")

        except HexbloopError as e:
            result.status = ProcessingStatus.FAILED
            result.error = str(e)
            result.error_kind = type(e).__name__
            self._emit(index, total, file_name, Stage.FAILED)
            logger.error(f"Failed {file_name}", component="PIPELINE", details=str(e))

        except Exception as e:
            result.status = ProcessingStatus.FAILED
            result.error = f"Unexpected error: {e}"
            result.error_kind = type(e).__name__
            self._emit(index, total, file_name, Stage.FAILED)
            logger.error(f"Unexpected failure on {file_name}", component="PIPELINE",
                         details=f"{type(e).__name__}: {e}")

        finally:
            result.duration_sec = time.monotonic() - started

        return result

    @contextmanager
    def _workspace(self, file_name: str, index: int, total: int) -> Iterator[Path]:
        """
        Per-file temp directory, removed once on every exit path.

        Covers validation too, so cleaning_up is reported exactly once per
        file however it ends.
        """
        work_dir = None
        try:
            work_dir = Path(tempfile.mkdtemp(prefix="hexbloop_"))
            yield work_dir
        finally:
            self._emit(index, total, file_name, Stage.CLEANING_UP)
            if work_dir is not None:
                if self.config.advanced.preserve_temp_files:
                    logger.info(f"Keeping temp files in {work_dir}", component="PIPELINE")
                else:
                    shutil.rmtree(work_dir, ignore_errors=True)

    def _render_audio(self, result: ProcessingResult, source: Path, work_dir: Path,
                      fmt: OutputFormat, params: EffectsParameters, index: int, total: int,
                      cancel: Optional[CancellationToken]) -> Path:
        """Effects then mastering (or transcode). Returns the staged output."""
        processing = self.config.processing
        current = source

        if processing.effects:
            self._emit(index, total, source.name, Stage.EFFECTS)
            outcome = run_effects_chain(
                params, source, work_dir / f"effects{EFFECTS_CONFIG.intermediate_suffix}",
                self.runner, cancel,
            )
            result.effects_strategy = outcome.strategy
            for skipped in outcome.skipped:
                result.note(f"effects fallback: {skipped}")
            result.note(f"effects engine: {outcome.strategy}")
            current = outcome.output_path
        else:
            result.note("effects disabled")

        self._emit(index, total, source.name, Stage.MASTERING)
        staged = work_dir / f"mastered{fmt.extension}"
        build = build_mastering_command if processing.mastering else build_transcode_command
        if not processing.mastering:
            result.note("mastering disabled, transcoded only")
        self.runner.run(build(current, staged, fmt, self.config.output.sample_rate), cancel)
        return staged

    def _artwork(self, result: ProcessingResult, source: Path, work_dir: Path,
                 name_record: NameRecord,
                 influence: TemporalInfluence) -> Tuple[Optional[CoverArt], Optional[Path]]:
        """Render cover art. Returns (cover to embed, staged PNG to deliver or None)."""
        features = estimate_features(source) if self.analyze_audio else None
        seed = stable_u32("artwork", name_record.text)
        inputs = GenerationInputs(
            style="auto",
            seed=seed,
            audio_energy=features.energy if features else 0.5,
            tempo_bpm=features.tempo_bpm if features else 120.0,
            moon_phase=influence.lunar_phase,
            title=name_record.text,
            size=self.config.output.artwork_size,
        )
        try:
            image, style = self.artwork_generator.generate_with_style(inputs)
            staged_art = None
            if self.config.output.save_artwork:
                staged_art = save_image(image, work_dir / "artwork.png")
            cover = CoverArt(image_to_bytes(image, "png"), "image/png", image.width, image.height)
        except ArtworkGenerationFailed as e:
            logger.warning(f"Artwork skipped for {source.name}", component="ART", details=str(e))
            result.note(f"artwork failed: {e}")
            return None, None

        result.artwork = ArtworkInfo(style=style, seed=seed)
        return cover, staged_art

    def _metadata(self, result: ProcessingResult, staged: Path, source: Path,
                  name_record: NameRecord, influence: TemporalInfluence,
                  cover: Optional[CoverArt]) -> None:
        if not supports(staged):
            result.note(f"metadata not supported for {staged.suffix} output")
            return
        meta = generate_metadata(name_record.text, source, self.config.metadata,
                                 influence, name_record.style, self._moment())
        try:
            embed_metadata(staged, meta, cover)
        except MetadataEmbedFailed as e:
            logger.warning(f"Delivering {source.name} untagged", component="META", details=str(e))
            result.note(f"metadata failed: {e}")

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def process_batch(self, paths: Sequence, output_dir=None,
                      cancel: Optional[CancellationToken] = None) -> BatchResult:
        """
        Process every path, returning one result per input in input order.

        Names (and the session folder, when enabled) are fixed before any
        file starts. After cancellation, files not yet started are reported
        as cancelled without running.
        """
        paths = [Path(p) for p in paths]
        total = len(paths)
        cancel = cancel or CancellationToken()
        influence = self.influence()
        engine = self.naming_engine(influence)

        base_dir = self.resolve_output_dir(output_dir)
        folder_note = None
        try:
            folder = engine.claim_session_folder()
        except OSError as e:
            # Unwritable counter store: deliver into the output directory itself
            logger.warning("Session folder unavailable, writing to output directory",
                           component="PIPELINE", details=str(e))
            folder = None
            folder_note = f"session folder skipped: {e}"
        target_dir = base_dir / folder if folder else base_dir

        names = engine.name_batch(paths, target_dir,
                                  [self.output_format_for(p).extension for p in paths])
        logger.info(f"Batch of {total} file(s) -> {target_dir}", component="PIPELINE")

        def run(i: int) -> ProcessingResult:
            if cancel.cancelled:
                return self._not_started(paths[i], i, total)
            return self.process_file(paths[i], target_dir, names[i], i, total, cancel, influence)

        perf = self.config.performance
        if perf.parallel_processing and total > 1:
            workers = max(1, min(perf.max_workers, total))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hexbloop") as pool:
                results = list(pool.map(run, range(total)))
        else:
            results = [run(i) for i in range(total)]
        if folder_note:
            for r in results:
                r.note(folder_note)

        batch = BatchResult(results=results, output_dir=target_dir, session_folder=folder)
        logger.info(
            f"Batch done: {batch.successful} succeeded, {batch.failed} failed, "
            f"{batch.cancelled} cancelled",
            component="PIPELINE",
        )
        return batch

    def _not_started(self, path: Path, index: int, total: int) -> ProcessingResult:
        self._emit(index, total, path.name, Stage.CANCELLED)
        return ProcessingResult(
            original_path=path,
            status=ProcessingStatus.CANCELLED,
            error="Cancelled before start",
            error_kind=Cancelled.__name__,
        )

    def preview(self, paths: Sequence) -> List[BatchPreview]:
        """Names a batch would get, without claiming counters or processing."""
        paths = [Path(p) for p in paths]
        return self.naming_engine().preview_batch(
            paths, [self.output_format_for(p).extension for p in paths])


def process_files(paths: Sequence, config: Optional[HexbloopConfig] = None, output_dir=None,
                  progress_callback: Optional[ProgressCallback] = None,
                  cancel: Optional[CancellationToken] = None) -> List[ProcessingResult]:
    """Module-level convenience: run a batch with default collaborators."""
    orchestrator = PipelineOrchestrator(config=config, progress_callback=progress_callback)
    return orchestrator.process_batch(paths, output_dir, cancel).results
