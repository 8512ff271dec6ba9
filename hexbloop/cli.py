"""
hexbloop/cli.py
Command-line interface for Hexbloop

Usage:
    python -m hexbloop process track.wav other.flac --output out/
    python -m hexbloop preview *.wav --scheme sequential --prefix demo
    python -m hexbloop name --count 5 --seed 42
    python -m hexbloop artwork --seed 7 --style neon-plasma -o cover.png
    python -m hexbloop moon
    python -m hexbloop counters --reset
    python -m hexbloop tools
    python -m hexbloop inspect out/NAME.mp3
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config import (
    BATCH_SCHEMES,
    FOLDER_SCHEMES,
    NAMING_MODES,
    NUMBERING_STYLES,
    OUTPUT_FORMATS,
    HexbloopConfig,
    load_config,
    validate_config,
)
from .errors import ConfigError
from .logger import LogLevel, logger


def _load(args: argparse.Namespace) -> HexbloopConfig:
    """Config file (if any) with command-line overrides applied on top."""
    config = load_config(args.config) if getattr(args, "config", None) else HexbloopConfig()

    if getattr(args, "format", None):
        config.output.format = args.format
    if getattr(args, "naming", None):
        config.processing.naming = args.naming
    if getattr(args, "scheme", None):
        config.batch.scheme = args.scheme
    if getattr(args, "prefix", None) is not None:
        config.batch.prefix = args.prefix
    if getattr(args, "numbering", None):
        config.batch.numbering = args.numbering
    if getattr(args, "session_folders", None):
        config.batch.session_folders = True
        config.batch.folder_scheme = args.session_folders
    if getattr(args, "no_effects", False):
        config.processing.effects = False
    if getattr(args, "no_mastering", False):
        config.processing.mastering = False
    if getattr(args, "no_artwork", False):
        config.processing.artwork = False
    if getattr(args, "no_lunar", False):
        config.advanced.lunar_influence = False
    if getattr(args, "keep_temp", False):
        config.advanced.preserve_temp_files = True
    if getattr(args, "workers", None):
        config.performance.parallel_processing = args.workers > 1
        config.performance.max_workers = args.workers

    errors = validate_config(config)
    if errors:
        raise ConfigError("; ".join(errors))
    return config


def cmd_process(args: argparse.Namespace) -> int:
    """Process audio files through the full pipeline."""
    from .pipeline import PipelineOrchestrator

    config = _load(args)
    if config.advanced.debug:
        logger.set_level(LogLevel.DEBUG)

    def on_progress(event):
        if args.json:
            return
        print(f"  [{event.current_index + 1}/{event.total}] {event.file_name}: {event.stage.value}")

    orchestrator = PipelineOrchestrator(config=config, progress_callback=on_progress)
    batch = orchestrator.process_batch(args.files, args.output)

    if args.json:
        print(json.dumps({
            "output_dir": str(batch.output_dir),
            "session_folder": batch.session_folder,
            "results": [r.to_dict() for r in batch.results],
        }, indent=2))
    else:
        print()
        for r in batch.results:
            if r.success:
                print(f"OK      {r.original_path.name} -> {r.output_path}")
            else:
                print(f"{r.status.value.upper():8s}{r.original_path.name}: {r.error}")
            for note in r.notes:
                print(f"          {note}")
        print()
        print(f"{batch.successful} succeeded, {batch.failed} failed, {batch.cancelled} cancelled")

    return 0 if batch.failed == 0 and batch.cancelled == 0 else 1


def cmd_preview(args: argparse.Namespace) -> int:
    """Show the names a batch would get."""
    from .pipeline import PipelineOrchestrator
    from .seeds import SeededRandom

    config = _load(args)
    rng = SeededRandom(args.seed) if args.seed is not None else None
    orchestrator = PipelineOrchestrator(config=config, rng=rng)
    for p in orchestrator.preview(args.files):
        folder = f"{p.folder}/" if p.folder else ""
        print(f"{p.original}  ->  {folder}{p.generated}")
    return 0


def cmd_name(args: argparse.Namespace) -> int:
    """Generate band names."""
    from .lunar import compute_temporal_influence
    from .naming import NameGenerator, NameStyle
    from .seeds import SeededRandom

    influence = compute_temporal_influence()
    generator = NameGenerator(SeededRandom(args.seed))
    style = NameStyle(args.style) if args.style else None
    for _ in range(args.count):
        record = generator.generate(influence=influence, style=style)
        print(f"{record.text:50s} {record.style.value}" if args.verbose else record.text)
    return 0


def cmd_artwork(args: argparse.Namespace) -> int:
    """Render one cover image."""
    from .artwork import ArtworkGenerator, GenerationInputs, save_image
    from .errors import ArtworkGenerationFailed

    inputs = GenerationInputs(
        style=args.style,
        seed=args.seed,
        audio_energy=args.energy,
        tempo_bpm=args.tempo,
        moon_phase=args.moon_phase,
        title=args.title,
        size=args.size,
    )
    try:
        image, style = ArtworkGenerator().generate_with_style(inputs)
        path = save_image(image, args.output)
    except ArtworkGenerationFailed as e:
        print(f"ERROR: {e}")
        return 1
    print(f"{path} ({style}, seed {inputs.seed}, {inputs.size}px)")
    return 0


def cmd_moon(args: argparse.Namespace) -> int:
    """Show the current temporal influence and the effects it implies."""
    from .lunar import compute_temporal_influence
    from .params import synthesize

    try:
        moment = datetime.fromisoformat(args.at) if args.at else None
    except ValueError:
        print(f"ERROR: --at expects an ISO date/time, got '{args.at}'")
        return 2
    influence = compute_temporal_influence(moment)
    params = synthesize(influence)

    print(f"Phase:        {influence.phase_name.label} ({influence.lunar_phase:.3f}, day {influence.lunar_day})")
    print(f"Illumination: {influence.illumination * 100:.1f}%")
    print(f"Time:         {influence.time_category.value}")
    print()
    print(f"Effects:      {params.description}")
    print(f"  overdrive   {params.overdrive:.2f}")
    print(f"  bass        {params.bass_gain_db:+.2f} dB")
    print(f"  treble      {params.treble_gain_db:+.2f} dB")
    print(f"  echo        {params.echo.delay_sec:.3f}s / {params.echo.decay:.3f}")
    print(f"  compand     {params.compand.attack_sec:.3f}s / {params.compand.ratio:.1f}:1")
    return 0


def cmd_counters(args: argparse.Namespace) -> int:
    """Show or reset persisted session counters."""
    from .counters import CounterStore

    store = CounterStore.default()
    if args.reset:
        store.reset(args.key)
        return 0
    snapshot = store.snapshot()
    if not snapshot:
        print("(no session counters)")
    for key, value in sorted(snapshot.items()):
        print(f"{key:30s} {value}")
    return 0


def cmd_tools(args: argparse.Namespace) -> int:
    """Report which external engines are available."""
    from .engines import tool_status

    missing = 0
    for tool, path in tool_status():
        print(f"{tool:8s} {path if path else 'NOT FOUND'}")
        missing += path is None
    if missing:
        print()
        print("Without sox the ffmpeg approximation is used for effects.")
        print("ffmpeg is required for mastering.")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print embedded tags of a processed file."""
    from .metadata import read_metadata

    path = Path(args.file)
    if not path.exists():
        print(f"ERROR: File not found: {path}")
        return 1
    for key, value in read_metadata(path).items():
        print(f"{key:8s} {value if value is not None else '-'}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="hexbloop",
        description="Lunar-influenced audio mastering with generated names and artwork",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-file", type=str, help="Also write a debug log here")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def naming_options(p):
        p.add_argument("--config", "-c", type=str, help="JSON settings file")
        p.add_argument("--format", "-f", choices=list(OUTPUT_FORMATS) + ["original"], help="Output format")
        p.add_argument("--naming", choices=NAMING_MODES, help="Naming mode")
        p.add_argument("--scheme", choices=BATCH_SCHEMES, help="Batch naming scheme")
        p.add_argument("--prefix", type=str, help="Name prefix")
        p.add_argument("--numbering", choices=NUMBERING_STYLES, help="Numbering style")
        p.add_argument("--session-folders", choices=FOLDER_SCHEMES, help="Group output in session folders")
        p.add_argument("--no-lunar", action="store_true", help="Ignore lunar phase and time of day")

    # process command
    process_parser = subparsers.add_parser("process", help="Process audio files")
    process_parser.add_argument("files", nargs="+", help="Input audio files")
    process_parser.add_argument("--output", "-o", type=str, help="Output directory")
    naming_options(process_parser)
    process_parser.add_argument("--no-effects", action="store_true", help="Skip the effects stage")
    process_parser.add_argument("--no-mastering", action="store_true", help="Transcode only")
    process_parser.add_argument("--no-artwork", action="store_true", help="Skip cover art")
    process_parser.add_argument("--workers", "-w", type=int, help="Parallel workers (1 = sequential)")
    process_parser.add_argument("--keep-temp", action="store_true", help="Keep per-file temp directories")
    process_parser.add_argument("--json", "-j", action="store_true", help="Print results as JSON")
    process_parser.set_defaults(func=cmd_process)

    # preview command
    preview_parser = subparsers.add_parser("preview", help="Preview batch names")
    preview_parser.add_argument("files", nargs="+", help="Input audio files")
    preview_parser.add_argument("--seed", "-s", type=int, help="Seed for mystical names")
    naming_options(preview_parser)
    preview_parser.set_defaults(func=cmd_preview)

    # name command
    name_parser = subparsers.add_parser("name", help="Generate band names")
    name_parser.add_argument("--count", "-n", type=int, default=1, help="How many")
    name_parser.add_argument("--seed", "-s", type=int, help="Seed value")
    name_parser.add_argument("--style", choices=["sparklepop", "blackmetal", "witchhouse", "mixed"])
    name_parser.add_argument("--verbose", "-v", action="store_true", help="Show style")
    name_parser.set_defaults(func=cmd_name)

    # artwork command
    art_parser = subparsers.add_parser("artwork", help="Render cover art")
    art_parser.add_argument("--output", "-o", type=str, default="artwork.png", help="Output image")
    art_parser.add_argument("--style", type=str, default="auto", help="Style name or auto")
    art_parser.add_argument("--seed", "-s", type=int, default=0, help="Seed value")
    art_parser.add_argument("--energy", type=float, default=0.5, help="Audio energy 0-1")
    art_parser.add_argument("--tempo", type=float, default=120.0, help="Tempo in BPM")
    art_parser.add_argument("--moon-phase", type=float, default=0.5, help="Moon phase 0-1")
    art_parser.add_argument("--title", type=str, help="Label text")
    art_parser.add_argument("--size", type=int, default=800, help="Canvas size in pixels")
    art_parser.set_defaults(func=cmd_artwork)

    # moon command
    moon_parser = subparsers.add_parser("moon", help="Show lunar influence")
    moon_parser.add_argument("--at", type=str, help="ISO timestamp (default: now)")
    moon_parser.set_defaults(func=cmd_moon)

    # counters command
    counters_parser = subparsers.add_parser("counters", help="Show or reset session counters")
    counters_parser.add_argument("--reset", action="store_true", help="Reset counters")
    counters_parser.add_argument("--key", type=str, help="Only this key (with --reset)")
    counters_parser.set_defaults(func=cmd_counters)

    # tools command
    tools_parser = subparsers.add_parser("tools", help="Check external engines")
    tools_parser.set_defaults(func=cmd_tools)

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Show embedded tags")
    inspect_parser.add_argument("file", help="Processed audio file")
    inspect_parser.set_defaults(func=cmd_inspect)

    args = parser.parse_args(argv)
    if args.log_file:
        logger.enable_file_logging(args.log_file)
    try:
        return args.func(args)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 2
    finally:
        logger.disable_file_logging()


if __name__ == "__main__":
    sys.exit(main())
