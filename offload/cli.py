"""CLI with subcommands: scan, thumbs, info, import."""
from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import time
from pathlib import Path
from typing import Optional

from rich.prompt import Prompt

from .core.config import OffloadConfig
from .core.models import ImportCancelled
from .logging.rich_logger import RichProgressReporter, QuietProgressReporter, configure_logging
from .services.app_context import ImportSession, create_session
from .services.progress import format_size


class PromptDirectoryPicker:
    """Asks for a directory on the terminal in place of an OS dialog."""

    def __init__(self, console=None):
        self._console = console

    def pick(self, title: str) -> Optional[Path]:
        answer = Prompt.ask(title, default="", console=self._console).strip()
        if not answer:
            return None
        path = Path(answer).expanduser()
        return path if path.is_dir() else None


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="offload",
        description="Import photos and videos from a card into a dated library.",
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON configuration file",
    )
    parser.add_argument(
        "--thumbnail-dir",
        type=Path,
        default=None,
        help="Thumbnail cache directory (default: ~/.cache/offload/thumbnails)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ============ SCAN command ============
    scan_parser = subparsers.add_parser(
        "scan",
        help="List media files in a directory",
    )
    scan_parser.add_argument(
        "source",
        type=Path,
        nargs="?",
        help="Directory to scan",
    )
    scan_parser.add_argument(
        "--dest",
        type=Path,
        default=None,
        help="Library to compare against; marks files already imported",
    )
    scan_parser.add_argument(
        "--pick",
        action="store_true",
        help="Choose the source directory interactively",
    )

    # ============ THUMBS command ============
    thumbs_parser = subparsers.add_parser(
        "thumbs",
        help="Generate cached thumbnails for every image in a directory",
    )
    thumbs_parser.add_argument(
        "source",
        type=Path,
        help="Directory to preview",
    )

    # ============ INFO command ============
    info_parser = subparsers.add_parser(
        "info",
        help="Show capture date and thumbnail for a file",
    )
    info_parser.add_argument(
        "path",
        type=Path,
        help="Media file",
    )

    # ============ IMPORT command ============
    import_parser = subparsers.add_parser(
        "import",
        help="Copy media into date folders of a library",
    )
    import_parser.add_argument(
        "source",
        type=Path,
        nargs="?",
        help="Directory to import from (e.g. a mounted card)",
    )
    import_parser.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Library directory; files go to OUTPUT/YYYYMMDD/",
    )
    import_parser.add_argument(
        "--all",
        action="store_true",
        help="Import every file, not only those missing from the library",
    )
    import_parser.add_argument(
        "--pick",
        action="store_true",
        help="Choose the source directory interactively",
    )

    return parser


def build_config(args: argparse.Namespace) -> OffloadConfig:
    """Load the config file (if any) and apply CLI overrides."""
    config = OffloadConfig.load(args.config) if args.config else OffloadConfig()
    return config.with_overrides(thumbnail_dir=args.thumbnail_dir)


def create_reporter(args: argparse.Namespace, eta_window: int = 20):
    if getattr(args, 'quiet', False):
        return QuietProgressReporter()
    return RichProgressReporter(verbose=getattr(args, 'verbose', False), eta_window=eta_window)


def resolve_source(args: argparse.Namespace, session: ImportSession) -> Optional[Path]:
    if getattr(args, "pick", False):
        return session.pick_directory("Source directory")
    return args.source


async def cmd_scan(args: argparse.Namespace, session: ImportSession, reporter) -> int:
    """Handle the scan command."""
    source = resolve_source(args, session)
    if source is None:
        reporter.error("No source directory given")
        return 1

    files = await session.scan_directory(source)
    index = await session.refresh_destination(args.dest) if args.dest else None

    reporter.print_files(files, index)
    reporter.info(f"Found {len(files)} media files ({format_size(sum(f.size for f in files))})")
    if index is not None:
        reporter.info(f"New files: {index.count_new(files)}")
    return 0


async def cmd_thumbs(args: argparse.Namespace, session: ImportSession, reporter) -> int:
    """Handle the thumbs command."""
    files = [f for f in await session.scan_directory(args.source) if not f.is_video]

    reporter.start_phase("Thumbnails", len(files))
    results = []
    try:
        for pending in asyncio.as_completed([session.fetch_thumbnail(f.path) for f in files]):
            results.append(await pending)
            reporter.advance_phase()
    finally:
        reporter.end_phase()

    reporter.print_thumbnail_summary(results)
    return 0 if all(r.is_available for r in results) else 1


async def cmd_info(args: argparse.Namespace, session: ImportSession, reporter) -> int:
    """Handle the info command."""
    path = args.path.expanduser().absolute()
    if not path.is_file():
        reporter.error(f"Not a file: {path}")
        return 1

    date = await session.get_metadata(path)
    thumb = await session.fetch_thumbnail(path)

    reporter.print_header(f"File: {path.name}")
    reporter.info(f"Path: {path}")
    reporter.info(f"Size: {format_size(path.stat().st_size)}")
    reporter.info(f"Date Taken: {date.display_date} ({date.source.value})")
    reporter.info(f"Thumbnail: {thumb.path or 'none'} ({thumb.status.value})")
    return 0


async def cmd_import(args: argparse.Namespace, session: ImportSession, reporter) -> int:
    """Handle the import command."""
    source = resolve_source(args, session)
    if source is None:
        reporter.error("No source directory given")
        return 1

    files = await session.scan_directory(source)
    index = await session.refresh_destination(args.output)
    selected = files if args.all else index.select_new(files)

    reporter.print_header("offload import")
    reporter.print_config({
        "Source": str(source),
        "Library": str(args.output),
        "Found": len(files),
        "Selected": len(selected),
    })

    if not selected:
        reporter.info("Nothing to import")
        return 0

    cancelled: list[ImportCancelled] = []

    def track_cancel(event) -> None:
        if isinstance(event, ImportCancelled):
            cancelled.append(event)

    session.add_listener(reporter.handle_event)
    session.add_listener(track_cancel)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, session.cancel_import)
    except (NotImplementedError, RuntimeError):
        pass  # Windows: Ctrl+C raises KeyboardInterrupt instead

    reporter.start_phase("Importing", len(selected))
    started = time.monotonic()
    try:
        await session.start_import([f.path for f in selected], args.output)
        stats = await session.wait_for_import()
    finally:
        reporter.end_phase()
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    reporter.print_stats(stats, time.monotonic() - started, cancelled=bool(cancelled))
    if cancelled:
        return 130
    return 0 if stats.failed == 0 else 1


COMMANDS = {
    "scan": cmd_scan,
    "thumbs": cmd_thumbs,
    "info": cmd_info,
    "import": cmd_import,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    reporter = create_reporter(args)
    configure_logging(verbose=getattr(args, 'verbose', False))

    # No command specified - show help
    if not args.command:
        parser.print_help()
        return 0

    handler = COMMANDS.get(args.command)
    if handler is None:
        reporter.error(f"Unknown command: {args.command}")
        return 1

    try:
        config = build_config(args)
        reporter = create_reporter(args, config.eta_window)
        session = create_session(config, picker=PromptDirectoryPicker())
        return asyncio.run(handler(args, session, reporter))

    except KeyboardInterrupt:
        # Clean exit on Ctrl+C - no stack trace
        return 130
    except Exception as e:
        reporter.error(f"Error: {e}")
        if getattr(args, 'verbose', False):
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
