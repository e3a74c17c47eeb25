#!/usr/bin/env python3
"""
exrmerge: merge or split the channels of numbered OpenEXR frame sequences.

Every input file is tagged with the channels to keep. Files whose names end in
the same frame number are merged into one output per frame, written to the
output template with its '#' run replaced by the frame number.

Examples:
    exrmerge -o comp/shot.####.exr -s "beauty/shot.*.exr" R,G,B,A -s "aov/shot.*.exr" Z,N.X,N.Y,N.Z
    exrmerge -o depth_####.exr -s "render_*.exr" Z
    exrmerge --list-channels render_0001.exr
"""

from __future__ import annotations

# Standard library imports
import argparse
import glob
import sys
import threading
import time
from collections.abc import Sequence
from pathlib import Path

# Third-party imports
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, TextColumn, TimeElapsedColumn
from rich.progress import Progress as ProgressBar
from rich.table import Table

# Local application imports
from ..config import MAX_WORKERS, POLL_INTERVAL, FileSelection, MergeRequest, app_config
from ..core.errors import CodecError
from ..core.types import Progress
from ..output.logger import SimpleLogger
from ..processing.exr import Codec, OpenEXRCodec
from ..processing.run import RunHandle, submit_request
from ..utils.json import load_manifest, write_report
from ..utils.path import common_dir_prefix, format_output_path, natural_key
from .categories import categorize_channels

ALL_CHANNELS = "*"

console = Console()
err_console = Console(stderr=True)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    p = argparse.ArgumentParser(
        prog="exrmerge",
        description="Merge or split channels of numbered EXR frame sequences.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("-o", "--output", help="Output path template; the last run of '#' becomes the frame number")
    p.add_argument(
        "-s",
        "--sequence",
        nargs=2,
        action="append",
        default=[],
        metavar=("PATTERN", "CHANNELS"),
        help="Glob of sequence files and comma-separated channels to keep ('*' for all)",
    )
    p.add_argument(
        "-f",
        "--file",
        nargs=2,
        action="append",
        default=[],
        metavar=("PATH", "CHANNELS"),
        help="Single file and comma-separated channels to keep ('*' for all)",
    )
    p.add_argument("-m", "--manifest", type=Path, help="JSON manifest with files, channels and output")
    p.add_argument("-w", "--threads", type=int, default=None, help="Worker threads (0 = all cores but two)")
    p.add_argument("--report", type=Path, help="Write a JSON report of progress and errors")
    p.add_argument("--log-file", type=Path, help="Append log lines to this file")
    p.add_argument("-q", "--quiet", action="store_true", help="Hide the progress bar and frame table")
    p.add_argument("--list-channels", type=Path, metavar="PATH", help="List channels of an EXR file and exit")
    return p.parse_args(argv)


def parse_channel_list(text: str) -> frozenset[str] | None:
    """Split 'R,G,B' into channel names; '*' means every channel (None)."""
    if text.strip() == ALL_CHANNELS:
        return None
    names = frozenset(part.strip() for part in text.split(",") if part.strip())
    if not names:
        raise ValueError(f"no channel names in {text!r}")
    return names


def expand_pattern(pattern: str) -> list[str]:
    """Expand a sequence glob into naturally sorted EXR paths."""
    matches = [p for p in glob.glob(pattern) if app_config.is_supported_input_file(Path(p))]
    if not matches:
        raise FileNotFoundError(f"no EXR files match {pattern}")
    return sorted(matches, key=natural_key)


def expand_selections(
    sequences: Sequence[Sequence[str]],
    files: Sequence[Sequence[str]],
    codec: Codec,
) -> list[FileSelection]:
    """Turn --sequence and --file arguments into per-file selections.

    One channel list applies to every file of a sequence. '*' is resolved from
    the header of the first file of the sequence.
    """
    groups: list[tuple[list[str], frozenset[str] | None]] = []
    for pattern, channels in sequences:
        groups.append((expand_pattern(pattern), parse_channel_list(channels)))
    for path, channels in files:
        groups.append(([path], parse_channel_list(channels)))

    selections: list[FileSelection] = []
    for paths, channels in groups:
        if channels is None:
            channels = frozenset(codec.parse_header(paths[0]).channel_names)
        selections.extend(FileSelection(path=path, channels=channels) for path in paths)
    return selections


def build_request(args: argparse.Namespace, codec: Codec) -> MergeRequest:
    """Create a MergeRequest from a manifest and/or command-line selections."""
    files: list[FileSelection] = []
    output = args.output
    threads = args.threads

    if args.manifest:
        manifest = load_manifest(args.manifest)
        files.extend(manifest.files)
        output = output or manifest.output
        threads = manifest.threads if threads is None else threads

    files.extend(expand_selections(args.sequence, args.file, codec))
    return MergeRequest(files=files, output=output or "", threads=threads or 0)


def list_channels(path: Path, codec: Codec) -> int:
    """Print the channels of one file grouped by category."""
    try:
        header = codec.parse_header(str(path))
    except CodecError as ex:
        err_console.print(f"[bold red]Failed to parse[/] {path}: {ex}")
        return 1

    table = Table(title=str(path), show_header=True, header_style="bold magenta")
    table.add_column("Category")
    table.add_column("Channels")
    table.add_column("Count", justify="right")
    for label, names in categorize_channels(header.channel_names):
        table.add_row(label, ", ".join(names), str(len(names)))
    console.print(table)
    return 0


def print_frames(request: MergeRequest, handle: RunHandle) -> None:
    """Print the frame jobs about to be processed."""
    prefix = common_dir_prefix(f.path for f in request.files)
    table = Table(title=f"{len(handle.jobs)} frames", show_header=True, header_style="bold magenta")
    table.add_column("Frame", justify="right")
    table.add_column("Files")
    table.add_column("Output")
    for job in handle.jobs:
        names = ", ".join(f.path[len(prefix):] for f in job.files)
        table.add_row(job.label, names, format_output_path(request.output, job.frame))
    console.print(table)


def wait_for_completion(handle: RunHandle, wake: threading.Event, quiet: bool) -> Progress:
    """Poll the handle until every worker has finished, drawing a progress bar."""
    with ProgressBar(
        TextColumn("[bold cyan]Merging"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        disable=quiet,
    ) as bar:
        snapshot = handle.poll()
        task = bar.add_task("merge", total=snapshot.max)
        while True:
            snapshot = handle.poll()
            bar.update(task, completed=snapshot.done, total=snapshot.max)
            if snapshot.finished:
                return snapshot
            wake.wait(POLL_INTERVAL)
            wake.clear()


def print_summary(request: MergeRequest, handle: RunHandle, errors: list[str], elapsed: float) -> None:
    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column(style="dim")
    summary.add_column()
    summary.add_row("Files:", str(len(request.files)))
    summary.add_row("Frames:", str(len(handle.jobs)))
    summary.add_row("Workers:", str(handle.workers))
    summary.add_row("Errors:", f"[red]{len(errors)}[/]" if errors else "0")
    summary.add_row("Total Time:", f"{elapsed:.1f}s")
    console.print(Panel(summary, title="[bold cyan]Summary[/bold cyan]", border_style="cyan", title_align="left"))
    for message in errors:
        err_console.print(f"[bold red]Error:[/] {message}")


def main(argv: Sequence[str] | None = None, codec: Codec | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)
    codec = codec or OpenEXRCodec()

    if args.list_channels:
        return list_channels(args.list_channels, codec)

    try:
        request = build_request(args, codec)
    except (ValidationError, ValueError, OSError, CodecError) as ex:
        err_console.print(f"[bold red]Invalid input:[/] {ex}")
        return 2

    logger = SimpleLogger(args.log_file, quiet=True) if args.log_file else None
    if logger:
        logger.section("Run Configuration")
        logger.log(f"{'Output:':<12} {request.output}")
        logger.log(f"{'Files:':<12} {len(request.files)}")
        logger.log(f"{'Threads:':<12} {request.threads or 'auto'} (cap {MAX_WORKERS})")

    t0 = time.time()
    wake = threading.Event()
    handle = submit_request(request, progress_fn=lambda _handle: wake.set(), codec=codec, logger=logger)

    with handle:
        if not args.quiet:
            print_frames(request, handle)
        try:
            wait_for_completion(handle, wake, args.quiet)
        except KeyboardInterrupt:
            err_console.print("Interrupted; waiting for running frames to finish.")
    progress = handle.poll()
    errors = handle.errors()
    elapsed = time.time() - t0

    print_summary(request, handle, errors, elapsed)
    if logger:
        logger.section("Summary")
        logger.table(
            ["Frames", "Done", "Max", "Errors", "Time"],
            [[str(len(handle.jobs)), str(progress.done), str(progress.max), str(len(errors)), f"{elapsed:.1f}s"]],
        )
        if errors:
            logger.warning(f"{len(errors)} errors recorded")
        else:
            logger.success("All frames merged")

    if args.report:
        write_report(args.report, request, progress, errors)

    return 0 if not errors else 1


if __name__ == "__main__":
    sys.exit(main())
