"""Command line entry point: ``takeout-restore SOURCE [options]``."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from tqdm import tqdm

from takeout_restore.config import load_settings
from takeout_restore.services.restore_runner import restore_tree
from takeout_restore.utils.paths import normalize_user_path

LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="takeout-restore",
        description="Write photo capture dates from Google Takeout JSON sidecars back into JPEG and PNG files.",
    )
    parser.add_argument("source", help="Takeout folder (scanned recursively) or a single sidecar .json")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Compute every change but do not write any file")
    parser.add_argument("--backup", action="store_true", default=None,
                        help="Keep a <name>.orig copy of every file before rewriting it")
    parser.add_argument("--verify", action="store_true", default=None,
                        help="Read the dates back with an independent EXIF reader after injection")
    parser.add_argument("--workers", type=int, default=None, help="Number of worker threads")
    parser.add_argument("--config", help="Path to a restore_settings.json file")
    parser.add_argument("--log-file", default=None, help="Also write log output to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    return parser


def setup_logging(level: str, log_file: str | None = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, handlers=handlers, force=True)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")

    try:
        settings = load_settings(args.config)
    except FileNotFoundError as exc:
        parser.error(str(exc))
    settings = settings.merged(
        dry_run=args.dry_run, backup=args.backup, verify=args.verify,
        workers=args.workers, log_file=args.log_file,
        log_level="DEBUG" if args.verbose else None,
    )
    setup_logging(settings.log_level, settings.log_file)

    source = normalize_user_path(args.source)
    if not Path(source).exists():
        parser.error(f"Source not found: {args.source}")

    bar = None
    if not args.no_progress:
        bar = tqdm(desc="Restoring dates", unit="files", dynamic_ncols=True)

    def progress(done, total, result):
        if bar is not None:
            bar.total = total
            bar.update(1)

    try:
        summary = restore_tree(source, settings, progress_cb=progress)
    finally:
        if bar is not None:
            bar.close()

    counts = summary.as_dict()
    print(f"Pairs found:      {summary.total}")
    for status in ("written", "unchanged", "dryrun", "skipped", "failed"):
        if counts.get(status):
            print(f"{status.capitalize() + ':':<18}{counts[status]}")
    print(f"Dates from epoch: {summary.epoch_dates}, from formatted string: {summary.formatted_dates}")
    if settings.verify:
        print(f"Failed read-back: {summary.unverified}")
    print(f"Elapsed:          {summary.elapsed_seconds:.1f}s")
    return 1 if counts.get("failed") else 0


if __name__ == "__main__":
    sys.exit(main())
