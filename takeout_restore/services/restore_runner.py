"""Batch runner: restore dates for every sidecar/image pair under a directory."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Callable, Dict, List, Optional
import uuid

from takeout_restore import extractor
from takeout_restore.config import RestoreSettings
from takeout_restore.errors import RestoreError, UnsupportedContainer
from takeout_restore.filetypes import detect
from takeout_restore.injector import restore_bytes
from takeout_restore.scanner import Filepair, find_pairs
from takeout_restore.services.job_store import now_ts, restore_jobs
from takeout_restore.sidecar import SidecarRecord
from takeout_restore.timestamps import SOURCE_EPOCH
from takeout_restore.utils.paths import normalize_user_path
from takeout_restore.writer import write_image

STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class PairResult:
    pair: Filepair
    status: str
    error: Optional[str] = None
    error_kind: Optional[str] = None
    sources: tuple = ()
    verified: Optional[bool] = None


@dataclass
class RestoreSummary:
    total: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    epoch_dates: int = 0
    formatted_dates: int = 0
    unverified: int = 0
    elapsed_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)

    def record(self, result: PairResult) -> None:
        self.counts[result.status] = self.counts.get(result.status, 0) + 1
        for source in result.sources:
            if source == SOURCE_EPOCH:
                self.epoch_dates += 1
            else:
                self.formatted_dates += 1
        if result.verified is False:
            self.unverified += 1
        if result.error:
            self.errors.append(f"{result.pair.image_path}: {result.error}")

    def as_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            **self.counts,
            "epoch_dates": self.epoch_dates,
            "formatted_dates": self.formatted_dates,
            "unverified": self.unverified,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "errors": list(self.errors),
        }


ProgressCallback = Callable[[int, int, PairResult], None]


def process_pair(pair: Filepair, settings: RestoreSettings) -> PairResult:
    """Read, inject and write back one image. Never raises for per-image problems."""
    try:
        record = SidecarRecord.load(pair.sidecar_path)
        original = pair.image_path.read_bytes()
        result = restore_bytes(record, original, detect(original))
        status = write_image(
            pair.image_path, result.data, original=original,
            dry_run=settings.dry_run, backup=settings.backup,
        )
    except UnsupportedContainer as exc:
        logging.info("Skipping %s: %s", pair.image_path, exc)
        return PairResult(pair, STATUS_SKIPPED, error_kind=exc.kind)
    except RestoreError as exc:
        logging.warning("Failed %s (%s): %s", pair.image_path, exc.kind, exc)
        return PairResult(pair, STATUS_FAILED, error=str(exc), error_kind=exc.kind)
    except (OSError, TypeError, ValueError) as exc:
        logging.warning("Failed %s: %s", pair.image_path, exc)
        return PairResult(pair, STATUS_FAILED, error=str(exc), error_kind="io")

    dates = result.dates
    verified = None
    if settings.verify:
        verified = extractor.matches(result.data, dates.taken, dates.created)
        if not verified:
            logging.warning("Read-back of %s does not show %s / %s", pair.image_path, dates.taken, dates.created)
    logging.debug("%s: %s (taken %s from %s)", pair.image_path, status, dates.taken, dates.taken_source)
    return PairResult(pair, status, sources=(dates.taken_source, dates.created_source), verified=verified)


def _unique_images(pairs: List[Filepair]) -> List[Filepair]:
    seen = {}
    for pair in pairs:
        key = pair.image_path.resolve()
        if key in seen:
            logging.info("Ignoring %s: %s already paired with %s", pair.sidecar_path, pair.image_path, seen[key])
            continue
        seen[key] = pair.sidecar_path
    return [p for p in pairs if seen.get(p.image_path.resolve()) == p.sidecar_path]


def restore_tree(
    source: str,
    settings: RestoreSettings | None = None,
    progress_cb: ProgressCallback | None = None,
    stop_event: threading.Event | None = None,
) -> RestoreSummary:
    """Process every pair under `source` on a thread pool.

    Each image is independent, so one failure never stops the others. Setting
    `stop_event` stops further images from being started.
    """
    settings = settings or RestoreSettings()
    started = time.monotonic()
    pairs = _unique_images(list(find_pairs(normalize_user_path(str(source)), settings.sidecar_suffixes)))
    summary = RestoreSummary(total=len(pairs))
    logging.info("Found %d sidecar/image pairs in %.0f ms", len(pairs), (time.monotonic() - started) * 1000)

    def guarded(pair: Filepair) -> PairResult:
        if stop_event is not None and stop_event.is_set():
            return PairResult(pair, STATUS_SKIPPED, error_kind="cancelled")
        return process_pair(pair, settings)

    with ThreadPoolExecutor(max_workers=settings.workers) as pool:
        futures = [pool.submit(guarded, pair) for pair in pairs]
        for done, future in enumerate(as_completed(futures), start=1):
            result = future.result()
            summary.record(result)
            if progress_cb:
                progress_cb(done, summary.total, result)

    summary.elapsed_seconds = time.monotonic() - started
    logging.info("Restore finished: %s", {k: v for k, v in summary.as_dict().items() if k != "errors"})
    return summary


def _run(job_id: str, source: str, settings: RestoreSettings) -> None:
    restore_jobs.update(job_id, state="running", start_time=now_ts())

    def progress(done: int, total: int, result: PairResult) -> None:
        restore_jobs.update(job_id, processed=done, total=total,
                            current_file=str(result.pair.image_path), last_update=now_ts())
        restore_jobs.increment(job_id, result.status)
        if result.error:
            restore_jobs.add_error(job_id, f"{result.pair.image_path}: {result.error}")

    try:
        summary = restore_tree(source, settings, progress_cb=progress)
    except (OSError, ValueError) as exc:
        logging.exception("Restore job %s failed", job_id)
        restore_jobs.update(job_id, state="error", error=str(exc), finished_time=now_ts())
        return
    restore_jobs.update(job_id, state="done", total=summary.total, current_file=None,
                        epoch_dates=summary.epoch_dates, formatted_dates=summary.formatted_dates,
                        finished_time=now_ts())


def start_restore_job(source: str, settings: RestoreSettings | None = None) -> str:
    """Run `restore_tree` in a background thread and return the job id to poll."""
    settings = settings or RestoreSettings()
    job_id = uuid.uuid4().hex
    restore_jobs.create(job_id, {"source": source, "dry_run": settings.dry_run, "processed": 0, "total": 0})
    threading.Thread(target=_run, args=(job_id, source, settings), daemon=True).start()
    return job_id
