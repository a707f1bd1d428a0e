"""In-memory registry of batch restore jobs, safe to update from worker threads."""
from __future__ import annotations

from dataclasses import dataclass, field
import threading
import time
from typing import Any, Dict

MAX_ERRORS = 200


def now_ts() -> int:
    return int(time.time())


@dataclass
class Job:
    job_id: str
    data: Dict[str, Any] = field(default_factory=dict)


class JobStore:
    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, job_id: str, initial: Dict[str, Any] | None = None) -> None:
        data = {"state": "pending", "errors": [], "created_time": now_ts()}
        data.update(initial or {})
        with self._lock:
            self._jobs[job_id] = Job(job_id=job_id, data=data)

    def update(self, job_id: str, **values) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.data.update(values)

    def increment(self, job_id: str, key: str, amount: int = 1) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.data[key] = job.data.get(key, 0) + amount

    def add_error(self, job_id: str, message: str) -> None:
        """Record an error message; only the first MAX_ERRORS are kept."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            errors = job.data.setdefault("errors", [])
            if len(errors) < MAX_ERRORS:
                errors.append(message)

    def get(self, job_id: str) -> Dict[str, Any] | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            snapshot = dict(job.data)
            snapshot["errors"] = list(snapshot.get("errors", []))
            return snapshot


restore_jobs = JobStore()
