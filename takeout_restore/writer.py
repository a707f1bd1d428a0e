"""Writer: replace an image file with new bytes without ever leaving it half-written."""
from __future__ import annotations

from pathlib import Path
import logging
import os
import shutil
from tempfile import NamedTemporaryFile

BACKUP_SUFFIX = ".orig"

STATUS_WRITTEN = "written"
STATUS_UNCHANGED = "unchanged"
STATUS_DRYRUN = "dryrun"


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def write_image(path, data: bytes, original: bytes | None = None, dry_run: bool = False, backup: bool = False) -> str:
    """Write `data` over `path` and return a status string.

    Behavior:
    - If `original` is given and equals `data`, nothing is written ("unchanged")
    - With `dry_run`, nothing is written ("dryrun")
    - With `backup`, the current file is copied to ``<name>.orig`` first,
      unless a backup already exists
    - The new content goes to a temporary file in the same directory, which
      then replaces `path`; file mode and times are carried over
    """
    path = Path(path)
    if original is not None and original == data:
        logging.debug("Unchanged, not rewriting: %s", path)
        return STATUS_UNCHANGED

    if dry_run:
        logging.info("Dry run: would rewrite %s (%d bytes)", path, len(data))
        return STATUS_DRYRUN

    if backup:
        dest = backup_path(path)
        if not dest.exists():
            shutil.copy2(path, dest)
            logging.info("Backed up %s -> %s", path, dest)

    tmp = NamedTemporaryFile(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False)
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        shutil.copystat(path, tmp.name)
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except FileNotFoundError:
            pass
        raise
    logging.info("Rewrote %s", path)
    return STATUS_WRITTEN
