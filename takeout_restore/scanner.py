"""Scanner: walk a Takeout export and pair each JSON sidecar with its image."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .sidecar import SidecarRecord
from .utils.paths import sibling, strip_sidecar_suffix

DEFAULT_SIDECAR_SUFFIXES = (".supplemental-metadata.json", ".suppl.json", ".json")


@dataclass(frozen=True)
class Filepair:
    sidecar_path: Path
    image_path: Path


def iter_sidecars(source: str | Path) -> Iterator[Path]:
    """Yield every ``*.json`` file below `source`.

    Directories are walked with an explicit stack so depth does not grow the
    call stack; hidden entries are skipped.
    """
    root = Path(source)
    if not root.exists():
        raise FileNotFoundError(f"Source path not found: {source}")
    if root.is_file():
        if root.suffix.lower() == ".json":
            yield root
        return

    stack = [root]
    while stack:
        current = stack.pop()
        try:
            entries = sorted(os.scandir(current), key=lambda e: e.name)
        except OSError as exc:
            logging.warning("Cannot list %s: %s", current, exc)
            continue
        subdirs = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file() and entry.name.lower().endswith(".json"):
                yield Path(entry.path)
        # reversed so directories come off the stack in name order
        stack.extend(reversed(subdirs))


def resolve_image(
    sidecar_path: Path, record: SidecarRecord, suffixes: Iterable[str] = DEFAULT_SIDECAR_SUFFIXES
) -> Optional[Path]:
    """Image belonging to a sidecar: its `title` first, then the sidecar name minus its suffix."""
    title = record.title
    if title and "/" not in title and "\\" not in title:
        found = sibling(sidecar_path, title)
        if found is not None:
            return found
    implied = strip_sidecar_suffix(sidecar_path.name, suffixes)
    if implied:
        return sibling(sidecar_path, implied)
    return None


def find_pairs(
    source: str | Path, suffixes: Iterable[str] = DEFAULT_SIDECAR_SUFFIXES
) -> Iterator[Filepair]:
    """Yield a Filepair for every sidecar below `source` whose image exists."""
    suffixes = tuple(suffixes)
    for sidecar_path in iter_sidecars(source):
        try:
            record = SidecarRecord.load(sidecar_path)
        except (OSError, ValueError, TypeError) as exc:
            logging.info("Skipping unreadable sidecar %s: %s", sidecar_path, exc)
            continue
        image_path = resolve_image(sidecar_path, record, suffixes)
        if image_path is None:
            logging.debug("No image found for sidecar %s", sidecar_path)
            continue
        yield Filepair(sidecar_path=sidecar_path, image_path=image_path)
