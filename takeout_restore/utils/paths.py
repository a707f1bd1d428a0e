"""Path helpers: user path normalisation (Windows/WSL) and sidecar naming."""
from __future__ import annotations

from pathlib import Path
import os
import re
from typing import Iterable

_WINDOWS_DRIVE = re.compile(r"^([A-Za-z]):[\\/](.*)")
_WSL_MOUNT = re.compile(r"^/mnt/([a-zA-Z])/(.*)")
_SLASH_BEFORE_DRIVE = re.compile(r"^/+([A-Za-z]:[\\/].*)")

# Takeout appends "(1)" style counters after the extension for duplicates:
# "IMG_1234.JPG(1).json" belongs to "IMG_1234(1).JPG"
_DUP_COUNTER = re.compile(r"^(?P<stem>.+?)(?P<ext>\.[^.()]+)\((?P<n>\d+)\)$")


def _windows_to_wsl(path: str) -> str:
    match = _WINDOWS_DRIVE.match(path)
    if not match:
        return path
    rest = match.group(2).replace("\\", "/")
    return f"/mnt/{match.group(1).lower()}/{rest}"


def _wsl_to_windows(path: str) -> str:
    match = _WSL_MOUNT.match(path)
    if not match:
        return path
    rest = match.group(2).replace("/", "\\")
    return f"{match.group(1).upper()}:\\{rest}"


def normalize_user_path(value: str | None) -> str | None:
    """Expand `~` and translate drive-letter paths for the running platform."""
    if not value:
        return value
    value = os.path.expanduser(value.strip())
    if not value:
        return value
    if os.name == "posix":
        return _windows_to_wsl(value)
    match = _SLASH_BEFORE_DRIVE.match(value)
    if match:
        value = match.group(1)
    return _wsl_to_windows(value).replace("/", "\\")


def display_path(value: str | None) -> str | None:
    if not value:
        return value
    return _wsl_to_windows(value)


def strip_sidecar_suffix(name: str, suffixes: Iterable[str]) -> str | None:
    """Media file name implied by a sidecar file name, or None if no suffix matches.

    Longest suffixes are tried first so ``.supplemental-metadata.json`` wins
    over ``.json``.
    """
    lowered = name.lower()
    for suffix in sorted(suffixes, key=len, reverse=True):
        if lowered.endswith(suffix.lower()) and len(name) > len(suffix):
            base = name[: -len(suffix)]
            match = _DUP_COUNTER.match(base)
            if match:
                return f"{match.group('stem')}({match.group('n')}){match.group('ext')}"
            return base
    return None


def sibling(path: Path, name: str) -> Path | None:
    """`name` next to `path` if such a file exists, matching case-insensitively as a fallback."""
    candidate = path.with_name(name)
    if candidate.is_file():
        return candidate
    lowered = name.lower()
    try:
        for entry in os.scandir(path.parent):
            if entry.name.lower() == lowered and entry.is_file():
                return Path(entry.path)
    except OSError:
        return None
    return None
