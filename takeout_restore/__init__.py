"""takeout_restore - write capture dates from Google Takeout sidecars back into JPEG and PNG files."""

from .errors import (
    FormatError,
    MalformedTimestamp,
    MissingField,
    RestoreError,
    UnsupportedContainer,
    UnsupportedDirectoryLayout,
)
from .filetypes import ContainerKind, detect
from .injector import inject, restore_bytes
from .sidecar import SidecarRecord
from .timestamps import NormalizedTimestamp, normalize

__all__ = [
    "ContainerKind",
    "FormatError",
    "MalformedTimestamp",
    "MissingField",
    "NormalizedTimestamp",
    "RestoreError",
    "SidecarRecord",
    "UnsupportedContainer",
    "UnsupportedDirectoryLayout",
    "detect",
    "inject",
    "normalize",
    "restore_bytes",
]
