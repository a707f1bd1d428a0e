"""Injector: dispatch a date write to the codec matching the container.

`inject` is a pure function of its arguments; it performs no I/O and never
returns a partially modified buffer. Reading the file and replacing it
atomically is the caller's job (see `writer`).
"""
from __future__ import annotations

from dataclasses import dataclass

from . import exif, jpeg, png
from .errors import UnsupportedContainer
from .filetypes import ContainerKind
from .sidecar import SidecarRecord
from .timestamps import NormalizedTimestamp, SidecarDates, normalize


def inject(
    image_bytes: bytes,
    container_kind: ContainerKind,
    taken_time: NormalizedTimestamp,
    creation_time: NormalizedTimestamp,
) -> bytes:
    """Return `image_bytes` with both dates written into its metadata block.

    `taken_time` becomes DateTimeOriginal and `creation_time`
    DateTimeDigitized. Raises UnsupportedContainer for kinds other than JPEG
    and PNG, FormatError for a structurally invalid container, and
    UnsupportedDirectoryLayout for an EXIF block that cannot be patched.
    """
    if container_kind is ContainerKind.JPEG:
        segments = jpeg.parse(image_bytes)
        return jpeg.serialize(exif.apply_dates(segments, taken_time, creation_time))
    if container_kind is ContainerKind.PNG:
        chunks = png.parse(image_bytes)
        return png.serialize(png.apply_dates(chunks, taken_time, creation_time))
    raise UnsupportedContainer(f"Cannot write dates into container kind {container_kind!r}")


@dataclass(frozen=True)
class InjectionResult:
    data: bytes
    dates: SidecarDates
    changed: bool


def restore_bytes(record: SidecarRecord, image_bytes: bytes, container_kind: ContainerKind) -> InjectionResult:
    """Normalize the sidecar dates and inject them into `image_bytes`."""
    dates = normalize(record)
    data = inject(image_bytes, container_kind, dates.taken, dates.created)
    return InjectionResult(data=data, dates=dates, changed=data != bytes(image_bytes))
