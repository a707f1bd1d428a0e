"""Container detection by signature bytes."""
from __future__ import annotations

from enum import Enum

from .png import PNG_SIGNATURE

SNIFF_BYTES = 16


class ContainerKind(Enum):
    JPEG = "jpeg"
    PNG = "png"
    UNKNOWN = "unknown"


def detect(data: bytes) -> ContainerKind:
    """Best single guess for the container of `data`."""
    head = bytes(data[:SNIFF_BYTES])
    if head.startswith(b"\xff\xd8\xff"):
        return ContainerKind.JPEG
    if head.startswith(PNG_SIGNATURE):
        return ContainerKind.PNG
    return ContainerKind.UNKNOWN
