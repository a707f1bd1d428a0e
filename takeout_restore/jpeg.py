"""Segment codec for JPEG files.

A JPEG is a run of marker segments (``FF xx`` followed, for most markers, by
a big-endian length that counts itself) up to the start-of-scan segment.
Everything after the start-of-scan header is entropy-coded image data; it is
kept as one opaque trailing segment and never looked into. Extra 0xFF fill
bytes before a marker are allowed and kept on the segment that follows.
"""
from __future__ import annotations

from dataclasses import dataclass
import struct
from typing import Iterable, List, Optional

from .errors import FormatError

SOI = 0xD8
EOI = 0xD9
SOS = 0xDA
APP0 = 0xE0
APP1 = 0xE1
TEM = 0x01
RST_MARKERS = frozenset(range(0xD0, 0xD8))

# Pseudo marker for the entropy-coded bytes following SOS. ``FF 00`` is a
# stuffed byte inside scan data and can never start a real segment.
SCAN_DATA = 0x00

STANDALONE_MARKERS = frozenset({TEM}) | RST_MARKERS

MAX_PAYLOAD = 0xFFFF - 2

EXIF_HEADER = b"Exif\x00\x00"


@dataclass(frozen=True)
class Segment:
    """One JPEG segment.

    `payload` is None for markers that carry no length field (SOI, TEM, RST).
    For SCAN_DATA it holds the raw bytes after the SOS header, EOI included.
    `fill` counts extra 0xFF fill bytes that preceded the marker.
    """

    marker: int
    payload: Optional[bytes] = None
    fill: int = 0

    @property
    def is_exif(self) -> bool:
        return self.marker == APP1 and self.payload is not None and self.payload.startswith(EXIF_HEADER)

    def encode(self) -> bytes:
        if self.marker == SCAN_DATA:
            return self.payload or b""
        head = b"\xff" * self.fill + bytes((0xFF, self.marker))
        if self.payload is None:
            return head
        if len(self.payload) > MAX_PAYLOAD:
            raise ValueError(
                f"Segment FF{self.marker:02X} payload of {len(self.payload)} bytes exceeds {MAX_PAYLOAD}"
            )
        return head + struct.pack(">H", len(self.payload) + 2) + self.payload

    def __repr__(self) -> str:
        size = "-" if self.payload is None else len(self.payload)
        return f"Segment(FF{self.marker:02X}, {size})"


def parse(data: bytes) -> List[Segment]:
    """Split `data` into segments, SOI first and SCAN_DATA last.

    Raises FormatError when the buffer does not start with SOI, a declared
    length runs past the end, an unexpected byte sits where a marker belongs,
    or the buffer ends (or hits EOI) before a start-of-scan.
    """
    data = bytes(data)
    if data[:2] != b"\xff\xd8":
        raise FormatError("Not a JPEG: missing start-of-image marker")

    segments = [Segment(SOI)]
    pos = 2
    size = len(data)
    while True:
        if pos >= size:
            raise FormatError("JPEG ends before start-of-scan")
        if pos + 2 > size:
            raise FormatError(f"Truncated marker at offset {pos}")
        if data[pos] != 0xFF:
            raise FormatError(f"Expected marker at offset {pos}, found 0x{data[pos]:02X}")
        fill = 0
        while pos + 1 < size and data[pos + 1] == 0xFF:
            fill += 1
            pos += 1
        if pos + 2 > size:
            raise FormatError(f"Truncated marker at offset {pos}")
        marker = data[pos + 1]
        pos += 2

        if marker in STANDALONE_MARKERS:
            segments.append(Segment(marker, fill=fill))
            continue
        if marker in (SOI, EOI, SCAN_DATA):
            raise FormatError(f"Unexpected marker FF{marker:02X} before start-of-scan at offset {pos - 2}")

        if pos + 2 > size:
            raise FormatError(f"Truncated length field for FF{marker:02X} at offset {pos}")
        (length,) = struct.unpack(">H", data[pos:pos + 2])
        if length < 2:
            raise FormatError(f"Invalid length {length} for FF{marker:02X} at offset {pos}")
        end = pos + length
        if end > size:
            raise FormatError(
                f"Segment FF{marker:02X} at offset {pos - 2} declares {length} bytes, only {size - pos} remain"
            )
        segments.append(Segment(marker, data[pos + 2:end], fill))
        pos = end

        if marker == SOS:
            segments.append(Segment(SCAN_DATA, data[pos:]))
            return segments


def serialize(segments: Iterable[Segment]) -> bytes:
    """Concatenate segments back into a JPEG byte string."""
    return b"".join(seg.encode() for seg in segments)


def find_exif(segments: List[Segment]) -> Optional[int]:
    """Index of the first APP1 Exif segment, or None."""
    for idx, seg in enumerate(segments):
        if seg.marker == SOS:
            break
        if seg.is_exif:
            return idx
    return None
