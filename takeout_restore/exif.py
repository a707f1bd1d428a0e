"""EXIF block builder: write DateTimeOriginal/DateTimeDigitized into a JPEG.

The APP1 payload is ``Exif\\0\\0`` followed by a TIFF structure: a byte-order
mark, the magic number 42, and the offset of IFD0. Every offset inside it is
relative to the start of the TIFF header. The two date tags live in the Exif
sub-IFD that IFD0 points at through tag 0x8769.

Existing blocks are patched without moving any byte already there, because
maker notes and thumbnails hold offsets this module cannot see:

* a date entry that is already ASCII with 20 bytes is overwritten in place;
* any other date entry gets its value appended at the end of the TIFF data
  and only its 12-byte directory entry is rewritten;
* a directory that needs new entries is copied, with the extra entries, to
  the end of the TIFF data and the single pointer to it is updated.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
import logging
import struct
from typing import Dict, List, Optional, Tuple

from .errors import UnsupportedDirectoryLayout
from .jpeg import APP1, EXIF_HEADER, MAX_PAYLOAD, SOI, Segment, find_exif
from .timestamps import NormalizedTimestamp

TIFF_MAGIC = 42
ENTRY_SIZE = 12

TAG_EXIF_IFD = 0x8769
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004


class TagType(IntEnum):
    BYTE = 1
    ASCII = 2
    SHORT = 3
    LONG = 4
    RATIONAL = 5
    SBYTE = 6
    UNDEFINED = 7
    SSHORT = 8
    SLONG = 9
    SRATIONAL = 10
    FLOAT = 11
    DOUBLE = 12
    IFD = 13


TYPE_SIZES = {
    TagType.BYTE: 1, TagType.ASCII: 1, TagType.SHORT: 2, TagType.LONG: 4,
    TagType.RATIONAL: 8, TagType.SBYTE: 1, TagType.UNDEFINED: 1, TagType.SSHORT: 2,
    TagType.SLONG: 4, TagType.SRATIONAL: 8, TagType.FLOAT: 4, TagType.DOUBLE: 8,
    TagType.IFD: 4,
}


@dataclass(frozen=True)
class TagEntry:
    """A 12-byte directory entry; `value` is the raw 4-byte value/offset field."""

    tag: int
    type: int
    count: int
    value: bytes

    @classmethod
    def unpack(cls, raw: bytes, endian: str) -> "TagEntry":
        tag, typ, count = struct.unpack(endian + "HHI", raw[:8])
        return cls(tag, typ, count, bytes(raw[8:12]))

    def pack(self, endian: str) -> bytes:
        return struct.pack(endian + "HHI", self.tag, self.type, self.count) + self.value

    def data_size(self) -> Optional[int]:
        """Byte size of the value, or None for types this module does not know."""
        size = TYPE_SIZES.get(self.type)
        return None if size is None else size * self.count

    def offset(self, endian: str) -> int:
        return struct.unpack(endian + "I", self.value)[0]


class TiffBlock:
    """Growable TIFF buffer with directory read/append helpers."""

    def __init__(self, data: bytes):
        if len(data) < 8:
            raise UnsupportedDirectoryLayout("EXIF block too short for a TIFF header")
        order = bytes(data[:2])
        if order == b"II":
            self.endian = "<"
        elif order == b"MM":
            self.endian = ">"
        else:
            raise UnsupportedDirectoryLayout(f"Unknown TIFF byte order {order!r}")
        self.buf = bytearray(data)
        if self.u16(2) != TIFF_MAGIC:
            raise UnsupportedDirectoryLayout("TIFF magic number is not 42")

    @property
    def ifd0_offset(self) -> int:
        return self.u32(4)

    def u16(self, offset: int) -> int:
        return struct.unpack_from(self.endian + "H", self.buf, offset)[0]

    def u32(self, offset: int) -> int:
        return struct.unpack_from(self.endian + "I", self.buf, offset)[0]

    def put_u32(self, offset: int, value: int) -> None:
        struct.pack_into(self.endian + "I", self.buf, offset, value)

    def pack_offset(self, value: int) -> bytes:
        return struct.pack(self.endian + "I", value)

    def read_ifd(self, offset: int) -> Tuple[List[Tuple[int, TagEntry]], int]:
        """Return ``([(entry_position, entry), ...], next_ifd_offset)``."""
        size = len(self.buf)
        if offset < 8 or offset + 2 > size:
            raise UnsupportedDirectoryLayout(f"IFD offset {offset} outside EXIF block of {size} bytes")
        count = self.u16(offset)
        table_end = offset + 2 + count * ENTRY_SIZE
        if table_end + 4 > size:
            raise UnsupportedDirectoryLayout(f"IFD at {offset} with {count} entries runs past the block end")

        entries = []
        seen = set()
        for idx in range(count):
            pos = offset + 2 + idx * ENTRY_SIZE
            entry = TagEntry.unpack(self.buf[pos:pos + ENTRY_SIZE], self.endian)
            if entry.tag in seen:
                raise UnsupportedDirectoryLayout(f"Duplicate tag 0x{entry.tag:04X} in IFD at {offset}")
            seen.add(entry.tag)
            data_size = entry.data_size()
            if data_size is not None and data_size > 4 and entry.offset(self.endian) + data_size > size:
                raise UnsupportedDirectoryLayout(
                    f"Tag 0x{entry.tag:04X} points past the block end ({entry.offset(self.endian)}+{data_size})"
                )
            entries.append((pos, entry))
        return entries, self.u32(table_end)

    def append(self, data: bytes) -> int:
        """Append `data` at the next word boundary and return its offset."""
        if len(self.buf) % 2:
            self.buf.append(0)
        offset = len(self.buf)
        self.buf.extend(data)
        return offset

    def put_entry(self, position: int, entry: TagEntry) -> None:
        self.buf[position:position + ENTRY_SIZE] = entry.pack(self.endian)

    def encode_ifd(self, entries: List[TagEntry], next_offset: int) -> bytes:
        entries = sorted(entries, key=lambda e: e.tag)
        out = bytearray(struct.pack(self.endian + "H", len(entries)))
        for entry in entries:
            out += entry.pack(self.endian)
        out += struct.pack(self.endian + "I", next_offset)
        return bytes(out)

    def write_ascii(self, position: int, entry: TagEntry, value: bytes) -> TagEntry:
        """Store `value` for the entry at `position` and return the entry as now written."""
        if entry.type == TagType.ASCII and entry.count == len(value) and len(value) > 4:
            start = entry.offset(self.endian)
            if start < 8 or start + len(value) > len(self.buf):
                raise UnsupportedDirectoryLayout(f"Tag 0x{entry.tag:04X} value offset {start} is invalid")
            self.buf[start:start + len(value)] = value
            return entry
        logging.debug(
            "Relocating tag 0x%04X (type %s, count %s) to a %d byte value",
            entry.tag, entry.type, entry.count, len(value),
        )
        new_entry = TagEntry(entry.tag, TagType.ASCII, len(value), self.pack_offset(self.append(value)))
        self.put_entry(position, new_entry)
        return new_entry


def _date_values(taken: NormalizedTimestamp, digitized: NormalizedTimestamp) -> Dict[int, bytes]:
    return {
        TAG_DATETIME_ORIGINAL: taken.exif_bytes(),
        TAG_DATETIME_DIGITIZED: digitized.exif_bytes(),
    }


def build_tiff(taken: NormalizedTimestamp, digitized: NormalizedTimestamp) -> bytes:
    """A fresh big-endian TIFF holding only IFD0 -> Exif IFD -> the two dates."""
    endian = ">"
    values = _date_values(taken, digitized)
    ifd0_offset = 8
    exif_offset = ifd0_offset + 2 + ENTRY_SIZE + 4
    value_offset = exif_offset + 2 + len(values) * ENTRY_SIZE + 4

    exif_entries = []
    blobs = b""
    for tag, value in sorted(values.items()):
        exif_entries.append(
            TagEntry(tag, TagType.ASCII, len(value), struct.pack(endian + "I", value_offset + len(blobs)))
        )
        blobs += value

    block = TiffBlock(b"MM" + struct.pack(">HI", TIFF_MAGIC, ifd0_offset))
    pointer = TagEntry(TAG_EXIF_IFD, TagType.LONG, 1, struct.pack(endian + "I", exif_offset))
    block.buf += block.encode_ifd([pointer], 0)
    block.buf += block.encode_ifd(exif_entries, 0)
    block.buf += blobs
    return bytes(block.buf)


def patch_tiff(tiff: bytes, taken: NormalizedTimestamp, digitized: NormalizedTimestamp) -> bytes:
    """Write both dates into an existing TIFF structure; see the module docstring."""
    block = TiffBlock(tiff)
    ifd0_entries, ifd0_next = block.read_ifd(block.ifd0_offset)

    pointer = next(((pos, e) for pos, e in ifd0_entries if e.tag == TAG_EXIF_IFD), None)
    exif_entries: List[Tuple[int, TagEntry]] = []
    exif_next = 0
    if pointer is not None:
        entry = pointer[1]
        if entry.type not in (TagType.LONG, TagType.IFD) or entry.count != 1:
            raise UnsupportedDirectoryLayout(
                f"Exif IFD pointer has type {entry.type} and count {entry.count}"
            )
        exif_entries, exif_next = block.read_ifd(entry.offset(block.endian))

    current = {e.tag: e for _, e in exif_entries}
    positions = {e.tag: pos for pos, e in exif_entries}
    missing = []
    for tag, value in _date_values(taken, digitized).items():
        if tag in current:
            current[tag] = block.write_ascii(positions[tag], current[tag], value)
        else:
            missing.append((tag, value))

    if not missing:
        return bytes(block.buf)

    for tag, value in missing:
        current[tag] = TagEntry(tag, TagType.ASCII, len(value), block.pack_offset(block.append(value)))
    new_exif = block.append(block.encode_ifd(list(current.values()), exif_next))

    if pointer is not None:
        pos, entry = pointer
        block.put_entry(pos, replace(entry, value=block.pack_offset(new_exif)))
    else:
        link = TagEntry(TAG_EXIF_IFD, TagType.LONG, 1, block.pack_offset(new_exif))
        new_ifd0 = block.append(block.encode_ifd([e for _, e in ifd0_entries] + [link], ifd0_next))
        block.put_u32(4, new_ifd0)
    return bytes(block.buf)


def apply_dates(
    segments: List[Segment], taken: NormalizedTimestamp, digitized: NormalizedTimestamp
) -> List[Segment]:
    """Return a new segment list with both dates written into the Exif APP1.

    With no Exif APP1 present, a new one is inserted right after SOI. The
    input list is not modified.
    """
    if not segments or segments[0].marker != SOI:
        raise ValueError("Segment list must start with SOI")

    idx = find_exif(segments)
    if idx is None:
        payload = EXIF_HEADER + build_tiff(taken, digitized)
        return [segments[0], Segment(APP1, payload)] + list(segments[1:])

    original = segments[idx].payload
    payload = EXIF_HEADER + patch_tiff(original[len(EXIF_HEADER):], taken, digitized)
    if len(payload) > MAX_PAYLOAD:
        raise UnsupportedDirectoryLayout(
            f"Patched EXIF block of {len(payload)} bytes does not fit in one APP1 segment"
        )
    out = list(segments)
    out[idx] = replace(segments[idx], payload=payload)
    return out
