"""Chunk codec and date writer for PNG files.

A PNG is an 8-byte signature followed by chunks of
``length (4, big-endian) | type (4 ASCII) | data | CRC-32 of type+data``,
starting with IHDR and ending with IEND. Dates go into ``tEXt`` chunks,
one per field, holding ``keyword\\0text`` in Latin-1.
"""
from __future__ import annotations

from dataclasses import dataclass
import struct
from typing import Iterable, List, Optional, Tuple
import zlib

from .errors import FormatError
from .timestamps import NormalizedTimestamp

PNG_SIGNATURE = bytes([137, 80, 78, 71, 13, 10, 26, 10])

IHDR = b"IHDR"
IEND = b"IEND"
TEXT = b"tEXt"

MAX_CHUNK_LENGTH = 2 ** 31 - 1

KEY_TAKEN = "DateTimeOriginal"
KEY_DIGITIZED = "DateTimeDigitized"


@dataclass(frozen=True)
class Chunk:
    type: bytes
    data: bytes = b""

    @property
    def crc(self) -> int:
        return zlib.crc32(self.type + self.data) & 0xFFFFFFFF

    def encode(self) -> bytes:
        return struct.pack(">I", len(self.data)) + self.type + self.data + struct.pack(">I", self.crc)

    def text_pair(self) -> Optional[Tuple[str, str]]:
        """``(keyword, text)`` for a tEXt chunk, None for anything else."""
        if self.type != TEXT or b"\x00" not in self.data:
            return None
        key, _, text = self.data.partition(b"\x00")
        return key.decode("latin-1"), text.decode("latin-1")

    def __repr__(self) -> str:
        return f"Chunk({self.type.decode('latin-1')}, {len(self.data)})"


def text_chunk(keyword: str, text: str) -> Chunk:
    key = keyword.encode("latin-1")
    if not 1 <= len(key) <= 79 or b"\x00" in key:
        raise ValueError(f"Invalid tEXt keyword {keyword!r}")
    return Chunk(TEXT, key + b"\x00" + text.encode("latin-1"))


def parse(data: bytes) -> List[Chunk]:
    """Split a PNG into chunks, verifying every CRC.

    Raises FormatError on a bad signature, a truncated chunk, a CRC
    mismatch, a first chunk other than IHDR, a missing IEND, or bytes
    after IEND.
    """
    data = bytes(data)
    if data[:8] != PNG_SIGNATURE:
        raise FormatError("Not a PNG: bad signature")

    chunks: List[Chunk] = []
    pos = 8
    size = len(data)
    while True:
        if pos + 8 > size:
            raise FormatError("PNG ends before IEND")
        length, ctype = struct.unpack(">I4s", data[pos:pos + 8])
        if length > MAX_CHUNK_LENGTH:
            raise FormatError(f"Chunk length {length} at offset {pos} exceeds the PNG limit")
        start = pos + 8
        end = start + length
        if end + 4 > size:
            raise FormatError(f"Chunk {ctype!r} at offset {pos} runs past the end of the file")
        chunk = Chunk(ctype, data[start:end])
        (stored_crc,) = struct.unpack(">I", data[end:end + 4])
        if stored_crc != chunk.crc:
            raise FormatError(f"CRC mismatch in chunk {ctype!r} at offset {pos}")
        if not chunks and ctype != IHDR:
            raise FormatError(f"First chunk is {ctype!r}, expected IHDR")
        chunks.append(chunk)
        pos = end + 4
        if ctype == IEND:
            break

    if pos != size:
        raise FormatError(f"{size - pos} bytes after IEND")
    return chunks


def serialize(chunks: Iterable[Chunk]) -> bytes:
    """Rebuild a PNG, computing every length field and CRC."""
    return PNG_SIGNATURE + b"".join(chunk.encode() for chunk in chunks)


def apply_dates(
    chunks: List[Chunk], taken: NormalizedTimestamp, digitized: NormalizedTimestamp
) -> List[Chunk]:
    """Return a new chunk list with the date tEXt chunks written.

    The first tEXt chunk with a matching keyword is replaced where it stands;
    keywords not present yet get a chunk inserted right after IHDR.
    """
    if not chunks or chunks[0].type != IHDR:
        raise ValueError("Chunk list must start with IHDR")

    out = list(chunks)
    inserts = []
    for keyword, stamp in ((KEY_TAKEN, taken), (KEY_DIGITIZED, digitized)):
        new_chunk = text_chunk(keyword, stamp.render())
        for idx, chunk in enumerate(out):
            pair = chunk.text_pair()
            if pair is not None and pair[0] == keyword:
                out[idx] = new_chunk
                break
        else:
            inserts.append(new_chunk)
    return out[:1] + inserts + out[1:]
