"""Builders for in-memory test images and sidecar documents."""
from __future__ import annotations

import io
import struct

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from takeout_restore.timestamps import NormalizedTimestamp

NEW_YEAR_2021 = NormalizedTimestamp(2021, 1, 1, 0, 0, 0)
LATER = NormalizedTimestamp(2022, 7, 14, 18, 30, 5)


def jpeg_bytes(exif: bytes | None = None, size=(16, 16), color="blue") -> bytes:
    buf = io.BytesIO()
    img = Image.new("RGB", size, color=color)
    if exif is None:
        img.save(buf, "JPEG")
    else:
        img.save(buf, "JPEG", exif=exif)
    return buf.getvalue()


def png_bytes(text: dict | None = None, size=(4, 4)) -> bytes:
    buf = io.BytesIO()
    info = PngInfo()
    for key, value in (text or {}).items():
        info.add_text(key, value)
    Image.new("RGB", size, color="red").save(buf, "PNG", pnginfo=info)
    return buf.getvalue()


def little_endian_tiff(date_original: bytes) -> bytes:
    """II TIFF: IFD0 {Make, ExifIFD} -> Exif IFD {DateTimeOriginal}."""
    ifd0 = 8
    exif = ifd0 + 2 + 2 * 12 + 4
    data = exif + 2 + 12 + 4
    make = b"Canon\x00"
    out = b"II" + struct.pack("<HI", 42, ifd0)
    out += struct.pack("<H", 2)
    out += struct.pack("<HHII", 0x010F, 2, len(make), data)
    out += struct.pack("<HHII", 0x8769, 4, 1, exif)
    out += struct.pack("<I", 0)
    out += struct.pack("<H", 1)
    out += struct.pack("<HHII", 0x9003, 2, len(date_original), data + len(make))
    out += struct.pack("<I", 0)
    return out + make + date_original


def sidecar_dict(taken="1609459200", created="1609459200", title="photo.jpg") -> dict:
    doc = {"title": title}
    if taken is not None:
        doc["photoTakenTime"] = {"timestamp": taken}
    if created is not None:
        doc["creationTime"] = {"timestamp": created}
    return doc




def png_text(data: bytes) -> dict:
    """Text chunks of a PNG as Pillow reads them."""
    with Image.open(io.BytesIO(data)) as img:
        return dict(img.text)
