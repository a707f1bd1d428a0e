"""Extractor: read the capture dates back out of an image.

Used to verify a rewrite with readers independent of the codecs that wrote
it: Pillow + piexif for JPEG EXIF, Pillow's text chunks for PNG, and
exifread as a second opinion when piexif finds nothing.
"""
from __future__ import annotations

from datetime import datetime
import io
import logging
import struct
from typing import Dict, Optional

import exifread
import piexif
from PIL import Image, UnidentifiedImageError

from .png import KEY_DIGITIZED, KEY_TAKEN
from .timestamps import EXIF_DT_FMT, NormalizedTimestamp

TAKEN = "taken"
DIGITIZED = "digitized"


def _parse_exif_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    value = str(value).replace("\x00", "").strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, EXIF_DT_FMT)
    except ValueError:
        logging.debug("Unparseable EXIF date %r", value)
        return None


def _from_piexif(exif_bytes: bytes) -> Dict[str, Optional[datetime]]:
    exif = piexif.load(exif_bytes)
    exif_ifd = exif.get("Exif", {})
    return {
        TAKEN: _parse_exif_datetime(exif_ifd.get(piexif.ExifIFD.DateTimeOriginal)),
        DIGITIZED: _parse_exif_datetime(exif_ifd.get(piexif.ExifIFD.DateTimeDigitized)),
    }


def _from_exifread(data: bytes) -> Dict[str, Optional[datetime]]:
    tags = exifread.process_file(io.BytesIO(data), details=False)
    return {
        TAKEN: _parse_exif_datetime(tags.get("EXIF DateTimeOriginal")),
        DIGITIZED: _parse_exif_datetime(tags.get("EXIF DateTimeDigitized")),
    }


def read_capture_dates(data: bytes) -> Dict[str, Optional[datetime]]:
    """Return ``{"taken": datetime|None, "digitized": datetime|None}`` for image bytes.

    Missing or unreadable metadata yields None values rather than an error.
    """
    meta: Dict[str, Optional[datetime]] = {TAKEN: None, DIGITIZED: None}
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format == "PNG":
                text = getattr(img, "text", None) or {}
                meta[TAKEN] = _parse_exif_datetime(text.get(KEY_TAKEN))
                meta[DIGITIZED] = _parse_exif_datetime(text.get(KEY_DIGITIZED))
                return meta
            exif_bytes = img.info.get("exif")
            if exif_bytes:
                meta.update(_from_piexif(exif_bytes))
    except (UnidentifiedImageError, OSError, ValueError, struct.error) as exc:
        logging.debug("Pillow/piexif could not read dates: %s", exc)

    if meta[TAKEN] is None and meta[DIGITIZED] is None:
        try:
            meta.update(_from_exifread(data))
        except (ValueError, KeyError, IndexError, struct.error) as exc:
            logging.debug("exifread could not read dates: %s", exc)
    return meta


def matches(data: bytes, taken: NormalizedTimestamp, digitized: NormalizedTimestamp) -> bool:
    """Whether both dates read back from `data` equal the expected ones."""
    found = read_capture_dates(data)
    return found[TAKEN] == taken.to_datetime() and found[DIGITIZED] == digitized.to_datetime()
