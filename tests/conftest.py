import json

import piexif
import pytest

from tests.helpers import jpeg_bytes, png_bytes, sidecar_dict


@pytest.fixture
def plain_jpeg():
    return jpeg_bytes()


@pytest.fixture
def exif_jpeg():
    """JPEG whose EXIF has a Make tag and a short (11 byte) DateTimeOriginal."""
    exif = piexif.dump({
        "0th": {piexif.ImageIFD.Make: b"Canon"},
        "Exif": {piexif.ExifIFD.DateTimeOriginal: b"2010:01:01"},
    })
    return jpeg_bytes(exif=exif)


@pytest.fixture
def plain_png():
    return png_bytes()


@pytest.fixture
def takeout_dir(tmp_path):
    """A tiny Takeout-like tree: one JPEG at the top, one PNG in an album folder."""
    (tmp_path / "photo.jpg").write_bytes(jpeg_bytes())
    (tmp_path / "photo.jpg.json").write_text(json.dumps(sidecar_dict()), encoding="utf-8")
    album = tmp_path / "Album 2021"
    album.mkdir()
    (album / "shot.png").write_bytes(png_bytes())
    (album / "shot.png.supplemental-metadata.json").write_text(
        json.dumps(sidecar_dict(taken="1657823405", created="1657823405", title="shot.png")), encoding="utf-8"
    )
    return tmp_path
