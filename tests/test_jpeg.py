import struct

import pytest

from takeout_restore import jpeg
from takeout_restore.errors import FormatError
from tests.helpers import jpeg_bytes


def _declared_lengths(data: bytes):
    """Walk the header segments by hand and yield (declared length, payload length)."""
    for seg in jpeg.parse(data):
        if seg.payload is not None and seg.marker != jpeg.SCAN_DATA:
            encoded = seg.encode()
            yield struct.unpack(">H", encoded[2:4])[0], len(seg.payload)


def test_round_trip_plain(plain_jpeg):
    assert jpeg.serialize(jpeg.parse(plain_jpeg)) == plain_jpeg


def test_round_trip_with_exif(exif_jpeg):
    assert jpeg.serialize(jpeg.parse(exif_jpeg)) == exif_jpeg


def test_structure(plain_jpeg):
    segments = jpeg.parse(plain_jpeg)
    assert segments[0] == jpeg.Segment(jpeg.SOI)
    assert segments[-2].marker == jpeg.SOS
    assert segments[-1].marker == jpeg.SCAN_DATA
    assert segments[-1].payload.endswith(b"\xff\xd9")
    assert jpeg.find_exif(segments) is None


def test_find_exif(exif_jpeg):
    segments = jpeg.parse(exif_jpeg)
    idx = jpeg.find_exif(segments)
    assert segments[idx].marker == jpeg.APP1
    assert segments[idx].payload.startswith(jpeg.EXIF_HEADER)


def test_length_field_counts_itself(exif_jpeg):
    for declared, payload_len in _declared_lengths(exif_jpeg):
        assert declared == payload_len + 2


def test_restart_markers_have_no_payload():
    data = b"\xff\xd8" + b"\xff\xd0" + b"\xff\xdb\x00\x03\x01" + b"\xff\xda\x00\x02" + b"\x12\x34\xff\xd9"
    segments = jpeg.parse(data)
    assert segments[1] == jpeg.Segment(0xD0)
    assert jpeg.serialize(segments) == data


def test_missing_soi():
    with pytest.raises(FormatError):
        jpeg.parse(b"\x89PNG\r\n\x1a\n")


def test_truncated_mid_segment(plain_jpeg):
    # the JFIF APP0 ends at offset 20; the next segment is cut short
    with pytest.raises(FormatError):
        jpeg.parse(plain_jpeg[:30])


def test_truncated_length_field():
    with pytest.raises(FormatError):
        jpeg.parse(b"\xff\xd8\xff\xe0\x00")


def test_missing_start_of_scan():
    data = b"\xff\xd8\xff\xe0\x00\x04ab"
    with pytest.raises(FormatError, match="start-of-scan"):
        jpeg.parse(data)


def test_eoi_before_scan():
    with pytest.raises(FormatError):
        jpeg.parse(b"\xff\xd8\xff\xd9")


def test_garbage_between_segments():
    with pytest.raises(FormatError):
        jpeg.parse(b"\xff\xd8\xff\xe0\x00\x04ab\x00\xff\xda\x00\x02")


def test_length_below_two():
    with pytest.raises(FormatError):
        jpeg.parse(b"\xff\xd8\xff\xe0\x00\x01\xff\xda\x00\x02")


def test_oversized_payload_refused():
    with pytest.raises(ValueError):
        jpeg.Segment(jpeg.APP1, b"x" * (jpeg.MAX_PAYLOAD + 1)).encode()


def test_larger_image_round_trips():
    data = jpeg_bytes(size=(320, 240), color="green")
    assert jpeg.serialize(jpeg.parse(data)) == data


def test_fill_bytes_before_marker_round_trip(plain_jpeg):
    padded = plain_jpeg[:2] + b"\xff\xff" + plain_jpeg[2:]
    segments = jpeg.parse(padded)
    assert segments[1].fill == 2
    assert segments[1].marker == jpeg.parse(plain_jpeg)[1].marker
    assert jpeg.serialize(segments) == padded


def test_fill_bytes_before_restart_marker():
    data = b"\xff\xd8\xff\xff\xd0\xff\xda\x00\x02\x12\x34\xff\xd9"
    segments = jpeg.parse(data)
    assert segments[1] == jpeg.Segment(0xD0, fill=1)
    assert jpeg.serialize(segments) == data


@pytest.mark.parametrize("data", [
    b"\xff\xd8\xff\xff\xff",
    b"\xff\xd8\xff\xff\x00\xff\xda\x00\x02",
])
def test_fill_bytes_without_a_marker(data):
    with pytest.raises(FormatError):
        jpeg.parse(data)
