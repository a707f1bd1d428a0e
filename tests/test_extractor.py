from datetime import datetime

from takeout_restore import extractor
from takeout_restore.filetypes import ContainerKind
from takeout_restore.injector import inject
from tests.helpers import LATER, NEW_YEAR_2021


def test_no_dates(plain_jpeg, plain_png):
    assert extractor.read_capture_dates(plain_jpeg) == {"taken": None, "digitized": None}
    assert extractor.read_capture_dates(plain_png) == {"taken": None, "digitized": None}


def test_jpeg_dates(plain_jpeg):
    out = inject(plain_jpeg, ContainerKind.JPEG, NEW_YEAR_2021, LATER)
    assert extractor.read_capture_dates(out) == {
        "taken": datetime(2021, 1, 1),
        "digitized": datetime(2022, 7, 14, 18, 30, 5),
    }


def test_png_dates(plain_png):
    out = inject(plain_png, ContainerKind.PNG, NEW_YEAR_2021, LATER)
    assert extractor.matches(out, NEW_YEAR_2021, LATER)
    assert not extractor.matches(out, LATER, LATER)


def test_garbage_is_not_an_error():
    assert extractor.read_capture_dates(b"not an image") == {"taken": None, "digitized": None}
