import json

import pytest

from takeout_restore.sidecar import SidecarRecord


def test_lookup_dotted_and_sequence_paths():
    record = SidecarRecord({"photoTakenTime": {"timestamp": "1"}, "title": "a.jpg"})
    assert record.lookup("photoTakenTime.timestamp") == "1"
    assert record.lookup(["photoTakenTime", "timestamp"]) == "1"
    assert record.title == "a.jpg"


def test_lookup_missing_returns_default():
    record = SidecarRecord({"photoTakenTime": {"timestamp": "1"}})
    assert record.lookup("creationTime.timestamp") is None
    assert record.lookup("photoTakenTime.timestamp.deeper", "x") == "x"


def test_record_is_read_only():
    record = SidecarRecord({"title": "a.jpg"})
    with pytest.raises(TypeError):
        record._data["title"] = "b.jpg"


def test_load_from_file_with_bom(tmp_path):
    path = tmp_path / "a.jpg.json"
    path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"title": "a.jpg"}).encode("utf-8"))
    record = SidecarRecord.load(path)
    assert record.title == "a.jpg"
    assert record.source == path


def test_non_object_document_rejected():
    with pytest.raises(TypeError):
        SidecarRecord.from_bytes(b"[1, 2, 3]")
