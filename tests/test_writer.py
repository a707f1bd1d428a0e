import os
import stat

from takeout_restore.writer import (
    STATUS_DRYRUN,
    STATUS_UNCHANGED,
    STATUS_WRITTEN,
    backup_path,
    write_image,
)


def test_unchanged_not_touched(tmp_path):
    target = tmp_path / "a.jpg"
    target.write_bytes(b"same")
    before = target.stat().st_mtime_ns
    assert write_image(target, b"same", original=b"same") == STATUS_UNCHANGED
    assert target.stat().st_mtime_ns == before


def test_dry_run(tmp_path):
    target = tmp_path / "a.jpg"
    target.write_bytes(b"old")
    assert write_image(target, b"new", original=b"old", dry_run=True) == STATUS_DRYRUN
    assert target.read_bytes() == b"old"


def test_write_replaces_and_keeps_mode(tmp_path):
    target = tmp_path / "a.jpg"
    target.write_bytes(b"old")
    os.chmod(target, 0o640)
    assert write_image(target, b"new", original=b"old") == STATUS_WRITTEN
    assert target.read_bytes() == b"new"
    assert stat.S_IMODE(target.stat().st_mode) == 0o640
    assert [p.name for p in tmp_path.iterdir()] == ["a.jpg"]


def test_backup_kept_once(tmp_path):
    target = tmp_path / "a.jpg"
    target.write_bytes(b"first")
    write_image(target, b"second", backup=True)
    write_image(target, b"third", backup=True)
    assert backup_path(target).read_bytes() == b"first"
    assert target.read_bytes() == b"third"
