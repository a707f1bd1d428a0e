import json
import logging

import pytest

from takeout_restore.config import SETTINGS_FILENAME, RestoreSettings, load_settings, parse_settings


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_settings() == RestoreSettings()


def test_file_in_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / SETTINGS_FILENAME).write_text(json.dumps({"workers": 2, "backup": True}), encoding="utf-8")
    settings = load_settings()
    assert settings.workers == 2
    assert settings.backup is True
    assert settings.dry_run is False


def test_explicit_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.json")


def test_invalid_values_fall_back(caplog):
    with caplog.at_level(logging.WARNING):
        settings = parse_settings({"workers": 0, "dry_run": "yes", "log_level": "chatty", "unknown": 1})
    assert settings == RestoreSettings()
    assert "workers" in caplog.text


def test_suffixes_and_level():
    settings = parse_settings({"sidecar_suffixes": [".meta.json", ".json"], "log_level": "debug"})
    assert settings.sidecar_suffixes == (".meta.json", ".json")
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("content", ["[1, 2]", "{broken"])
def test_unusable_file_gives_defaults(tmp_path, content):
    path = tmp_path / "s.json"
    path.write_text(content, encoding="utf-8")
    assert load_settings(path) == RestoreSettings()


def test_merged_ignores_none():
    settings = RestoreSettings(workers=8).merged(workers=None, dry_run=True)
    assert settings.workers == 8
    assert settings.dry_run is True
