import time

import pytest

from takeout_restore.dashboard import app


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def _wait_for(client, job_id, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/restore/status?job={job_id}").get_json()
        if body["state"] in ("done", "error"):
            return body
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish")


def test_home(client):
    body = client.get("/api/home").get_json()
    assert body["path"]


def test_restore_requires_source(client):
    assert client.post("/api/restore", json={}).status_code == 400
    assert client.post("/api/restore", json={"source": 5}).status_code == 400


def test_restore_unknown_source(client, tmp_path):
    response = client.post("/api/restore", json={"source": str(tmp_path / "missing")})
    assert response.status_code == 404


def test_dry_run_must_be_bool(client, takeout_dir):
    response = client.post("/api/restore", json={"source": str(takeout_dir), "dry_run": "yes"})
    assert response.status_code == 400


def test_status_errors(client):
    assert client.get("/api/restore/status").status_code == 400
    assert client.get("/api/restore/status?job=unknown").status_code == 404


def test_dry_run_job(client, takeout_dir):
    before = (takeout_dir / "photo.jpg").read_bytes()
    response = client.post("/api/restore", json={"source": str(takeout_dir), "dry_run": True})
    assert response.status_code == 202
    body = _wait_for(client, response.get_json()["job"])
    assert body["state"] == "done"
    assert body["total"] == 2
    assert body["processed"] == 2
    assert body["dryrun"] == 2
    assert body["percent"] == 100.0
    assert (takeout_dir / "photo.jpg").read_bytes() == before


def test_job_writes(client, takeout_dir):
    response = client.post("/api/restore", json={"source": str(takeout_dir)})
    body = _wait_for(client, response.get_json()["job"])
    assert body["written"] == 2
    assert body["errors"] == []
