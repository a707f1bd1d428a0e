from flask import Flask, request, jsonify
from pathlib import Path

from takeout_restore.config import load_settings
from takeout_restore.services.job_store import restore_jobs, now_ts
from takeout_restore.services.restore_runner import start_restore_job
from takeout_restore.utils.paths import normalize_user_path, display_path

app = Flask(__name__)


@app.route('/api/home', methods=['GET'])
def api_home():
    home = str(Path.home())
    return jsonify({'path': home, 'display': display_path(home)})


@app.route("/api/restore", methods=["POST"])
def api_restore():
    data = request.get_json(silent=True) or {}
    source = data.get("source")
    if not source or not isinstance(source, str):
        return jsonify({"error": "source required"}), 400
    resolved = normalize_user_path(source)
    if not Path(resolved).exists():
        return jsonify({"error": "source not found", "path": resolved}), 404

    dry_run = data.get("dry_run")
    if dry_run is not None and not isinstance(dry_run, bool):
        return jsonify({"error": "dry_run must be a boolean"}), 400
    settings = load_settings().merged(dry_run=dry_run)
    job_id = start_restore_job(resolved, settings)
    return jsonify({"job": job_id}), 202


@app.route("/api/restore/status", methods=["GET"])
def api_restore_status():
    job_id = request.args.get("job")
    if not job_id:
        return jsonify({"error": "job id required"}), 400
    job = restore_jobs.get(job_id)
    if not job:
        return jsonify({"error": "job not found"}), 404

    response = dict(job)
    total = job.get("total") or 0
    processed = job.get("processed") or 0
    start = job.get("start_time")
    end = job.get("finished_time") or now_ts()
    response["elapsed_seconds"] = end - start if start else None
    response["percent"] = round(processed / total * 100, 2) if total else None
    if job.get("current_file"):
        response["current_file_display"] = display_path(job["current_file"])
    return jsonify(response)


if __name__ == "__main__":
    app.run(host="127.0.0.1", port=5000, debug=True)
