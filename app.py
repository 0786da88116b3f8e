"""
Image Optimizer API – kogniflow
Python/Flask backend using Pillow for decoding/encoding and numpy for pixel work.

Endpoints:
  POST /optimize – Accept one or more images + settings, return optimized images.
  POST /analyze  – Accept one image, return metadata and heuristic analysis.
  POST /batch    – Register a (simulated) batch job.
  GET  /batch    – Poll a (simulated) batch job.
  GET  /health   – Liveness check.
"""

from flask import Flask, jsonify, request
from flask_cors import CORS

from imgopt import DecodeError, ImageAnalyzer, ImageOptimizerError, OptimizationSettings, SettingsError
from imgopt.batch import UploadItem, batch_progress, optimize_files, start_batch
from imgopt.config import DefaultConfig
from imgopt.log import get_logger, setup_logging

app = Flask(__name__)
CORS(app)

app.config.from_object(DefaultConfig)
app.config.from_prefixed_env("IMGOPT")

setup_logging(app.config["LOG_LEVEL"])
logger = get_logger(__name__)

analyzer = ImageAnalyzer()


def _allowed(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in app.config["ALLOWED_EXTENSIONS"]


@app.route("/optimize", methods=["POST"])
def optimize_images():
    """Optimize every uploaded file with one settings snapshot.

    Files that fail to decode or encode are reported under ``errors`` and
    the remaining files are still processed.
    """

    files = request.files.getlist("files") or request.files.getlist("image")
    if not files:
        return jsonify({"error": "No files provided"}), 400

    # --- Parse settings ------------------------------------------------------
    try:
        settings = OptimizationSettings.from_form(request.form, app.config)
    except SettingsError as exc:
        return jsonify({"error": str(exc)}), 400

    # --- Build the work list -------------------------------------------------
    items = []
    rejected = []
    for index, file in enumerate(files):
        if not file.filename or not _allowed(file.filename):
            rejected.append(
                {"index": index, "name": file.filename or "", "error": "Invalid file type", "type": "InvalidFileType"}
            )
            continue
        items.append(UploadItem(file.read(), file.filename, file.mimetype))

    # --- Transform -----------------------------------------------------------
    outcome = optimize_files(items, settings, max_pixels=app.config["MAX_SURFACE_PIXELS"])
    errors = rejected + [e.to_dict() for e in outcome.errors]

    if not outcome.results:
        logger.error(f"No file could be optimized ({len(errors)} errors)")
        return jsonify({"error": "Failed to process images", "errors": errors}), 400

    return jsonify({"results": [r.to_dict() for r in outcome.results], "errors": errors})


@app.route("/analyze", methods=["POST"])
def analyze_image():
    """Return image metadata plus the heuristic analysis panel data."""

    file = request.files.get("file") or request.files.get("image")
    if file is None:
        return jsonify({"error": "No file provided"}), 400
    if not file.filename or not _allowed(file.filename):
        return jsonify({"error": "Invalid file type"}), 400

    try:
        result = analyzer.analyze(file.read(), file.filename, file.mimetype)
    except DecodeError as exc:
        return jsonify({"error": str(exc)}), 400
    except ImageOptimizerError as exc:
        logger.error(f"Error analyzing image: {exc}")
        return jsonify({"error": "Failed to analyze image"}), 500

    return jsonify(result.to_dict())


@app.route("/batch", methods=["POST"])
def create_batch():
    data = request.get_json(silent=True) or {}
    files = data.get("files")
    if not files or not isinstance(files, list):
        return jsonify({"error": "No files provided"}), 400

    try:
        OptimizationSettings.from_dict(data.get("settings"), app.config)
    except SettingsError as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(start_batch(files))


@app.route("/batch", methods=["GET"])
def get_batch():
    batch_id = request.args.get("batchId")
    if not batch_id:
        return jsonify({"error": "No batch ID provided"}), 400
    return jsonify(batch_progress(batch_id))


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=5000)
