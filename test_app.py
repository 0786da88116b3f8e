"""
Tests for the Image Optimizer Flask API.
"""

import base64
import io
import json

import pytest
from PIL import Image

from app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


def _decode_data_uri(uri):
    raw = base64.b64decode(uri.split(",", 1)[1])
    return Image.open(io.BytesIO(raw))


# ── Health endpoint ────────────────────────────────────────────────────────────

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = json.loads(resp.data)
    assert data["status"] == "ok"


# ── /optimize – missing / invalid input ───────────────────────────────────────

def test_optimize_no_files(client):
    resp = client.post("/optimize")
    assert resp.status_code == 400
    assert "error" in json.loads(resp.data)


def test_optimize_invalid_filetype(client):
    data = {"files": (io.BytesIO(b"not an image"), "file.txt")}
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    result = json.loads(resp.data)
    assert result["errors"][0]["error"] == "Invalid file type"


def test_optimize_corrupt_image(client):
    data = {"files": (io.BytesIO(b"not an image"), "file.jpg")}
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    result = json.loads(resp.data)
    assert result["errors"][0]["type"] == "DecodeError"


def test_optimize_bad_settings(client, image_bytes):
    data = {"files": (io.BytesIO(image_bytes()), "test.jpg"), "quality": "lots"}
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "quality" in json.loads(resp.data)["error"]


# ── /optimize – successful processing ────────────────────────────────────────

def test_optimize_returns_data_uri(client, image_bytes):
    data = {"files": (io.BytesIO(image_bytes()), "test.jpg")}
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    result = json.loads(resp.data)["results"][0]
    assert result["name"] == "test-optimized.jpg"
    assert result["format"] == "jpeg"
    assert result["url"].startswith("data:image/jpeg;base64,")
    assert (result["width"], result["height"]) == (100, 100)


def test_optimize_convert_resize(client, photo_bytes):
    data = {
        "files": (io.BytesIO(photo_bytes(800, 600)), "big.jpg"),
        "convertToWebP": "true",
        "resizeImages": "true",
        "maxWidth": "400",
        "maxHeight": "400",
        "quality": "70",
    }
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    result = json.loads(resp.data)["results"][0]
    assert result["name"] == "big-optimized.webp"
    assert (result["width"], result["height"]) == (400, 300)
    assert result["newSize"] < result["originalSize"]

    out_img = _decode_data_uri(result["url"])
    assert out_img.format == "WEBP"
    assert out_img.size == (400, 300)


def test_optimize_enhance(client, image_bytes):
    data = {
        "files": (io.BytesIO(image_bytes(color=(100, 100, 100), fmt="PNG")), "gray.png"),
        "enhanceImage": "true",
    }
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    out_img = _decode_data_uri(json.loads(resp.data)["results"][0]["url"]).convert("RGB")
    assert out_img.getpixel((50, 50)) == (115, 115, 115)


def test_optimize_multiple_files_skips_failures(client, image_bytes):
    data = {
        "files": [
            (io.BytesIO(image_bytes()), "one.jpg"),
            (io.BytesIO(b"garbage"), "two.jpg"),
            (io.BytesIO(image_bytes(fmt="PNG")), "three.png"),
        ]
    }
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    payload = json.loads(resp.data)
    assert [r["originalName"] for r in payload["results"]] == ["one.jpg", "three.png"]
    assert [e["name"] for e in payload["errors"]] == ["two.jpg"]


def test_optimize_accepts_image_field(client, image_bytes):
    data = {"image": (io.BytesIO(image_bytes()), "test.jpg")}
    resp = client.post("/optimize", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    assert len(json.loads(resp.data)["results"]) == 1


# ── /analyze ──────────────────────────────────────────────────────────────────

def test_analyze_no_file(client):
    resp = client.post("/analyze")
    assert resp.status_code == 400


def test_analyze_invalid_filetype(client):
    data = {"file": (io.BytesIO(b"hello"), "notes.txt")}
    resp = client.post("/analyze", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400


def test_analyze_corrupt_image(client):
    data = {"file": (io.BytesIO(b"not an image"), "broken.png")}
    resp = client.post("/analyze", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "broken.png" in json.loads(resp.data)["error"]


def test_analyze_image(client, image_bytes):
    data = {"file": (io.BytesIO(image_bytes(300, 200, fmt="PNG")), "pic.png")}
    resp = client.post("/analyze", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    payload = json.loads(resp.data)
    assert payload["metadata"]["width"] == 300
    assert payload["metadata"]["format"] == "png"
    assert payload["metadata"]["channels"] == 3
    assert payload["analysis"]["dominant_colors"][0]["color"] == "#804020"
    assert 0 <= payload["analysis"]["quality_score"] <= 100
    assert "Close-up" in payload["analysis"]["labels"]


# ── /batch ────────────────────────────────────────────────────────────────────

def test_batch_start(client):
    resp = client.post("/batch", json={"files": ["a.jpg", "b.jpg"], "settings": {"quality": 70}})
    assert resp.status_code == 200
    payload = json.loads(resp.data)
    assert payload["totalFiles"] == 2
    assert payload["estimatedTime"] == 4
    assert payload["batchId"]


def test_batch_start_without_files(client):
    resp = client.post("/batch", json={"files": []})
    assert resp.status_code == 400


def test_batch_start_bad_settings(client):
    resp = client.post("/batch", json={"files": ["a.jpg"], "settings": {"convertToFormat": "heic"}})
    assert resp.status_code == 400


def test_batch_poll(client):
    resp = client.get("/batch?batchId=xyz")
    assert resp.status_code == 200
    payload = json.loads(resp.data)
    assert payload["batchId"] == "xyz"
    assert 0 <= payload["progress"] <= 100
    assert payload["status"] in ("processing", "complete")


def test_batch_poll_without_id(client):
    resp = client.get("/batch")
    assert resp.status_code == 400
