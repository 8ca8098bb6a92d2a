"""
Tests for JSON/CSV export and output routing.
"""

import csv
import json

import numpy as np

from vision_models.config import AppConfig, OutputConfig
from vision_models.detection import Detection
from vision_models.output_handler import OutputHandler
from vision_models.serializer import save_csv, save_json

DETECTIONS = {
    "b.jpg": [Detection(0, "Face", 0.91234, 10.0, 20.0, 30.5, 40.25)],
    "a.jpg": [
        Detection(0, "Face", 0.8, 1.0, 2.0, 3.0, 4.0, landmarks=((1.5, 2.5), (3.0, 4.0))),
    ],
}


def test_save_json(tmp_path):
    path = tmp_path / "out" / "detections.json"

    save_json(DETECTIONS, str(path))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["total_images"] == 2
    assert payload["total_detections"] == 2
    assert [img["image"] for img in payload["images"]] == ["a.jpg", "b.jpg"]

    first = payload["images"][0]["detections"][0]
    assert first["landmarks"] == [[1.5, 2.5], [3.0, 4.0]]
    second = payload["images"][1]["detections"][0]
    assert second["confidence"] == 0.9123
    assert "landmarks" not in second


def test_save_csv(tmp_path):
    path = tmp_path / "detections.csv"

    save_csv(DETECTIONS, str(path))

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    assert len(rows) == 2
    assert rows[0]["image"] == "a.jpg"
    assert rows[0]["landmarks"] == "1.5 2.5;3.0 4.0"
    assert rows[1]["landmarks"] == ""
    assert rows[1]["width"] == "30.5"


def test_output_handler_writes_on_finalize(tmp_path):
    config = AppConfig(output=OutputConfig(mode="save_json, save_csv", save_path=str(tmp_path)))
    handler = OutputHandler(config)
    frame = np.zeros((50, 50, 3), dtype=np.uint8)

    for image_id, dets in DETECTIONS.items():
        assert handler.process_detections(image_id, frame, dets)

    assert not (tmp_path / "detections.json").exists()
    handler.finalize()

    assert (tmp_path / "detections.json").exists()
    assert (tmp_path / "detections.csv").exists()
