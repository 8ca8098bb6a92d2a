"""
Serialization of detection results.

Responsibility:
    Export detections to JSON or CSV for downstream consumption.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output; writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from vision_models.detection import Detection

logger = logging.getLogger(__name__)

DetectionsByImage = Dict[str, List[Detection]]

_CSV_FIELDS = ["image", "label_id", "label", "confidence", "x", "y", "width", "height", "landmarks"]


def _by_image(detections_by_image: DetectionsByImage) -> Iterator[Tuple[str, List[Detection]]]:
    for image_id in sorted(detections_by_image):
        yield image_id, detections_by_image[image_id]


def save_json(detections_by_image: DetectionsByImage, output_path: str) -> None:
    """Write every image's detections to one JSON document.

    Layout:
        {
            "images": [
                {"image": "face.jpg", "detections": [Detection.to_dict(), ...]},
                ...
            ],
            "total_images": N,
            "total_detections": M
        }

    Images are sorted by id. The "landmarks" key only appears on
    detections that carry landmarks.

    Raises:
        OSError: If the output path is not writable.
    """
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    images = [
        {"image": image_id, "detections": [d.to_dict() for d in dets]}
        for image_id, dets in _by_image(detections_by_image)
    ]
    total_detections = sum(len(entry["detections"]) for entry in images)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "images": images,
                "total_images": len(images),
                "total_detections": total_detections,
            },
            f,
            indent=2,
        )

    logger.info(
        "JSON output saved: %s (%d images, %d detections)",
        output_path, len(images), total_detections,
    )


def _csv_row(image_id: str, det: Detection) -> dict:
    row = det.to_dict()
    points = row.pop("landmarks", [])
    row["landmarks"] = ";".join(f"{x} {y}" for x, y in points)
    row["image"] = image_id
    return row


def save_csv(detections_by_image: DetectionsByImage, output_path: str) -> None:
    """Write one CSV row per detection.

    Landmarks go into a single column as "x1 y1;x2 y2;...", empty for
    detections without landmarks.

    Raises:
        OSError: If the output path is not writable.
    """
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    rows = [
        _csv_row(image_id, det)
        for image_id, dets in _by_image(detections_by_image)
        for det in dets
    ]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_FIELDS)
        writer.writeheader()
        writer.writerows(rows)

    logger.info("CSV output saved: %s (%d rows)", output_path, len(rows))
