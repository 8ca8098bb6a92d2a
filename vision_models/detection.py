"""
Result data transfer objects.

This module defines the frozen containers returned by the model
wrappers: Detection (one labelled box, optionally with landmarks) and
ImageResult (the output image of a super-resolution model).

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation methods (that belongs in postprocessor).
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class Detection:
    """A single detected object.

    Attributes:
        label_id: Index of the label in the model's label list.
        label: Human-readable label (e.g. "Face").
        confidence: Detection confidence score in [0.0, 1.0].
        x: Left edge in original-image pixels.
        y: Top edge in original-image pixels.
        width: Box width in original-image pixels.
        height: Box height in original-image pixels.
        landmarks: Facial landmark points in original-image pixels.
                   Empty when the model has no landmark output.
    """

    label_id: int
    label: str
    confidence: float
    x: float
    y: float
    width: float
    height: float
    landmarks: Tuple[Point, ...] = ()

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        data = {
            "label_id": self.label_id,
            "label": self.label,
            "confidence": round(self.confidence, 4),
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "width": round(self.width, 2),
            "height": round(self.height, 2),
        }
        if self.landmarks:
            data["landmarks"] = [[round(px, 2), round(py, 2)] for px, py in self.landmarks]
        return data

    @property
    def x2(self) -> float:
        """Right edge in pixels."""
        return self.x + self.width

    @property
    def y2(self) -> float:
        """Bottom edge in pixels."""
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class ImageResult:
    """Output of an image-to-image model.

    Attributes:
        image: uint8 image, (H, W) for single-channel models or
               (H, W, 3) for three-channel models.
    """

    image: np.ndarray

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of the result image."""
        h, w = self.image.shape[:2]
        return w, h
