"""
Visualization for detection results.

Responsibility:
    Draw bounding boxes, labels and landmark points onto a frame. This
    is a pure rendering module; it produces an annotated copy of the
    frame and performs no I/O.

Non-goals:
    - No file writing or window management.
    - No detection or model logic.
"""

from typing import List

import cv2
import numpy as np

from vision_models.config import VisualizationConfig
from vision_models.detection import Detection

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4
_LANDMARK_RADIUS = 2


def draw_detections(
    frame: np.ndarray,
    detections: List[Detection],
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw detections onto a copy of the frame.

    Args:
        frame: Input BGR image (not modified, a copy is returned).
        detections: List of Detection objects to render.
        config: Visualization parameters (colors, thickness, labels).

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = frame.copy()

    for det in detections:
        x1, y1 = int(round(det.x)), int(round(det.y))
        x2, y2 = int(round(det.x2)), int(round(det.y2))

        cv2.rectangle(
            annotated,
            (x1, y1),
            (x2, y2),
            color=config.box_color,
            thickness=config.thickness,
        )

        if config.show_landmarks:
            for px, py in det.landmarks:
                cv2.circle(
                    annotated,
                    (int(round(px)), int(round(py))),
                    _LANDMARK_RADIUS,
                    config.landmark_color,
                    cv2.FILLED,
                )

        if config.show_confidence:
            label = f"{det.label} {det.confidence:.2f}"
            (text_w, text_h), _ = cv2.getTextSize(
                label, _FONT, _FONT_SCALE, _FONT_THICKNESS
            )

            # Above the box, or below if too close to top
            label_y = y1 - _LABEL_PADDING
            if label_y - text_h - _LABEL_PADDING < 0:
                label_y = y2 + text_h + _LABEL_PADDING

            cv2.rectangle(
                annotated,
                (x1, label_y - text_h - _LABEL_PADDING),
                (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
                color=config.box_color,
                thickness=cv2.FILLED,
            )
            cv2.putText(
                annotated,
                label,
                (x1 + _LABEL_PADDING // 2, label_y),
                _FONT,
                _FONT_SCALE,
                (0, 0, 0),
                _FONT_THICKNESS,
                cv2.LINE_AA,
            )

    return annotated


def show_frame(window: str, frame: np.ndarray) -> int:
    """Show a frame in a window and return the key pressed, or -1."""
    cv2.imshow(window, frame)
    return cv2.waitKey(1) & 0xFF
