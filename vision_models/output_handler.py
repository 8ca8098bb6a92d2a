"""
Output handling for the command-line pipeline.

Responsibility:
    Route results to the configured sinks: display window, annotated
    images on disk, JSON, or CSV. Several modes can be active at once.

Non-goals:
    - No detection logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Dict, List, Set

import cv2
import numpy as np

from vision_models.config import AppConfig, get_project_root
from vision_models.detection import Detection, ImageResult
from vision_models.serializer import save_csv, save_json
from vision_models.visualizer import draw_detections, show_frame

logger = logging.getLogger(__name__)

_WINDOW = "Vision Models"
_QUIT_KEYS = {ord("q"), 27}  # 'q' or ESC


class OutputHandler:
    """Routes results to configured output sinks.

    Modes:
        - 'display': Show each result in an OpenCV window.
        - 'save_image': Write the annotated (or upscaled) image.
        - 'save_json': Accumulate detections, write JSON on finalize.
        - 'save_csv': Accumulate detections, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_detections(image_id, frame, detections)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._modes: Set[str] = set(m.strip() for m in config.output.mode.split(','))
        self._detections_buffer: Dict[str, List[Detection]] = {}

        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        if self._modes & {'save_image', 'save_json', 'save_csv'}:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    def process_detections(
        self,
        image_id: str,
        frame: np.ndarray,
        detections: List[Detection],
    ) -> bool:
        """Route one image's detections.

        Returns:
            True to continue processing, False if the user asked to stop
            (quit key in display mode).
        """
        if 'save_json' in self._modes or 'save_csv' in self._modes:
            self._detections_buffer[image_id] = detections

        if not self._modes & {'display', 'save_image'}:
            return True

        annotated = draw_detections(frame, detections, self._config.visualization)
        return self._emit_image(image_id, annotated)

    def process_image(self, image_id: str, result: ImageResult) -> bool:
        """Route one super-resolution result. Same return value as process_detections."""
        return self._emit_image(image_id, result.image)

    def _emit_image(self, image_id: str, image: np.ndarray) -> bool:
        if 'save_image' in self._modes:
            output_file = self._save_path / f"{Path(image_id).stem}.png"
            cv2.imwrite(str(output_file), image)
            logger.debug("Saved %s to %s", image_id, output_file)

        if 'display' in self._modes:
            key = show_frame(_WINDOW, image)
            if key in _QUIT_KEYS:
                logger.info("Quit signal received (key press).")
                return False

        return True

    def finalize(self) -> None:
        """Flush buffered output and release resources.

        Must be called after all images have been processed.
        """
        if 'save_json' in self._modes and self._detections_buffer:
            save_json(self._detections_buffer, str(self._save_path / "detections.json"))

        if 'save_csv' in self._modes and self._detections_buffer:
            save_csv(self._detections_buffer, str(self._save_path / "detections.csv"))

        if 'display' in self._modes:
            cv2.destroyAllWindows()

        self._detections_buffer.clear()
        logger.info("OutputHandler finalized.")
