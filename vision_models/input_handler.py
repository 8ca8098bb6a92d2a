"""
Input handling for the command-line pipeline.

Responsibility:
    Yield images from a single file or a directory as
    (image_id, frame) pairs.

Non-goals:
    - No video or camera capture.
    - No detection, drawing, or output writing.

Robustness:
    - Validates the source before yielding anything.
    - Logs and skips unreadable files (never crashes the pipeline).
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


def list_images(source: str) -> List[Path]:
    """Resolve a source into a sorted list of image paths.

    Raises:
        FileNotFoundError: If the source does not exist.
        ValueError: If the source holds no supported image.
    """
    path = Path(source.strip())

    if path.is_file():
        if path.suffix.lower() not in _IMAGE_EXTENSIONS:
            raise ValueError(
                f"Unrecognized file extension: '{path.suffix}' for source '{source}'. "
                f"Supported images: {sorted(_IMAGE_EXTENSIONS)}."
            )
        return [path]

    if path.is_dir():
        images = sorted(p for p in path.iterdir() if p.suffix.lower() in _IMAGE_EXTENSIONS)
        if not images:
            raise ValueError(
                f"No image files found in directory: '{source}'. "
                f"Supported extensions: {sorted(_IMAGE_EXTENSIONS)}."
            )
        logger.info("Found %d images in directory: %s", len(images), source)
        return images

    raise FileNotFoundError(
        f"Input source not found: '{source}'. Provide an image file or a directory."
    )


def iter_images(
    paths: List[Path],
    resize_width: Optional[int] = None,
) -> Iterator[Tuple[str, np.ndarray]]:
    """Read images one by one, yielding (file name, BGR frame)."""
    for path in paths:
        frame = cv2.imread(str(path))
        if frame is None:
            logger.warning("Skipping unreadable image: %s", path)
            continue
        yield path.name, _maybe_resize(frame, resize_width)


def _maybe_resize(frame: np.ndarray, resize_width: Optional[int]) -> np.ndarray:
    """Downscale to resize_width, preserving aspect ratio."""
    if resize_width is None:
        return frame

    h, w = frame.shape[:2]
    if w <= resize_width:
        return frame

    new_h = int(h * resize_width / w)
    return cv2.resize(frame, (resize_width, new_h), interpolation=cv2.INTER_AREA)
