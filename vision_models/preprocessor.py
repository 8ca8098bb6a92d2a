"""
Preprocessing for the model wrappers.

Responsibility:
    Convert a raw image (numpy array) into a 4D NCHW input blob using
    cv2.dnn.blobFromImage.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.

Hard-coded:
    - The image is stretched to the network input ("fill" resize, no
      letterbox), so x and y are rescaled independently afterwards.
    - No cropping.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from vision_models.config import ModelConfig


def preprocess(
    frame: np.ndarray,
    config: ModelConfig,
    size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """Convert an image into a DNN input blob.

    Args:
        frame: Input image, (H, W, 3) BGR or (H, W) grayscale.
        config: ModelConfig providing input_size, scale_factor,
                mean_values and swap_rb.
        size: Target (width, height). Defaults to config.input_size.

    Returns:
        A float32 array of shape (1, C, H, W).

    Raises:
        ValueError: If the frame is empty.
    """
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    channels = 1 if frame.ndim == 2 else frame.shape[2]
    mean = config.mean_values if channels == 3 else config.mean_values[0]

    blob = cv2.dnn.blobFromImage(
        image=frame,
        scalefactor=config.scale_factor,
        size=size or config.input_size,
        mean=mean,
        swapRB=config.swap_rb,
        crop=False,
    )

    return blob
