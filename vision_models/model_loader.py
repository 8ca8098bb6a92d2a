"""
Model loading for the vision model wrappers.

Responsibility:
    Load a network from disk with OpenCV DNN, configure the compute
    backend, and wrap it in a DnnNetwork that reports its input and
    output shapes and runs inference on named blobs.

Non-goals:
    - No preprocessing, postprocessing, or frame-level logic.
    - No automatic model downloading.
    - No fallback to alternative models.

Failure behavior:
    - Missing model files raise FileNotFoundError with the exact
      missing path and expected location.
    - Incompatible backend raises RuntimeError.
"""

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

import cv2
import numpy as np

from vision_models.config import SUPER_RESOLUTION, ModelConfig, get_project_root
from vision_models.errors import ModelStructureError

logger = logging.getLogger(__name__)

Shape = Tuple[int, ...]


class DnnNetwork:
    """A loaded cv2.dnn.Net with explicit input and output shapes.

    OpenCV does not report output shapes before a forward pass, so one
    pass on zero-filled inputs is run at construction to record them.

    Attributes:
        input_shapes: Input name → NCHW shape. The empty name addresses
                      the single input of a one-input network.
        output_shapes: Output name → shape.
    """

    def __init__(self, net: cv2.dnn.Net, input_shapes: Mapping[str, Shape]) -> None:
        self._net = net
        self.input_shapes: Dict[str, Shape] = dict(input_shapes)
        self._output_names: List[str] = list(net.getUnconnectedOutLayersNames())

        probe = {
            name: np.zeros(shape, dtype=np.float32)
            for name, shape in self.input_shapes.items()
        }
        try:
            outputs = self.infer(probe)
        except cv2.error as e:
            raise ModelStructureError(
                f"Network rejected the configured inputs {self.input_shapes}. Check "
                f"model.input_size, model.input_channels and model.input_names.\n"
                f"  OpenCV error: {e}"
            ) from e
        self.output_shapes: Dict[str, Shape] = {
            name: tuple(int(d) for d in tensor.shape) for name, tensor in outputs.items()
        }
        logger.info("Network outputs: %s", self.output_shapes)

    def infer(self, inputs: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """Run one forward pass.

        Args:
            inputs: Input name → NCHW float32 blob.

        Returns:
            Output name → tensor.
        """
        for name, blob in inputs.items():
            self._net.setInput(blob, name)
        outputs = self._net.forward(self._output_names)
        return dict(zip(self._output_names, outputs))


def _resolve(path_str: str) -> Path:
    path = Path(path_str)
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def _input_shapes(config: ModelConfig) -> Dict[str, Shape]:
    """Shapes of every configured input.

    The second input of a super-resolution model is the bicubic one,
    upscale_factor times the low-resolution size. Any other extra input
    is reported at the configured size so the wrappers can reject it.
    """
    width, height = config.input_size
    names = config.input_names or ("",)
    shapes = {}
    for index, name in enumerate(names):
        k = config.upscale_factor if config.model_type == SUPER_RESOLUTION and index == 1 else 1
        shapes[name] = (1, config.input_channels, height * k, width * k)
    return shapes


def load_model(config: ModelConfig) -> DnnNetwork:
    """Load and configure a network.

    Args:
        config: ModelConfig containing file paths and backend preference.

    Returns:
        A DnnNetwork ready for inference.

    Raises:
        FileNotFoundError: If the model or weights file does not exist.
        RuntimeError: If the requested backend is unavailable.
    """
    model = _resolve(config.model_path)

    # Validate file existence, fail fast with actionable messages
    if not model.is_file():
        raise FileNotFoundError(
            f"Model file not found.\n"
            f"  Expected: {model}\n"
            f"  Provide the file or update 'model.model_path' in your config."
        )

    weights = ""
    if config.weights_path:
        weights_file = _resolve(config.weights_path)
        if not weights_file.is_file():
            raise FileNotFoundError(
                f"Model weights not found.\n"
                f"  Expected: {weights_file}\n"
                f"  Place the weights file at the path above,\n"
                f"  or update 'model.weights_path' in your config."
            )
        weights = str(weights_file)

    logger.info("Loading model: model=%s, weights=%s", model, weights or "<embedded>")
    net = cv2.dnn.readNet(str(model), weights)

    if config.backend == "cuda":
        logger.info("Setting CUDA backend and target.")
        try:
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        except cv2.error as e:
            raise RuntimeError(
                f"Failed to set CUDA backend. Ensure OpenCV was built with "
                f"CUDA support (opencv-contrib-python or custom build).\n"
                f"  OpenCV error: {e}"
            ) from e
    else:
        logger.info("Using CPU backend.")
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

    network = DnnNetwork(net, _input_shapes(config))
    logger.info("Model loaded successfully.")
    return network
