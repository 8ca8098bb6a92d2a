"""
Super-resolution model wrapper.

Responsibility:
    Validate a super-resolution network, prepare its one or two input
    blobs, and merge the output planes back into an 8-bit image.

Supported topologies:
    - One input: the low-resolution image.
    - Two inputs: the low-resolution image plus a bicubic upscale of it
      at the output size. The input with the smaller spatial size is
      the low-resolution one.

Hard-coded:
    - Output is a single (1, C, H, W) float tensor with values in [0, 1].
    - Single-channel output comes from text super-resolution models and
      is binarized at 0.5.
"""

import logging
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from vision_models.config import AppConfig, load_config
from vision_models.detection import ImageResult
from vision_models.errors import ModelStructureError, TensorShapeError
from vision_models.model_loader import load_model
from vision_models.preprocessor import preprocess

logger = logging.getLogger(__name__)

_TEXT_THRESHOLD = 0.5


class SuperResolutionModel:
    """Upscale images with a super-resolution network.

    Usage:
        model = SuperResolutionModel(config)
        result = model.upscale(image)       # BGR or grayscale image
        cv2.imwrite("out.png", result.image)
    """

    def __init__(self, config: Optional[AppConfig] = None, network=None) -> None:
        """Load and validate the network.

        Raises:
            FileNotFoundError: If model files are missing.
            ModelStructureError: If the network topology is unsupported.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._network = network if network is not None else load_model(config.model)

        self._input_names = self._inspect_inputs()
        self._output_name = self._inspect_output()

        logger.info(
            "Super-resolution model initialized (inputs=%s, output=%s)",
            {n: self._network.input_shapes[n] for n in self._input_names},
            self._network.output_shapes[self._output_name],
        )

    @property
    def input_names(self) -> List[str]:
        """Input names, low-resolution input first."""
        return list(self._input_names)

    @property
    def input_size(self) -> Tuple[int, int]:
        """Low-resolution input (width, height)."""
        shape = self._network.input_shapes[self._input_names[0]]
        return int(shape[3]), int(shape[2])

    def upscale(self, image: np.ndarray) -> ImageResult:
        """Run preprocessing, inference and postprocessing on one image."""
        inputs = self.preprocess(image)
        outputs = self._network.infer(inputs)
        return self.postprocess(outputs[self._output_name])

    def preprocess(self, image: np.ndarray) -> Dict[str, np.ndarray]:
        """Build the input blobs for one image.

        The image is converted to grayscale if the network takes one
        channel, then resized to the low-resolution input size. Two-input
        networks also get a bicubic upscale at the second input's size.

        Raises:
            ValueError: If the image is empty.
        """
        if image is None or image.size == 0:
            raise ValueError("Cannot upscale an empty image.")

        lr_name = self._input_names[0]
        lr_shape = self._network.input_shapes[lr_name]
        image_channels = 1 if image.ndim == 2 else image.shape[2]
        if image_channels != lr_shape[1]:
            code = cv2.COLOR_BGR2GRAY if lr_shape[1] == 1 else cv2.COLOR_GRAY2BGR
            image = cv2.cvtColor(image, code)

        lr_w, lr_h = self.input_size
        img_h, img_w = image.shape[:2]
        if (img_w, img_h) != (lr_w, lr_h):
            logger.warning(
                "Image size %dx%d does not match the model input %dx%d; the image "
                "will be resized and may be distorted.",
                img_w, img_h, lr_w, lr_h,
            )
        image = cv2.resize(image, (lr_w, lr_h))

        inputs = {lr_name: preprocess(image, self._config.model, size=(lr_w, lr_h))}

        if len(self._input_names) == 2:
            bic_name = self._input_names[1]
            bic_shape = self._network.input_shapes[bic_name]
            bic_size = (int(bic_shape[3]), int(bic_shape[2]))
            bicubic = cv2.resize(image, bic_size, interpolation=cv2.INTER_CUBIC)
            inputs[bic_name] = preprocess(bicubic, self._config.model, size=bic_size)

        return inputs

    @staticmethod
    def postprocess(output: np.ndarray) -> ImageResult:
        """Merge the (1, C, H, W) output planes into a uint8 image.

        Raises:
            TensorShapeError: If the output is not a single-image NCHW
                              tensor with 1 or 3 channels.
        """
        tensor = np.asarray(output, dtype=np.float32)
        if tensor.ndim != 4 or tensor.shape[0] != 1 or tensor.shape[1] not in (1, 3):
            raise TensorShapeError(
                f"Super-resolution output must be (1, 1|3, H, W), got {tensor.shape}."
            )

        planes = tensor[0]
        if planes.shape[0] == 1:
            planes = np.where(planes > _TEXT_THRESHOLD, 1.0, 0.0)

        pixels = np.clip(np.rint(planes * 255.0), 0, 255).astype(np.uint8)
        if pixels.shape[0] == 1:
            image = pixels[0]
        else:
            image = np.ascontiguousarray(np.transpose(pixels, (1, 2, 0)))

        return ImageResult(image=image)

    # ------------------------------------------------------------------ #
    # Setup-time structure checks
    # ------------------------------------------------------------------ #
    def _inspect_inputs(self) -> List[str]:
        inputs = self._network.input_shapes
        if len(inputs) not in (1, 2):
            raise ModelStructureError(
                f"Super resolution model wrapper supports topologies with 1 or 2 inputs only, "
                f"got {len(inputs)}."
            )

        names = list(inputs)
        for name in names:
            if len(inputs[name]) != 4:
                raise ModelStructureError(
                    f"Number of dimensions for an input must be 4, "
                    f"input '{name}' has shape {tuple(inputs[name])}."
                )

        channels = inputs[names[0]][1]
        if channels not in (1, 3):
            raise ModelStructureError(
                f"Input layer is expected to have 1 or 3 channels, got {channels}."
            )

        if len(names) == 2:
            lr, bic = (inputs[n] for n in names)
            if lr[3] >= bic[3] and lr[2] >= bic[2]:
                names.reverse()
            elif not (lr[3] <= bic[3] and lr[2] <= bic[2]):
                raise ModelStructureError(
                    "Each spatial dimension of one input must surpass or be equal to "
                    "a spatial dimension of another input."
                )
        return names

    def _inspect_output(self) -> str:
        outputs = self._network.output_shapes
        if len(outputs) != 1:
            raise ModelStructureError(
                f"Super resolution model wrapper supports topologies with only 1 output, "
                f"got {len(outputs)}."
            )
        return next(iter(outputs))
