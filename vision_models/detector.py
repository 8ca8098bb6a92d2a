"""
Detector: the public API for anchor-based face detection.

Public contract:
    Detector.detect(frame: np.ndarray) -> list[Detection]
    Detector.postprocess(outputs, image_width, image_height) -> list[Detection]

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV).
    - The network structure is validated once, in the constructor. A
      model that does not fit the configured family never gets a
      Detector instance.
    - The anchor table is computed once and is read-only afterwards, so
      concurrent detect() calls only share immutable state. The
      underlying cv2.dnn.Net is not thread-safe, though.

Non-goals:
    - No file reading, camera access, or I/O of any kind.
    - No visualization or output writing.
    - No tracking or temporal state.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from vision_models.anchors import anchors_to_array
from vision_models.architectures import DetectorFamily, OutputRoles, get_family
from vision_models.config import AppConfig, load_config
from vision_models.detection import Detection
from vision_models.errors import ModelStructureError
from vision_models.model_loader import load_model
from vision_models.postprocessor import postprocess
from vision_models.preprocessor import preprocess

logger = logging.getLogger(__name__)

# Values per candidate for each output role. Landmarks only need an even width.
_ROLE_WIDTHS = {"boxes": 4, "scores": 2}


class Detector:
    """Face detector for FaceBoxes and RetinaFace style networks.

    Usage:
        detector = Detector()                       # Uses safe defaults
        detector = Detector(config=my_config)       # Custom config
        detections = detector.detect(frame)         # BGR numpy array

    The constructor loads the model once. Any object exposing
    input_shapes, output_shapes and infer() can be passed as network
    instead (see model_loader.DnnNetwork).
    """

    def __init__(self, config: Optional[AppConfig] = None, network=None) -> None:
        """Initialize the detector, load and validate the model.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            network: Pre-loaded network. If None, it is loaded from
                     config.model.

        Raises:
            FileNotFoundError: If model files are missing.
            RuntimeError: If the requested backend is unavailable.
            ValueError: If model_type is not a detector family.
            ModelStructureError: If the network does not fit the family.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._family: DetectorFamily = get_family(config.model.model_type)
        self._network = network if network is not None else load_model(config.model)

        self._input_name, self._input_size = self._inspect_input()
        self._roles, max_proposals = self._inspect_outputs()

        detection = config.detection
        self._variance = detection.variance or self._family.variance
        self._labels = detection.labels or self._family.labels

        anchors = self._family.generate_anchors(
            self._input_size[0], self._input_size[1], detection.steps, detection.min_sizes,
        )
        if len(anchors) != max_proposals:
            raise ModelStructureError(
                f"Anchor layout produces {len(anchors)} anchors for a "
                f"{self._input_size[0]}x{self._input_size[1]} input, but the network "
                f"declares {max_proposals} proposals. Check steps and min_sizes."
            )
        self._anchors = anchors_to_array(anchors)

        logger.info(
            "Detector initialized (type=%s, input=%dx%d, anchors=%d, "
            "confidence_threshold=%.2f, iou_threshold=%.2f)",
            self._family.name,
            self._input_size[0],
            self._input_size[1],
            len(anchors),
            detection.confidence_threshold,
            detection.iou_threshold,
        )

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """Detect faces in a single BGR frame.

        Args:
            frame: A BGR image as a numpy array with shape (H, W, 3)
                   and dtype uint8.

        Returns:
            A list of Detection objects, highest confidence first.
            Returns an empty list if no faces are detected.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape or is empty.
        """
        self._validate_frame(frame)

        blob = preprocess(frame, self._config.model, size=self._input_size)
        outputs = self._network.infer({self._input_name: blob})

        h, w = frame.shape[:2]
        return self.postprocess(outputs, w, h)

    def postprocess(
        self,
        outputs: Mapping[str, np.ndarray],
        image_width: int,
        image_height: int,
    ) -> List[Detection]:
        """Decode raw network outputs for an image of the given size.

        Raises:
            TensorShapeError: If an output does not match the anchor table.
        """
        image_size = (image_width, image_height)
        return postprocess(
            outputs=outputs,
            roles=self._roles,
            anchors=self._anchors,
            variance=self._variance,
            scale=self._family.scale(self._input_size, image_size),
            image_size=image_size,
            labels=self._labels,
            confidence_threshold=self._config.detection.confidence_threshold,
            iou_threshold=self._config.detection.iou_threshold,
            include_boundaries=self._family.nms_include_boundaries,
            keep_top_k=self._config.detection.keep_top_k,
        )

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def family(self) -> DetectorFamily:
        return self._family

    @property
    def anchors(self) -> np.ndarray:
        """Read-only (N, 4) anchor table as (cx, cy, w, h)."""
        return self._anchors

    @property
    def input_size(self) -> Tuple[int, int]:
        """Network input (width, height)."""
        return self._input_size

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(self._labels)

    @property
    def output_roles(self) -> OutputRoles:
        return dict(self._roles)

    # ------------------------------------------------------------------ #
    # Setup-time structure checks
    # ------------------------------------------------------------------ #
    def _inspect_input(self) -> Tuple[str, Tuple[int, int]]:
        inputs: Dict[str, Tuple[int, ...]] = self._network.input_shapes
        if len(inputs) != 1:
            raise ModelStructureError(
                f"{self._family.name} wrapper expects models that have only 1 input, "
                f"got {len(inputs)}."
            )

        name, shape = next(iter(inputs.items()))
        if len(shape) != 4:
            raise ModelStructureError(
                f"Expected a 4-dimensional NCHW input, got shape {tuple(shape)}."
            )
        if shape[1] != 3:
            raise ModelStructureError(f"Expected 3-channel input, got {shape[1]} channels.")

        return name, (int(shape[3]), int(shape[2]))

    def _inspect_outputs(self) -> Tuple[OutputRoles, int]:
        outputs: Dict[str, Tuple[int, ...]] = self._network.output_shapes
        roles = self._family.resolve_roles(list(outputs))

        counts = set()
        for role, name in roles.items():
            shape = tuple(outputs[name])
            if len(shape) != 3 or shape[0] != 1:
                raise ModelStructureError(
                    f"Output '{name}' ({role}) must have shape (1, N, C), got {shape}."
                )
            expected = _ROLE_WIDTHS.get(role)
            if expected is not None and shape[2] != expected:
                raise ModelStructureError(
                    f"Output '{name}' ({role}) must have {expected} values per "
                    f"candidate, got {shape[2]}."
                )
            if role == "landmarks" and (shape[2] == 0 or shape[2] % 2 != 0):
                raise ModelStructureError(
                    f"Output '{name}' (landmarks) must hold (x, y) pairs, got width {shape[2]}."
                )
            counts.add(shape[1])

        if len(counts) != 1:
            shapes = {name: tuple(outputs[name]) for name in roles.values()}
            raise ModelStructureError(
                f"Outputs disagree on the number of candidates: {shapes}."
            )

        logger.debug("Output roles: %s", roles)
        return roles, counts.pop()

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty or has wrong dimensions.
        """
        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}. "
                f"Use cv2.imread() to obtain frames."
            )

        if frame.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}. "
                f"Grayscale images must be converted to BGR first."
            )

        if frame.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {frame.shape[2]} channels. "
                f"Input must be a BGR image as returned by OpenCV."
            )
