"""
Vision Models: pre- and post-processing wrappers around OpenCV DNN.

Public API:
    - Detector: Face detection with FaceBoxes / RetinaFace style networks.
    - SuperResolutionModel: Image upscaling with super-resolution networks.
    - Detection, ImageResult: Result objects.
    - load_config: Layered configuration loader.
    - ModelStructureError, TensorShapeError: Failure types.

The anchor, NMS and postprocessing modules are importable on their own
for use with outputs produced by another inference engine.

Usage:
    from vision_models import Detector

    detector = Detector()
    detections = detector.detect(frame)
"""

from vision_models.config import AppConfig, load_config
from vision_models.detection import Detection, ImageResult
from vision_models.detector import Detector
from vision_models.errors import ModelStructureError, TensorShapeError
from vision_models.super_resolution import SuperResolutionModel

__all__ = [
    "AppConfig",
    "Detection",
    "Detector",
    "ImageResult",
    "ModelStructureError",
    "SuperResolutionModel",
    "TensorShapeError",
    "load_config",
]
