"""
Configuration management for the vision model wrappers.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - Thresholds and anchor layout are fixed once a model is built;
      nothing here is re-read per inference call.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

from vision_models.architectures import FAMILIES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: vision_models/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

SUPER_RESOLUTION = "super_resolution"


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        model_type: 'faceboxes', 'retinaface_pt' or 'super_resolution'.
        model_path: Network file (.onnx, .xml, ...) relative to project root.
        weights_path: Separate weights file, empty if the format has none.
        backend: Compute backend, 'cpu' or 'cuda'.
        input_size: Network input (width, height).
        input_channels: Channels of the (first) network input.
        mean_values: Per-channel mean subtraction values.
        scale_factor: Pixel value scale factor applied during blob creation.
        swap_rb: Feed RGB instead of BGR.
        input_names: Network input names. Empty means a single unnamed input.
        upscale_factor: Size ratio of the bicubic input to the low-resolution
                        input for two-input super-resolution models.
    """

    model_type: str = "faceboxes"
    model_path: str = "models/faceboxes.onnx"
    weights_path: str = ""
    backend: str = "cpu"
    input_size: Tuple[int, int] = (1024, 1024)
    input_channels: int = 3
    mean_values: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    scale_factor: float = 1.0
    swap_rb: bool = False
    input_names: Tuple[str, ...] = ()
    upscale_factor: int = 4


@dataclass(frozen=True)
class DetectionConfig:
    """Detection thresholds and anchor layout.

    Attributes:
        confidence_threshold: Minimum foreground score (exclusive).
        iou_threshold: IoU above which NMS drops the lower-scored box.
        labels: Label list. Empty means the model family's default.
        steps: Feature-map strides. None means the family default.
        min_sizes: Anchor sizes per level. None means the family default.
        variance: Regression variance pair. None means the family default.
        keep_top_k: Maximum detections per image after NMS. 0 keeps all.
    """

    confidence_threshold: float = 0.5
    iou_threshold: float = 0.5
    labels: Tuple[str, ...] = ()
    steps: Optional[Tuple[int, ...]] = None
    min_sizes: Optional[Tuple[Tuple[int, ...], ...]] = None
    variance: Optional[Tuple[float, float]] = None
    keep_top_k: int = 0


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Image file or directory of images.
        resize_width: Optional width to downscale input images before
                      inference. None means no resizing.
    """

    source: str = "images/"
    resize_width: Optional[int] = None


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s), comma-separated: 'display', 'save_image',
              'save_json', 'save_csv'. Example: "save_image,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "save_json"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        box_color: BGR color tuple for bounding boxes.
        landmark_color: BGR color tuple for landmark points.
        thickness: Line thickness in pixels.
        show_confidence: Whether to render the label and confidence.
        show_landmarks: Whether to render landmark points.
    """

    box_color: Tuple[int, int, int] = (0, 255, 0)
    landmark_color: Tuple[int, int, int] = (0, 0, 255)
    thickness: int = 2
    show_confidence: bool = True
    show_landmarks: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_MODEL_TYPES = set(FAMILIES) | {SUPER_RESOLUTION}
_VALID_OUTPUT_MODES = {"display", "save_image", "save_json", "save_csv"}


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.model_type not in _VALID_MODEL_TYPES:
        raise ValueError(
            f"Invalid model.model_type: '{config.model.model_type}'. "
            f"Must be one of {sorted(_VALID_MODEL_TYPES)}."
        )

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    modes = set(m.strip() for m in config.output.mode.split(','))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    if config.model.model_type == SUPER_RESOLUTION and not modes & {"display", "save_image"}:
        raise ValueError(
            f"output.mode '{config.output.mode}' produces nothing for super_resolution "
            f"models, which output images. Include 'save_image' or 'display'."
        )

    detection = config.detection
    if not (0.0 < detection.confidence_threshold < 1.0):
        raise ValueError(
            f"detection.confidence_threshold must be in (0.0, 1.0), "
            f"got {detection.confidence_threshold}."
        )

    if not (0.0 < detection.iou_threshold < 1.0):
        raise ValueError(
            f"detection.iou_threshold must be in (0.0, 1.0), "
            f"got {detection.iou_threshold}."
        )

    if detection.steps is not None:
        if not detection.steps or any(s <= 0 for s in detection.steps):
            raise ValueError(
                f"detection.steps must be non-empty and positive, got {detection.steps}."
            )
        if detection.min_sizes is None or len(detection.min_sizes) != len(detection.steps):
            raise ValueError(
                f"detection.min_sizes must have one entry per step, "
                f"got steps={detection.steps}, min_sizes={detection.min_sizes}."
            )
    elif detection.min_sizes is not None:
        raise ValueError("detection.min_sizes requires detection.steps to be set as well.")

    if detection.variance is not None and len(detection.variance) != 2:
        raise ValueError(
            f"detection.variance must be a (center, size) pair, got {detection.variance}."
        )

    if detection.keep_top_k < 0:
        raise ValueError(
            f"detection.keep_top_k must be 0 (keep all) or positive, got {detection.keep_top_k}."
        )

    if len(config.model.input_size) != 2:
        raise ValueError(
            f"model.input_size must be a (width, height) tuple, "
            f"got {config.model.input_size}."
        )

    if any(d <= 0 for d in config.model.input_size):
        raise ValueError(
            f"model.input_size dimensions must be positive, "
            f"got {config.model.input_size}."
        )

    if config.model.input_channels not in (1, 3):
        raise ValueError(
            f"model.input_channels must be 1 or 3, got {config.model.input_channels}."
        )

    if config.model.scale_factor <= 0:
        raise ValueError(
            f"model.scale_factor must be positive, "
            f"got {config.model.scale_factor}."
        )

    if config.model.upscale_factor <= 0:
        raise ValueError(
            f"model.upscale_factor must be positive, "
            f"got {config.model.upscale_factor}."
        )

    if config.input.resize_width is not None and config.input.resize_width <= 0:
        raise ValueError(
            f"input.resize_width must be positive or None, "
            f"got {config.input.resize_width}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_list(value, cast_type=str) -> Tuple:
    """Accept a YAML list or a comma-separated string (from env vars)."""
    if isinstance(value, str):
        value = [v for v in (p.strip() for p in value.split(",")) if v]
    return tuple(cast_type(v) for v in value)


def _parse_min_sizes(value) -> Tuple[Tuple[int, ...], ...]:
    """Level entries may be a list of sizes or a single size."""
    levels = []
    for level in value:
        if isinstance(level, (list, tuple)):
            levels.append(tuple(int(s) for s in level))
        else:
            levels.append((int(level),))
    return tuple(levels)


def _optional(cast):
    def parse(value):
        return None if value is None else cast(value)
    return parse


def _lower(value) -> str:
    return str(value).strip().lower()


# Section name -> (dataclass, {key: parser}). Keys absent from the raw
# dict keep the dataclass default.
_SECTIONS = {
    "model": (ModelConfig, {
        "model_type": _lower,
        "model_path": str,
        "weights_path": lambda v: str(v or ""),
        "backend": _lower,
        "input_size": lambda v: _parse_tuple(v, 2, int),
        "input_channels": int,
        "mean_values": lambda v: _parse_tuple(v, 3, float),
        "scale_factor": float,
        "swap_rb": bool,
        "input_names": _parse_list,
        "upscale_factor": int,
    }),
    "detection": (DetectionConfig, {
        "confidence_threshold": float,
        "iou_threshold": float,
        "labels": _parse_list,
        "steps": _optional(lambda v: _parse_list(v, int)),
        "min_sizes": _optional(_parse_min_sizes),
        "variance": _optional(lambda v: _parse_tuple(v, 2, float)),
        "keep_top_k": int,
    }),
    "input": (InputConfig, {
        "source": str,
        "resize_width": _optional(int),
    }),
    "output": (OutputConfig, {
        "mode": _lower,
        "save_path": str,
    }),
    "visualization": (VisualizationConfig, {
        "box_color": lambda v: _parse_tuple(v, 3, int),
        "landmark_color": lambda v: _parse_tuple(v, 3, int),
        "thickness": int,
        "show_confidence": bool,
        "show_landmarks": bool,
    }),
}


def _build_section(raw: dict, section: str):
    """Build one config dataclass from its raw YAML/env mapping."""
    cls, parsers = _SECTIONS[section]
    values = raw.get(section) or {}

    unknown = set(values) - set(parsers)
    if unknown:
        logger.warning("Ignoring unknown keys in '%s' config: %s", section, sorted(unknown))

    return cls(**{key: parse(values[key]) for key, parse in parsers.items() if key in values})


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "VISION_MODELS_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        VISION_MODELS_MODEL_BACKEND=cuda
        VISION_MODELS_DETECTION_CONFIDENCE_THRESHOLD=0.7
        VISION_MODELS_DETECTION_LABELS=Face,Person
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_TYPE": ("model", "model_type"),
        f"{_ENV_PREFIX}MODEL_PATH": ("model", "model_path"),
        f"{_ENV_PREFIX}MODEL_WEIGHTS_PATH": ("model", "weights_path"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_SCALE_FACTOR": ("model", "scale_factor"),
        f"{_ENV_PREFIX}DETECTION_CONFIDENCE_THRESHOLD": ("detection", "confidence_threshold"),
        f"{_ENV_PREFIX}DETECTION_IOU_THRESHOLD": ("detection", "iou_threshold"),
        f"{_ENV_PREFIX}DETECTION_LABELS": ("detection", "labels"),
        f"{_ENV_PREFIX}DETECTION_KEEP_TOP_K": ("detection", "keep_top_k"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_RESIZE_WIDTH": ("input", "resize_width"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            if not raw.get(section):
                raw[section] = {}
            raw[section][key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(**{section: _build_section(raw, section) for section in _SECTIONS})

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
