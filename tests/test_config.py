"""
Tests for the configuration module.
"""

import pytest

from vision_models.config import (
    AppConfig,
    DetectionConfig,
    ModelConfig,
    OutputConfig,
    validate_config,
    load_config,
)


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.model_type == "faceboxes"
    assert config.model.backend == "cpu"
    assert config.detection.confidence_threshold == 0.5
    assert config.detection.iou_threshold == 0.5
    assert config.detection.steps is None


def test_validation_failure():
    """Test fail-fast validation."""
    with pytest.raises(ValueError, match="confidence_threshold"):
        validate_config(AppConfig(detection=DetectionConfig(confidence_threshold=1.5)))

    # Thresholds are open intervals
    with pytest.raises(ValueError, match="iou_threshold"):
        validate_config(AppConfig(detection=DetectionConfig(iou_threshold=0.0)))

    with pytest.raises(ValueError, match="backend"):
        validate_config(AppConfig(model=ModelConfig(backend="invalid")))

    with pytest.raises(ValueError, match="model_type"):
        validate_config(AppConfig(model=ModelConfig(model_type="yolo")))

    with pytest.raises(ValueError, match="output.mode"):
        validate_config(AppConfig(output=OutputConfig(mode="save_json,save_video")))


def test_anchor_layout_validation():
    with pytest.raises(ValueError, match="min_sizes"):
        validate_config(AppConfig(detection=DetectionConfig(steps=(32, 64), min_sizes=((32,),))))

    with pytest.raises(ValueError, match="requires detection.steps"):
        validate_config(AppConfig(detection=DetectionConfig(min_sizes=((32,),))))

    with pytest.raises(ValueError, match="variance"):
        validate_config(AppConfig(detection=DetectionConfig(variance=(0.1,))))


def test_keep_top_k(monkeypatch):
    assert load_config(None).detection.keep_top_k == 0

    monkeypatch.setenv("VISION_MODELS_DETECTION_KEEP_TOP_K", "50")
    assert load_config(None).detection.keep_top_k == 50

    with pytest.raises(ValueError, match="keep_top_k"):
        validate_config(AppConfig(detection=DetectionConfig(keep_top_k=-1)))


def test_super_resolution_needs_an_image_output():
    """Upscaled images are only written by save_image or shown by display."""
    sr = ModelConfig(model_type="super_resolution")

    with pytest.raises(ValueError, match="save_image"):
        validate_config(AppConfig(model=sr, output=OutputConfig(mode="save_json")))
    with pytest.raises(ValueError, match="save_image"):
        validate_config(AppConfig(model=sr, output=OutputConfig(mode="save_json,save_csv")))

    validate_config(AppConfig(model=sr, output=OutputConfig(mode="save_image")))
    validate_config(AppConfig(model=sr, output=OutputConfig(mode="display,save_json")))


def test_yaml_file(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "model:\n"
        "  model_type: retinaface_pt\n"
        "  input_size: [640, 480]\n"
        "detection:\n"
        "  confidence_threshold: 0.7\n"
        "  labels: [Face]\n"
        "  steps: [32, 64, 128]\n"
        "  min_sizes: [[32, 64], 256, [512]]\n"
        "  variance: [0.1, 0.2]\n"
        "output:\n"
        "  mode: save_image,save_csv\n",
        encoding="utf-8",
    )

    config = load_config(str(config_file))

    assert config.model.model_type == "retinaface_pt"
    assert config.model.input_size == (640, 480)
    assert config.detection.confidence_threshold == 0.7
    assert config.detection.labels == ("Face",)
    assert config.detection.steps == (32, 64, 128)
    assert config.detection.min_sizes == ((32, 64), (256,), (512,))
    assert config.detection.variance == (0.1, 0.2)
    assert config.output.mode == "save_image,save_csv"


def test_missing_file_raises():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("VISION_MODELS_DETECTION_CONFIDENCE_THRESHOLD", "0.9")
    monkeypatch.setenv("VISION_MODELS_DETECTION_LABELS", "Face, Head")
    monkeypatch.setenv("VISION_MODELS_MODEL_BACKEND", "cuda")

    config = load_config(None)

    assert config.detection.confidence_threshold == 0.9
    assert config.detection.labels == ("Face", "Head")
    assert config.model.backend == "cuda"


def test_config_is_frozen():
    config = load_config(None)
    with pytest.raises(AttributeError):
        config.detection.confidence_threshold = 0.1
