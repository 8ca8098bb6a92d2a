"""
Tests for the preprocessing module.
"""

import numpy as np
import pytest

from vision_models.config import ModelConfig
from vision_models.preprocessor import preprocess


def test_preprocess_valid_input():
    """Test standard preprocessing on a valid frame."""
    config = ModelConfig(input_size=(1024, 1024))

    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    frame[:, :, 1] = 255

    blob = preprocess(frame, config)

    assert isinstance(blob, np.ndarray)
    assert blob.shape == (1, 3, 1024, 1024)
    assert blob.dtype == np.float32
    assert blob[0, 1].max() == pytest.approx(255.0)


def test_preprocess_non_square_size_is_width_height():
    config = ModelConfig(input_size=(320, 240))
    blob = preprocess(np.zeros((100, 100, 3), dtype=np.uint8), config)
    assert blob.shape == (1, 3, 240, 320)


def test_preprocess_explicit_size_overrides_config():
    config = ModelConfig(input_size=(100, 100))
    blob = preprocess(np.zeros((200, 200, 3), dtype=np.uint8), config, size=(64, 32))
    assert blob.shape == (1, 3, 32, 64)


def test_preprocess_grayscale():
    config = ModelConfig(input_size=(50, 40), input_channels=1)
    blob = preprocess(np.full((80, 100), 10, dtype=np.uint8), config)
    assert blob.shape == (1, 1, 40, 50)


def test_preprocess_mean_and_scale():
    config = ModelConfig(input_size=(8, 8), mean_values=(10.0, 20.0, 30.0), scale_factor=0.5)
    frame = np.full((8, 8, 3), 50, dtype=np.uint8)

    blob = preprocess(frame, config)

    np.testing.assert_allclose(blob[0, :, 0, 0], [20.0, 15.0, 10.0])


def test_preprocess_empty_frame():
    """Test that preprocessing rejects empty frames."""
    with pytest.raises(ValueError):
        preprocess(np.array([]), ModelConfig())


def test_preprocess_none_frame():
    """Test that preprocessing rejects None."""
    with pytest.raises(ValueError):
        preprocess(None, ModelConfig())
