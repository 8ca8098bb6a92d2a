"""
Tests for the model loader.

cv2.dnn.Net is replaced by small stubs so no model files are needed.
"""

import cv2
import numpy as np
import pytest

from vision_models.config import ModelConfig
from vision_models.errors import ModelStructureError
from vision_models.model_loader import DnnNetwork, _input_shapes, load_model


class StubNet:
    """Records inputs and returns one tensor per output name."""

    def __init__(self, outputs):
        self._outputs = outputs
        self.inputs = {}

    def getUnconnectedOutLayersNames(self):
        return list(self._outputs)

    def setInput(self, blob, name):
        self.inputs[name] = blob

    def forward(self, names):
        return [self._outputs[n] for n in names]


class RejectingNet(StubNet):
    """Fails the forward pass the way OpenCV does on a shape mismatch."""

    def forward(self, names):
        raise cv2.error("Inconsistent shape for ConcatLayer")


def test_output_shapes_are_probed():
    net = StubNet({"boxes": np.zeros((1, 10, 4)), "scores": np.zeros((1, 10, 2))})

    network = DnnNetwork(net, {"": (1, 3, 32, 32)})

    assert network.output_shapes == {"boxes": (1, 10, 4), "scores": (1, 10, 2)}
    assert net.inputs[""].shape == (1, 3, 32, 32)
    assert net.inputs[""].dtype == np.float32


def test_rejected_probe_raises_structure_error():
    net = RejectingNet({"boxes": np.zeros((1, 10, 4))})

    with pytest.raises(ModelStructureError, match=r"\(1, 1, 32, 32\)"):
        DnnNetwork(net, {"": (1, 1, 32, 32)})


def test_every_configured_input_is_reported():
    config = ModelConfig(model_type="faceboxes", input_size=(64, 32), input_names=("a", "b"))

    assert _input_shapes(config) == {"a": (1, 3, 32, 64), "b": (1, 3, 32, 64)}


def test_super_resolution_second_input_is_upscaled():
    config = ModelConfig(
        model_type="super_resolution", input_size=(16, 8), input_names=("lr", "bic"), upscale_factor=4,
    )

    assert _input_shapes(config) == {"lr": (1, 3, 8, 16), "bic": (1, 3, 32, 64)}


def test_single_unnamed_input_by_default():
    assert _input_shapes(ModelConfig(input_size=(20, 10))) == {"": (1, 3, 10, 20)}


def test_missing_model_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Model file not found"):
        load_model(ModelConfig(model_path=str(tmp_path / "missing.onnx")))


def test_missing_weights_file(tmp_path):
    model = tmp_path / "net.xml"
    model.write_text("<net/>", encoding="utf-8")

    with pytest.raises(FileNotFoundError, match="weights not found"):
        load_model(ModelConfig(model_path=str(model), weights_path=str(tmp_path / "net.bin")))
