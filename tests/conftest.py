"""
Shared fixtures: a stand-in for the inference engine.

The wrappers only need input_shapes, output_shapes and infer() from a
network, so tests build networks from plain shapes and canned tensors.
"""

import numpy as np
import pytest


class FakeNetwork:
    """Network double returning fixed outputs and recording its inputs."""

    def __init__(self, input_shapes, output_shapes, outputs=None):
        self.input_shapes = dict(input_shapes)
        self.output_shapes = dict(output_shapes)
        self.outputs = outputs or {}
        self.calls = []

    def infer(self, inputs):
        self.calls.append(inputs)
        return self.outputs


@pytest.fixture
def fake_network():
    """Factory for FakeNetwork instances."""
    return FakeNetwork


@pytest.fixture
def detector_outputs():
    """Build zero-delta (1, N, C) tensors with chosen foreground scores.

    Usage:
        scores, boxes = detector_outputs(n, {17: 0.9})
    """

    def _build(count, hits, landmark_width=0):
        scores = np.zeros((1, count, 2), dtype=np.float32)
        scores[0, :, 0] = 1.0
        for index, value in hits.items():
            scores[0, index] = (1.0 - value, value)
        boxes = np.zeros((1, count, 4), dtype=np.float32)
        if landmark_width:
            return scores, boxes, np.zeros((1, count, landmark_width), dtype=np.float32)
        return scores, boxes

    return _build
