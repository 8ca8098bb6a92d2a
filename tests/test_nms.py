"""
Tests for non-maximum suppression.
"""

import numpy as np
import pytest

from vision_models.nms import iou, nms


def test_overlapping_boxes_are_suppressed():
    boxes = np.array(
        [
            [0.0, 0.0, 10.0, 10.0],
            [1.0, 1.0, 10.0, 10.0],
            [30.0, 30.0, 50.0, 50.0],
        ]
    )
    scores = np.array([0.95, 0.9, 0.4])

    keep = nms(boxes, scores, iou_threshold=0.5)

    np.testing.assert_array_equal(keep, [0, 2])


def test_higher_score_survives_regardless_of_position():
    boxes = np.array([[0.0, 0.0, 10.0, 10.0], [0.0, 0.0, 10.0, 9.0]])
    scores = np.array([0.3, 0.8])

    assert iou(boxes[0], boxes[1]) > 0.5
    np.testing.assert_array_equal(nms(boxes, scores, 0.5), [1])


def test_non_overlapping_boxes_kept_in_score_order():
    boxes = np.array(
        [
            [0.0, 0.0, 1.0, 1.0],
            [2.0, 2.0, 3.0, 3.0],
            [4.0, 4.0, 5.0, 5.0],
        ]
    )
    scores = np.array([0.3, 0.6, 0.8])

    np.testing.assert_array_equal(nms(boxes, scores, 0.5), [2, 1, 0])


def test_equal_scores_lower_index_wins():
    boxes = np.array(
        [
            [0.0, 0.0, 10.0, 10.0],
            [100.0, 100.0, 110.0, 110.0],
            [0.0, 0.0, 10.0, 10.0],
            [100.0, 100.0, 110.0, 110.0],
        ]
    )
    scores = np.array([0.5, 0.7, 0.5, 0.7])

    np.testing.assert_array_equal(nms(boxes, scores, 0.5), [1, 0])


def test_iou_equal_to_threshold_is_kept():
    # IoU of these two boxes is exactly 0.5
    boxes = np.array([[0.0, 0.0, 4.0, 3.0], [0.0, 0.0, 2.0, 3.0]])
    scores = np.array([0.9, 0.8])

    assert iou(boxes[0], boxes[1]) == pytest.approx(0.5)
    np.testing.assert_array_equal(nms(boxes, scores, 0.5), [0, 1])


def test_nms_is_idempotent():
    rng = np.random.default_rng(7)
    corners = rng.uniform(0, 200, size=(60, 2))
    sizes = rng.uniform(10, 60, size=(60, 2))
    boxes = np.hstack([corners, corners + sizes])
    scores = rng.uniform(0, 1, size=60)

    keep = nms(boxes, scores, 0.3)
    again = nms(boxes[keep], scores[keep], 0.3)

    np.testing.assert_array_equal(keep[again], keep)


def test_empty_input():
    keep = nms(np.empty((0, 4)), np.empty((0,)), 0.5)
    assert keep.shape == (0,)


def test_zero_area_duplicates_are_suppressed():
    boxes = np.array([[5.0, 5.0, 5.0, 5.0], [5.0, 5.0, 5.0, 5.0]])
    scores = np.array([0.9, 0.8])

    np.testing.assert_array_equal(nms(boxes, scores, 0.5), [0])


def test_negative_scores_are_never_kept():
    boxes = np.array([[0.0, 0.0, 1.0, 1.0], [5.0, 5.0, 6.0, 6.0]])
    scores = np.array([-0.1, 0.2])

    np.testing.assert_array_equal(nms(boxes, scores, 0.5), [1])


def test_include_boundaries_counts_edge_pixels():
    # Touching boxes overlap by one pixel column when edges are inclusive
    boxes = np.array([[0.0, 0.0, 1.0, 1.0], [1.0, 0.0, 2.0, 1.0]])
    scores = np.array([0.9, 0.8])

    np.testing.assert_array_equal(nms(boxes, scores, 0.3), [0, 1])
    np.testing.assert_array_equal(nms(boxes, scores, 0.3, include_boundaries=True), [0])


def test_keep_top_k_limits_output():
    boxes = np.array([[i * 10.0, 0.0, i * 10.0 + 5.0, 5.0] for i in range(5)])
    scores = np.array([0.1, 0.5, 0.3, 0.9, 0.7])

    np.testing.assert_array_equal(nms(boxes, scores, 0.5, keep_top_k=2), [3, 4])


def test_misaligned_inputs_raise():
    with pytest.raises(ValueError, match="index-aligned"):
        nms(np.zeros((3, 4)), np.zeros(2), 0.5)
