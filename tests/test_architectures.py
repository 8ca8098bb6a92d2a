"""
Tests for detector family parameters and output role resolution.
"""

import pytest

from vision_models.architectures import FACEBOXES, RETINAFACE_PT, get_family
from vision_models.errors import ModelStructureError


def test_get_family():
    assert get_family("faceboxes") is FACEBOXES
    assert get_family("retinaface_pt") is RETINAFACE_PT

    with pytest.raises(ValueError, match="Unknown detector model type"):
        get_family("ssd")


def test_faceboxes_roles_follow_sorted_names():
    roles = FACEBOXES.resolve_roles(["out_scores", "out_boxes"])
    assert roles == {"boxes": "out_boxes", "scores": "out_scores"}

    # Names are only sorted, never interpreted
    roles = FACEBOXES.resolve_roles(["b", "a"])
    assert roles == {"boxes": "a", "scores": "b"}


def test_faceboxes_requires_two_outputs():
    with pytest.raises(ModelStructureError, match="2 outputs"):
        FACEBOXES.resolve_roles(["boxes"])


def test_retinaface_roles_by_name_fragment():
    roles = RETINAFACE_PT.resolve_roles(["face_rpn_cls_prob", "face_rpn_landmark_pred", "face_rpn_bbox_pred"])
    assert roles == {
        "boxes": "face_rpn_bbox_pred",
        "scores": "face_rpn_cls_prob",
        "landmarks": "face_rpn_landmark_pred",
    }


def test_retinaface_landmarks_optional():
    roles = RETINAFACE_PT.resolve_roles(["bbox", "cls"])
    assert "landmarks" not in roles


def test_retinaface_output_count():
    with pytest.raises(ModelStructureError, match="2 or 3 outputs"):
        RETINAFACE_PT.resolve_roles(["bbox", "cls", "landmark", "extra"])


def test_scale_divisors():
    assert FACEBOXES.scale((1024, 1024), (512, 256)) == (2.0, 4.0)
    assert RETINAFACE_PT.scale((640, 640), (200, 100)) == (1 / 200, 1 / 100)


def test_generate_anchors_uses_family_defaults():
    assert len(FACEBOXES.generate_anchors(1024, 1024)) == 21824
    assert len(RETINAFACE_PT.generate_anchors(640, 640)) == 16800


def test_generate_anchors_overrides():
    anchors = FACEBOXES.generate_anchors(1024, 1024, steps=(32, 64, 128), min_sizes=((32, 64), (256,), (512,)))
    assert len(anchors) == 20800


def test_builtin_families_use_exclusive_nms_boxes():
    assert not FACEBOXES.nms_include_boundaries
    assert not RETINAFACE_PT.nms_include_boundaries
