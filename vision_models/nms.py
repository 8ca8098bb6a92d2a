"""
Greedy non-maximum suppression shared by the detector wrappers.

Boxes are (N, 4) arrays in (left, top, right, bottom) order. The tie
policy is fixed: candidates with equal scores are visited in ascending
index order, so results are reproducible across runs and platforms.
"""

import numpy as np


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    iou_threshold: float,
    include_boundaries: bool = False,
    keep_top_k: int = 0,
) -> np.ndarray:
    """Select the boxes that survive greedy NMS.

    Args:
        boxes: (N, 4) boxes as left, top, right, bottom.
        scores: (N,) scores aligned with boxes. Negative scores are
                never kept.
        iou_threshold: A remaining box is dropped when its IoU with a
                       kept box is strictly greater than this value.
        include_boundaries: Treat coordinates as inclusive pixel indices
                            (adds 1 to each width and height).
        keep_top_k: Stop after this many boxes were kept. 0 keeps all.

    Returns:
        Indices into boxes, highest score first.
    """
    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] != scores.shape[0]:
        raise ValueError(
            f"boxes and scores must be index-aligned, got {boxes.shape[0]} boxes "
            f"and {scores.shape[0]} scores."
        )

    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.intp)

    pad = 1.0 if include_boundaries else 0.0
    left, top, right, bottom = boxes.T
    areas = (right - left + pad) * (bottom - top + pad)

    # Stable descending sort: lower index wins ties.
    order = np.argsort(-scores, kind="stable")
    order = order[scores[order] >= 0]

    keep = []
    while order.size > 0:
        i = order[0]
        keep.append(i)
        if keep_top_k and len(keep) >= keep_top_k:
            break

        rest = order[1:]
        w = np.minimum(right[i], right[rest]) - np.maximum(left[i], left[rest]) + pad
        h = np.minimum(bottom[i], bottom[rest]) - np.maximum(top[i], top[rest]) + pad
        inter = np.where((w > 0) & (h > 0), w * h, 0.0)
        union = areas[i] + areas[rest] - inter

        with np.errstate(divide="ignore", invalid="ignore"):
            suppressed = (union <= 0) | (inter / union > iou_threshold)
        order = rest[~suppressed]

    return np.array(keep, dtype=np.intp)


def iou(box_a: np.ndarray, box_b: np.ndarray) -> float:
    """Intersection over union of two (left, top, right, bottom) boxes."""
    w = min(box_a[2], box_b[2]) - max(box_a[0], box_b[0])
    h = min(box_a[3], box_b[3]) - max(box_a[1], box_b[1])
    inter = w * h if w > 0 and h > 0 else 0.0
    union = (
        (box_a[2] - box_a[0]) * (box_a[3] - box_a[1])
        + (box_b[2] - box_b[0]) * (box_b[3] - box_b[1])
        - inter
    )
    if union <= 0:
        return 0.0
    return float(inter / union)
