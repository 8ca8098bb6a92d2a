"""
Postprocessing for single-shot face detectors.

Responsibility:
    Turn the raw output tensors of an anchor-based detector into a list
    of Detection objects: score filtering, box (and landmark) decoding
    against the anchor table, non-maximum suppression, and rescaling to
    the original image with boundary clamping.

Non-goals:
    - No drawing, saving, or display logic.
    - No model loading or inference.

Hard-coded:
    - Candidate tensors are (1, N, C): one row per anchor. Scores carry
      (background, foreground) pairs, boxes (dx, dy, dw, dh), landmarks
      (dx0, dy0, dx1, dy1, ...).
    - Single-class output: every detection gets label id 0.
"""

import logging
from typing import List, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from vision_models.detection import Detection
from vision_models.errors import TensorShapeError
from vision_models.nms import nms

logger = logging.getLogger(__name__)


class FilteredCandidates(NamedTuple):
    """Candidates that passed the score threshold.

    indices are positions in the anchor table (ascending); scores are
    the matching foreground scores. Every later stage is index-aligned
    with this pair.
    """

    indices: np.ndarray
    scores: np.ndarray

    def __len__(self) -> int:
        return int(self.indices.shape[0])


def candidate_view(
    tensor: np.ndarray,
    name: str,
    width: Optional[int] = None,
    count: Optional[int] = None,
) -> np.ndarray:
    """Return the (N, C) candidate rows of a (1, N, C) output tensor.

    No data is copied. The shape is checked instead of trusting the
    caller, so a mismatched tensor fails loudly rather than being
    truncated.

    Raises:
        TensorShapeError: If the rank, batch, width or row count differ
                          from what is expected.
    """
    view = np.asarray(tensor)
    if view.ndim != 3 or view.shape[0] != 1:
        raise TensorShapeError(
            f"Output '{name}' must have shape (1, N, C), got {view.shape}."
        )
    view = view[0]
    if width is not None and view.shape[1] != width:
        raise TensorShapeError(
            f"Output '{name}' must have {width} values per candidate, got {view.shape[1]}."
        )
    if count is not None and view.shape[0] != count:
        raise TensorShapeError(
            f"Output '{name}' has {view.shape[0]} candidates but {count} anchors are defined."
        )
    return view


def filter_scores(scores: np.ndarray, threshold: float) -> FilteredCandidates:
    """Keep candidates whose foreground score is strictly above threshold.

    Args:
        scores: (N, 2) rows of (background, foreground) scores.
        threshold: Confidence threshold.

    Returns:
        FilteredCandidates in ascending candidate order. May be empty.
    """
    if scores.ndim != 2 or scores.shape[1] != 2:
        raise TensorShapeError(
            f"Score rows must be (background, foreground) pairs, got shape {scores.shape}."
        )
    foreground = scores[:, 1]
    indices = np.flatnonzero(foreground > threshold)
    return FilteredCandidates(indices=indices, scores=foreground[indices].astype(np.float64))


def _check_aligned(deltas: np.ndarray, anchors: np.ndarray, what: str) -> None:
    if deltas.shape[0] != anchors.shape[0]:
        raise TensorShapeError(
            f"{what} tensor has {deltas.shape[0]} candidates but {anchors.shape[0]} anchors are defined."
        )


def decode_boxes(
    deltas: np.ndarray,
    anchors: np.ndarray,
    indices: np.ndarray,
    variance: Sequence[float],
) -> np.ndarray:
    """Apply regression deltas to the anchors of the surviving candidates.

    For anchor (cx, cy, w, h) and delta (dx, dy, dw, dh):

        center_x = dx * variance[0] * w + cx
        center_y = dy * variance[0] * h + cy
        width    = exp(dw * variance[1]) * w
        height   = exp(dh * variance[1]) * h

    Args:
        deltas: (N, 4) box regression rows.
        anchors: (N, 4) anchor table as (cx, cy, w, h).
        indices: Candidate indices to decode.
        variance: (center variance, size variance).

    Returns:
        (K, 4) boxes as (left, top, right, bottom), in the anchors'
        coordinate space, aligned with indices.
    """
    if deltas.ndim != 2 or deltas.shape[1] != 4:
        raise TensorShapeError(f"Box deltas must be (N, 4), got shape {deltas.shape}.")
    _check_aligned(deltas, anchors, "Box")

    prior = anchors[indices]
    d = deltas[indices].astype(np.float64)

    center_x = d[:, 0] * variance[0] * prior[:, 2] + prior[:, 0]
    center_y = d[:, 1] * variance[0] * prior[:, 3] + prior[:, 1]
    width = np.exp(d[:, 2] * variance[1]) * prior[:, 2]
    height = np.exp(d[:, 3] * variance[1]) * prior[:, 3]

    return np.stack(
        [
            center_x - 0.5 * width,
            center_y - 0.5 * height,
            center_x + 0.5 * width,
            center_y + 0.5 * height,
        ],
        axis=1,
    )


def decode_landmarks(
    deltas: np.ndarray,
    anchors: np.ndarray,
    indices: np.ndarray,
    variance: Sequence[float],
) -> np.ndarray:
    """Decode landmark offsets relative to the anchor centre and size.

    Returns:
        (K, L, 2) points in the anchors' coordinate space.
    """
    if deltas.ndim != 2 or deltas.shape[1] % 2 != 0:
        raise TensorShapeError(
            f"Landmark deltas must be (N, 2 * points), got shape {deltas.shape}."
        )
    _check_aligned(deltas, anchors, "Landmark")

    prior = anchors[indices]
    points = deltas[indices].astype(np.float64).reshape(len(indices), deltas.shape[1] // 2, 2)

    xs = prior[:, None, 0] + points[:, :, 0] * variance[0] * prior[:, None, 2]
    ys = prior[:, None, 1] + points[:, :, 1] * variance[0] * prior[:, None, 3]
    return np.stack([xs, ys], axis=2)


def assemble_detections(
    keep: np.ndarray,
    boxes: np.ndarray,
    scores: np.ndarray,
    scale: Tuple[float, float],
    image_size: Tuple[int, int],
    labels: Sequence[str],
    landmarks: Optional[np.ndarray] = None,
) -> List[Detection]:
    """Map kept boxes to original-image pixels and build Detections.

    Every coordinate is divided by scale. x and y are clamped to the
    image; width and height come from the unclamped box and are clamped
    to the image size on their own, so x + width may exceed the image
    width for boxes that start outside it.

    Args:
        keep: Indices into boxes / scores, in output order.
        boxes: (K, 4) decoded boxes.
        scores: (K,) scores aligned with boxes.
        scale: (scale_x, scale_y) from decode space to image pixels.
        image_size: Original (width, height).
        labels: Label list; detections use labels[0].
        landmarks: Optional (K, L, 2) decoded landmarks.
    """
    img_w, img_h = image_size
    scale_x, scale_y = scale
    label = labels[0]

    detections: List[Detection] = []
    for i in keep:
        left, top, right, bottom = boxes[i]
        points: Tuple[Tuple[float, float], ...] = ()
        if landmarks is not None:
            points = tuple(
                (float(px / scale_x), float(py / scale_y)) for px, py in landmarks[i]
            )

        detections.append(Detection(
            label_id=0,
            label=label,
            confidence=float(scores[i]),
            x=float(np.clip(left / scale_x, 0.0, img_w)),
            y=float(np.clip(top / scale_y, 0.0, img_h)),
            width=float(np.clip((right - left) / scale_x, 0.0, img_w)),
            height=float(np.clip((bottom - top) / scale_y, 0.0, img_h)),
            landmarks=points,
        ))

    return detections


def postprocess(
    outputs: Mapping[str, np.ndarray],
    roles: Mapping[str, str],
    anchors: np.ndarray,
    variance: Sequence[float],
    scale: Tuple[float, float],
    image_size: Tuple[int, int],
    labels: Sequence[str],
    confidence_threshold: float,
    iou_threshold: float,
    include_boundaries: bool = False,
    keep_top_k: int = 0,
) -> List[Detection]:
    """Run the full decode pipeline on one inference result.

    Args:
        outputs: Raw output tensors keyed by output name.
        roles: Maps 'boxes', 'scores' and optionally 'landmarks' to
               output names.
        anchors: (N, 4) anchor table as (cx, cy, w, h).
        variance: Regression variance pair.
        scale: Decode-space to image-pixel divisor (see assemble_detections).
        image_size: Original (width, height).
        labels: Label list.
        confidence_threshold: Score filter threshold.
        iou_threshold: NMS IoU threshold.
        include_boundaries: Inclusive pixel boxes in NMS (see nms.nms).
        keep_top_k: Maximum number of detections, 0 for no limit.

    Returns:
        Detections in descending confidence order. Empty list if nothing
        passes the threshold.

    Raises:
        TensorShapeError: If an output tensor does not match the anchors.
        KeyError: If an output named in roles is missing.
    """
    count = anchors.shape[0]
    score_rows = candidate_view(outputs[roles["scores"]], roles["scores"], width=2, count=count)
    box_rows = candidate_view(outputs[roles["boxes"]], roles["boxes"], width=4, count=count)
    landmark_rows = None
    if "landmarks" in roles:
        landmark_rows = candidate_view(outputs[roles["landmarks"]], roles["landmarks"], count=count)

    candidates = filter_scores(score_rows, confidence_threshold)
    if len(candidates) == 0:
        logger.debug("No candidates above confidence threshold %.2f", confidence_threshold)
        return []

    boxes = decode_boxes(box_rows, anchors, candidates.indices, variance)
    landmarks = None
    if landmark_rows is not None:
        landmarks = decode_landmarks(landmark_rows, anchors, candidates.indices, variance)

    keep = nms(
        boxes,
        candidates.scores,
        iou_threshold,
        include_boundaries=include_boundaries,
        keep_top_k=keep_top_k,
    )
    logger.debug("%d candidates above threshold, %d kept after NMS", len(candidates), len(keep))

    return assemble_detections(
        keep, boxes, candidates.scores, scale, image_size, labels, landmarks=landmarks,
    )
