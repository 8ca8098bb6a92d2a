"""
Anchor (prior box) generation for single-shot face detectors.

Responsibility:
    Produce the ordered list of reference boxes a detector's regression
    output is relative to. The order is part of the contract: anchor i
    pairs with candidate i of the box, score and landmark tensors.

Two layouts are supported:
    - FaceBoxes: anchors in network-input pixels, with the first
      feature-map level densified for small faces.
    - RetinaFace (PyTorch export): priors normalized to [0, 1] by the
      network input size, every min-size placed at every cell.

Anchors are computed once per model and never mutated.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import numpy as np

from vision_models.errors import ModelStructureError

logger = logging.getLogger(__name__)

MinSizes = Sequence[Union[int, Sequence[int]]]

# Sub-cell offsets used at level 0, keyed by anchor size.
_DENSE_OFFSETS = {
    32: (0.0, 0.25, 0.5, 0.75),
    64: (0.0, 0.5),
}
_CENTER_OFFSET = (0.5,)


@dataclass(frozen=True, slots=True)
class Anchor:
    """Reference box stored as (left, top, right, bottom)."""

    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_center(cls, cx: float, cy: float, width: float, height: float) -> "Anchor":
        return cls(
            left=cx - 0.5 * width,
            top=cy - 0.5 * height,
            right=cx + 0.5 * width,
            bottom=cy + 0.5 * height,
        )

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return self.left + self.width * 0.5

    @property
    def center_y(self) -> float:
        return self.top + self.height * 0.5

    def as_center(self) -> Tuple[float, float, float, float]:
        """Return (center_x, center_y, width, height)."""
        return self.center_x, self.center_y, self.width, self.height


def _level_sizes(min_sizes: MinSizes, level: int) -> List[int]:
    sizes = min_sizes[level]
    if isinstance(sizes, (int, np.integer)):
        return [int(sizes)]
    return [int(s) for s in sizes]


def _check_layout(steps: Sequence[int], min_sizes: MinSizes) -> None:
    if len(steps) == 0:
        raise ModelStructureError("Anchor layout needs at least one step.")
    if len(steps) != len(min_sizes):
        raise ModelStructureError(
            f"steps and min_sizes must have one entry per feature-map level, "
            f"got {len(steps)} steps and {len(min_sizes)} min_sizes."
        )
    for level, step in enumerate(steps):
        if step <= 0:
            raise ModelStructureError(f"Step of level {level} must be positive, got {step}.")
        sizes = _level_sizes(min_sizes, level)
        if not sizes or any(s <= 0 for s in sizes):
            raise ModelStructureError(
                f"min_sizes of level {level} must be non-empty and positive, got {sizes}."
            )


def _dense_anchors(
    anchors: List[Anchor],
    xs: Sequence[float],
    ys: Sequence[float],
    size: int,
    step: int,
) -> None:
    # ys outer, xs inner
    for y in ys:
        cy = y * step
        for x in xs:
            cx = x * step
            anchors.append(Anchor.from_center(cx, cy, float(size), float(size)))


def generate_anchors(
    input_width: int,
    input_height: int,
    steps: Sequence[int],
    min_sizes: MinSizes,
) -> List[Anchor]:
    """Build the FaceBoxes anchor list in network-input pixel space.

    Feature map k has (input_height // steps[k]) rows and
    (input_width // steps[k]) columns. At level 0 every size in
    min_sizes[0] is placed in each cell: size 32 on a 4x4 sub-grid,
    size 64 on a 2x2 sub-grid, anything else once at the cell centre.
    Later levels place a single anchor of size min_sizes[k][0] at each
    cell centre.

    Args:
        input_width: Network input width in pixels.
        input_height: Network input height in pixels.
        steps: Stride of each feature-map level, coarsest layer last.
        min_sizes: Anchor sizes per level. Level 0 takes a list; later
                   levels use only their first value.

    Returns:
        Anchors ordered level, row, column, size, sub-row, sub-column.

    Raises:
        ModelStructureError: If steps and min_sizes are inconsistent.
    """
    _check_layout(steps, min_sizes)

    anchors: List[Anchor] = []
    for level, step in enumerate(steps):
        rows = input_height // step
        cols = input_width // step
        sizes = _level_sizes(min_sizes, level)
        for row in range(rows):
            for col in range(cols):
                if level == 0:
                    for size in sizes:
                        offsets = _DENSE_OFFSETS.get(size, _CENTER_OFFSET)
                        xs = [col + o for o in offsets]
                        ys = [row + o for o in offsets]
                        _dense_anchors(anchors, xs, ys, size, step)
                else:
                    _dense_anchors(anchors, [col + 0.5], [row + 0.5], sizes[0], step)

    logger.debug(
        "Generated %d anchors for %dx%d input (steps=%s)",
        len(anchors), input_width, input_height, list(steps),
    )
    return anchors


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def generate_priors(
    input_width: int,
    input_height: int,
    steps: Sequence[int],
    min_sizes: MinSizes,
) -> List[Anchor]:
    """Build RetinaFace priors normalized by the network input size.

    Feature map k is round(input / steps[k]) cells on each axis. Every
    size of the level is placed at every cell centre, so a level with
    two sizes yields two priors per cell.

    Returns:
        Priors ordered level, row, column, size, with centre and size
        expressed as fractions of the input width and height.
    """
    _check_layout(steps, min_sizes)

    priors: List[Anchor] = []
    for level, step in enumerate(steps):
        rows = _round_half_up(input_height / step)
        cols = _round_half_up(input_width / step)
        sizes = _level_sizes(min_sizes, level)
        for row in range(rows):
            cy = (row + 0.5) * step / input_height
            for col in range(cols):
                cx = (col + 0.5) * step / input_width
                for size in sizes:
                    priors.append(
                        Anchor.from_center(cx, cy, size / input_width, size / input_height)
                    )

    logger.debug(
        "Generated %d priors for %dx%d input (steps=%s)",
        len(priors), input_width, input_height, list(steps),
    )
    return priors


def anchors_to_array(anchors: Sequence[Anchor]) -> np.ndarray:
    """Pack anchors into a read-only (N, 4) float64 array of (cx, cy, w, h)."""
    if not anchors:
        table = np.empty((0, 4), dtype=np.float64)
    else:
        table = np.array([a.as_center() for a in anchors], dtype=np.float64)
    table.setflags(write=False)
    return table
