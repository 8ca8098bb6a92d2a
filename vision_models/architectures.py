"""
Detector families supported by the Detector wrapper.

Every family runs the same pipeline (score filter, box decode, NMS,
assembly). What differs is numeric: the anchor layout, the variance,
which output tensor plays which role, and whether anchors live in
network-input pixels or in normalized coordinates. A DetectorFamily is
a plain record of those differences.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from vision_models.anchors import Anchor, MinSizes, generate_anchors, generate_priors
from vision_models.errors import ModelStructureError

OutputRoles = Dict[str, str]


def _roles_by_sorted_name(output_names: Sequence[str]) -> OutputRoles:
    """Sorted output names: first is boxes, second is scores."""
    ordered = sorted(output_names)
    return {"boxes": ordered[0], "scores": ordered[1]}


def _roles_by_substring(output_names: Sequence[str]) -> OutputRoles:
    """Pick roles from name fragments: 'bbox', 'cls', 'landmark'."""
    roles: OutputRoles = {}
    for name in output_names:
        if "bbox" in name:
            roles["boxes"] = name
        elif "cls" in name:
            roles["scores"] = name
        elif "landmark" in name:
            roles["landmarks"] = name

    missing = {"boxes", "scores"} - roles.keys()
    if missing:
        raise ModelStructureError(
            f"Could not find outputs for {sorted(missing)} among {list(output_names)}. "
            f"Expected names containing 'bbox', 'cls' and optionally 'landmark'."
        )
    return roles


@dataclass(frozen=True)
class DetectorFamily:
    """Per-architecture parameters of an anchor-based face detector.

    Attributes:
        name: Model type identifier used in configuration.
        steps: Default stride per feature-map level.
        min_sizes: Default anchor sizes per level.
        variance: Default (center, size) regression variance.
        labels: Default label list.
        output_counts: Accepted numbers of network outputs.
        anchor_generator: Builds the anchor list from
                          (input_width, input_height, steps, min_sizes).
        normalized_anchors: True if anchors are fractions of the input
                            size rather than pixels.
        role_resolver: Maps output names to 'boxes' / 'scores' /
                       'landmarks'.
        nms_include_boundaries: Treat decoded boxes as inclusive pixel
                                boxes during NMS.
    """

    name: str
    steps: Tuple[int, ...]
    min_sizes: Tuple[Tuple[int, ...], ...]
    variance: Tuple[float, float]
    labels: Tuple[str, ...]
    output_counts: Tuple[int, ...]
    anchor_generator: Callable[[int, int, Sequence[int], MinSizes], List[Anchor]]
    normalized_anchors: bool
    role_resolver: Callable[[Sequence[str]], OutputRoles]
    nms_include_boundaries: bool = False

    def generate_anchors(
        self,
        input_width: int,
        input_height: int,
        steps: Optional[Sequence[int]] = None,
        min_sizes: Optional[MinSizes] = None,
    ) -> List[Anchor]:
        return self.anchor_generator(
            input_width,
            input_height,
            self.steps if steps is None else steps,
            self.min_sizes if min_sizes is None else min_sizes,
        )

    def resolve_roles(self, output_names: Sequence[str]) -> OutputRoles:
        if len(output_names) not in self.output_counts:
            expected = " or ".join(str(n) for n in self.output_counts)
            raise ModelStructureError(
                f"{self.name} wrapper expects models with {expected} outputs, "
                f"got {len(output_names)}: {list(output_names)}."
            )
        return self.role_resolver(output_names)

    def scale(
        self,
        input_size: Tuple[int, int],
        image_size: Tuple[int, int],
    ) -> Tuple[float, float]:
        """Divisor that maps decoded coordinates to original-image pixels."""
        img_w, img_h = image_size
        if self.normalized_anchors:
            return 1.0 / img_w, 1.0 / img_h
        net_w, net_h = input_size
        return net_w / img_w, net_h / img_h


FACEBOXES = DetectorFamily(
    name="faceboxes",
    steps=(32, 64, 128),
    min_sizes=((32, 64, 128), (256,), (512,)),
    variance=(0.1, 0.2),
    labels=("Face",),
    output_counts=(2,),
    anchor_generator=generate_anchors,
    normalized_anchors=False,
    role_resolver=_roles_by_sorted_name,
)

RETINAFACE_PT = DetectorFamily(
    name="retinaface_pt",
    steps=(8, 16, 32),
    min_sizes=((16, 32), (64, 128), (256, 512)),
    variance=(0.1, 0.2),
    labels=("Face",),
    output_counts=(2, 3),
    anchor_generator=generate_priors,
    normalized_anchors=True,
    role_resolver=_roles_by_substring,
)

FAMILIES: Dict[str, DetectorFamily] = {f.name: f for f in (FACEBOXES, RETINAFACE_PT)}


def get_family(name: str) -> DetectorFamily:
    """Look up a detector family by model type name.

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        return FAMILIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown detector model type: '{name}'. Known types: {sorted(FAMILIES)}."
        ) from None
