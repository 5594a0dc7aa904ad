"""
Anchor generation for the YuNet detection head.

Responsibility:
    Build, once per input resolution, the ordered list of anchor boxes
    that correspond 1:1 to the rows of the model's output tensors.

Row contract:
    Anchors are emitted stage by stage, then row (y) by row, then
    column (x) by column, then minimum size by minimum size. Row i of
    every output tensor belongs to anchor i. Nothing else ties an anchor
    to a row, so this order must match the network exactly.

Layout:
    The anchor set is a read-only float64 array of shape (P, 4) holding
    (center_x, center_y, width, height) in normalized coordinates.

Hard-coded:
    - The base feature map is the input downsampled by 4, rounding
      (size + 1) down.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from yunet.errors import InvalidParameter

# YuNet stage geometry. A retrained model with a different head only
# needs a different AnchorGeometry table.
MIN_ANCHOR_SIZES: Tuple[Tuple[int, ...], ...] = (
    (10, 16, 24),
    (32, 48),
    (64, 96),
    (128, 192, 256),
)
ANCHOR_STRIDES: Tuple[int, ...] = (8, 16, 32, 64)
ANCHOR_VARIANCE: Tuple[float, float] = (0.1, 0.2)

_BASE_DOWNSAMPLE_SHIFT = 2


@dataclass(frozen=True)
class AnchorGeometry:
    """Per-stage anchor constants of a detection network.

    Attributes:
        min_sizes: Minimum anchor sizes in pixels, one tuple per stage.
        strides: Stride in pixels of each stage.
        variance: (center, size) variance used when decoding offsets.
    """

    min_sizes: Tuple[Tuple[int, ...], ...] = MIN_ANCHOR_SIZES
    strides: Tuple[int, ...] = ANCHOR_STRIDES
    variance: Tuple[float, float] = ANCHOR_VARIANCE

    @property
    def num_stages(self) -> int:
        return len(self.strides)

    def validate(self) -> None:
        """Raise InvalidParameter if the table is malformed."""
        if len(self.min_sizes) != len(self.strides):
            raise InvalidParameter(
                f"anchors.min_sizes has {len(self.min_sizes)} stages but "
                f"anchors.strides has {len(self.strides)}."
            )
        if any(s <= 0 for s in self.strides):
            raise InvalidParameter(
                f"anchors.strides must be positive, got {self.strides}."
            )
        for stage, sizes in enumerate(self.min_sizes):
            if not sizes or any(s <= 0 for s in sizes):
                raise InvalidParameter(
                    f"anchors.min_sizes[{stage}] must be a non-empty list of "
                    f"positive sizes, got {sizes}."
                )
        if len(self.variance) != 2 or any(v <= 0 for v in self.variance):
            raise InvalidParameter(
                f"anchors.variance must be two positive values, got {self.variance}."
            )


YUNET_GEOMETRY = AnchorGeometry()


def feature_map_sizes(
    width: int,
    height: int,
    geometry: AnchorGeometry = YUNET_GEOMETRY,
) -> Tuple[Tuple[int, int], ...]:
    """Return the (map_w, map_h) grid of every stage.

    Stage i uses the base map halved i + 1 times.
    """
    if width < 0 or height < 0:
        raise InvalidParameter(
            f"Input size must be non-negative, got ({width}, {height})."
        )

    map_w = (width + 1) >> _BASE_DOWNSAMPLE_SHIFT
    map_h = (height + 1) >> _BASE_DOWNSAMPLE_SHIFT
    maps = []
    for _ in range(geometry.num_stages):
        map_w >>= 1
        map_h >>= 1
        maps.append((map_w, map_h))
    return tuple(maps)


def anchor_count(
    width: int,
    height: int,
    geometry: AnchorGeometry = YUNET_GEOMETRY,
) -> int:
    """Closed-form anchor count P for an input resolution."""
    return sum(
        map_w * map_h * len(sizes)
        for (map_w, map_h), sizes in zip(
            feature_map_sizes(width, height, geometry), geometry.min_sizes
        )
    )


def generate_anchors(
    width: int,
    height: int,
    geometry: AnchorGeometry = YUNET_GEOMETRY,
) -> np.ndarray:
    """Generate the anchor set for a model input resolution.

    Args:
        width: Model input width in pixels.
        height: Model input height in pixels.
        geometry: Stage constants; defaults to the YuNet table.

    Returns:
        A read-only (P, 4) float64 array of (center_x, center_y, w, h).
        Empty (0, 4) when the resolution is too small for any stage.

    Raises:
        InvalidParameter: If width or height is negative.
    """
    stages = []

    for (map_w, map_h), sizes, stride in zip(
        feature_map_sizes(width, height, geometry),
        geometry.min_sizes,
        geometry.strides,
    ):
        if map_w == 0 or map_h == 0:
            continue

        num_sizes = len(sizes)
        grid_y, grid_x = np.mgrid[:map_h, :map_w]

        # Row-major cells, each repeated once per minimum size.
        cell_x = np.repeat(grid_x.reshape(-1), num_sizes).astype(np.float64)
        cell_y = np.repeat(grid_y.reshape(-1), num_sizes).astype(np.float64)
        min_size = np.tile(np.asarray(sizes, dtype=np.float64), map_w * map_h)

        stage = np.empty((cell_x.shape[0], 4), dtype=np.float64)
        stage[:, 0] = (cell_x + 0.5) * stride / width
        stage[:, 1] = (cell_y + 0.5) * stride / height
        stage[:, 2] = min_size / width
        stage[:, 3] = min_size / height
        stages.append(stage)

    if stages:
        anchors = np.concatenate(stages, axis=0)
    else:
        anchors = np.empty((0, 4), dtype=np.float64)

    anchors.flags.writeable = False
    return anchors
