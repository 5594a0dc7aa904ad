"""
Tests for the anchor generator.
"""

import numpy as np
import pytest

from yunet.anchors import (
    ANCHOR_STRIDES,
    MIN_ANCHOR_SIZES,
    AnchorGeometry,
    anchor_count,
    feature_map_sizes,
    generate_anchors,
)
from yunet.errors import InvalidParameter


def test_anchor_count_320x320():
    """40x40x3 + 20x20x2 + 10x10x2 + 5x5x3 anchors."""
    anchors = generate_anchors(320, 320)
    assert anchors.shape == (5875, 4)
    assert anchor_count(320, 320) == 5875


def test_anchor_count_640x480():
    """80x60x3 + 40x30x2 + 20x15x2 + 10x7x3 anchors."""
    assert feature_map_sizes(640, 480) == ((80, 60), (40, 30), (20, 15), (10, 7))
    anchors = generate_anchors(640, 480)
    assert anchors.shape == (17610, 4)
    assert anchor_count(640, 480) == 17610


@pytest.mark.parametrize("size", [(1, 1), (31, 31), (100, 37), (321, 240), (1280, 720)])
def test_anchor_count_matches_closed_form(size):
    width, height = size
    expected = sum(
        w * h * len(sizes)
        for (w, h), sizes in zip(feature_map_sizes(width, height), MIN_ANCHOR_SIZES)
    )
    assert len(generate_anchors(width, height)) == expected == anchor_count(width, height)


def test_first_and_last_anchor_values():
    anchors = generate_anchors(320, 320)

    # Stage 0, cell (0, 0), sizes 10 and 16
    assert np.allclose(anchors[0], [0.0125, 0.0125, 10 / 320, 10 / 320])
    assert np.allclose(anchors[1], [0.0125, 0.0125, 16 / 320, 16 / 320])
    # Stage 0, cell (1, 0), first size
    assert np.allclose(anchors[3], [1.5 * 8 / 320, 0.0125, 10 / 320, 10 / 320])
    # Stage 1 starts after 40 * 40 * 3 anchors
    assert np.allclose(anchors[4800], [0.025, 0.025, 0.1, 0.1])
    # Stage 3, cell (4, 4), size 256
    assert np.allclose(anchors[-1], [0.9, 0.9, 0.8, 0.8])


def test_emission_order_is_y_then_x_then_size():
    """Row order must be stage, y, x, size index."""
    width, height = 320, 320
    anchors = generate_anchors(width, height)
    stage0 = anchors[: 40 * 40 * 3].reshape(40, 40, 3, 4)

    ys, xs = np.mgrid[:40, :40]
    stride = ANCHOR_STRIDES[0]
    assert np.allclose(stage0[:, :, 0, 0], (xs + 0.5) * stride / width)
    assert np.allclose(stage0[:, :, 0, 1], (ys + 0.5) * stride / height)
    for k, s in enumerate(MIN_ANCHOR_SIZES[0]):
        assert np.allclose(stage0[:, :, k, 2], s / width)
        assert np.allclose(stage0[:, :, k, 3], s / height)


def test_non_square_input_normalizes_per_axis():
    anchors = generate_anchors(640, 480)
    assert np.allclose(anchors[0], [4 / 640, 4 / 480, 10 / 640, 10 / 480])


def test_zero_resolution_yields_no_anchors():
    anchors = generate_anchors(0, 0)
    assert anchors.shape == (0, 4)
    assert anchor_count(0, 0) == 0


def test_empty_stages_are_skipped():
    """31x31 leaves the last stage with an empty map."""
    assert feature_map_sizes(31, 31) == ((4, 4), (2, 2), (1, 1), (0, 0))
    anchors = generate_anchors(31, 31)
    assert anchors.shape == (4 * 4 * 3 + 2 * 2 * 2 + 1 * 1 * 2, 4)


def test_negative_resolution_rejected():
    with pytest.raises(InvalidParameter, match="non-negative"):
        generate_anchors(-1, 320)


def test_anchors_are_read_only():
    anchors = generate_anchors(320, 320)
    with pytest.raises(ValueError):
        anchors[0, 0] = 1.0


def test_generation_is_deterministic():
    first = generate_anchors(640, 480)
    second = generate_anchors(640, 480)
    assert np.array_equal(first, second)


def test_custom_geometry():
    geometry = AnchorGeometry(min_sizes=((16,),), strides=(8,), variance=(0.1, 0.2))
    anchors = generate_anchors(64, 64, geometry)
    assert anchors.shape == (8 * 8, 4)
    assert np.allclose(anchors[0], [0.0625, 0.0625, 0.25, 0.25])


def test_geometry_validation():
    with pytest.raises(InvalidParameter, match="stages"):
        AnchorGeometry(min_sizes=((10,),), strides=(8, 16)).validate()

    with pytest.raises(InvalidParameter, match="strides"):
        AnchorGeometry(min_sizes=((10,),), strides=(0,)).validate()

    with pytest.raises(InvalidParameter, match="min_sizes"):
        AnchorGeometry(min_sizes=((),), strides=(8,)).validate()

    with pytest.raises(InvalidParameter, match="variance"):
        AnchorGeometry(variance=(0.1, -0.2)).validate()

    AnchorGeometry().validate()
