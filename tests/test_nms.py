"""
Tests for greedy non-maximum suppression.
"""

import numpy as np
import pytest

from yunet.detection import Box
from yunet.nms import iou, suppress


def test_identical_boxes_keep_best():
    boxes = [Box(0.1, 0.1, 0.5, 0.5), Box(0.1, 0.1, 0.5, 0.5)]
    assert suppress(boxes, [0.9, 0.5], max_iou=0.5) == [0]
    assert suppress(boxes, [0.5, 0.9], max_iou=0.5) == [1]


def test_disjoint_boxes_are_kept():
    boxes = [Box(0.0, 0.0, 0.2, 0.2), Box(0.5, 0.5, 0.2, 0.2)]
    for max_iou in (0.0, 0.5, 1.0):
        assert suppress(boxes, [0.3, 0.8], max_iou=max_iou) == [1, 0]


def test_single_candidate_is_kept():
    assert suppress([Box(0.2, 0.2, 0.1, 0.1)], [0.1], max_iou=0.0) == [0]


def test_no_candidates():
    assert suppress([], [], max_iou=0.5) == []


def test_ties_keep_original_order():
    boxes = [Box(0.0, 0.0, 0.1, 0.1), Box(0.3, 0.3, 0.1, 0.1), Box(0.6, 0.6, 0.1, 0.1)]
    assert suppress(boxes, [0.7, 0.7, 0.7], max_iou=0.5) == [0, 1, 2]

    same = [Box(0.0, 0.0, 0.1, 0.1)] * 3
    assert suppress(same, [0.7, 0.7, 0.7], max_iou=0.5) == [0]


def test_iou_equal_to_threshold_is_not_suppressed():
    """IoU must exceed max_iou for suppression."""
    boxes = [Box(0.0, 0.0, 1.0, 1.0), Box(0.0, 0.0, 1.0, 0.5)]
    assert iou(*boxes) == pytest.approx(0.5)
    assert suppress(boxes, [0.9, 0.8], max_iou=0.5) == [0, 1]
    assert suppress(boxes, [0.9, 0.8], max_iou=0.49) == [0]


def test_selection_order_is_descending_score():
    boxes = [
        Box(0.0, 0.0, 0.2, 0.2),
        Box(0.01, 0.01, 0.2, 0.2),   # overlaps box 0
        Box(0.5, 0.5, 0.2, 0.2),
        Box(0.8, 0.0, 0.1, 0.1),
    ]
    scores = [0.6, 0.95, 0.7, 0.8]
    assert suppress(boxes, scores, max_iou=0.5) == [1, 3, 2]


def test_zero_size_box_never_overlaps():
    boxes = [Box(0.5, 0.5, 0.0, 0.0), Box(0.0, 0.0, 1.0, 1.0), Box(0.5, 0.5, 0.0, 0.0)]
    assert suppress(boxes, [0.9, 0.8, 0.7], max_iou=0.0) == [0, 1, 2]
    assert iou(boxes[0], boxes[2]) == 0.0


def test_iou_values():
    assert iou(Box(0.0, 0.0, 1.0, 1.0), Box(0.5, 0.0, 1.0, 1.0)) == pytest.approx(1 / 3)
    assert iou(Box(0.0, 0.0, 0.2, 0.2), Box(0.0, 0.0, 0.2, 0.2)) == pytest.approx(1.0)
    assert iou(Box(0.0, 0.0, 0.2, 0.2), Box(0.3, 0.3, 0.2, 0.2)) == 0.0


def test_accepts_xywh_array():
    boxes = np.array([[0.1, 0.1, 0.5, 0.5], [0.1, 0.1, 0.5, 0.5], [0.7, 0.7, 0.1, 0.1]])
    assert suppress(boxes, np.array([0.5, 0.9, 0.1]), max_iou=0.5) == [1, 2]


def test_rerun_on_kept_boxes_suppresses_nothing():
    rng = np.random.default_rng(11)
    xy = rng.uniform(0.0, 0.8, size=(200, 2))
    wh = rng.uniform(0.02, 0.2, size=(200, 2))
    boxes = np.hstack([xy, wh])
    scores = rng.uniform(size=200)

    for max_iou in (0.0, 0.3, 0.5, 0.9):
        keep = suppress(boxes, scores, max_iou)
        assert 0 < len(keep) <= 200
        rerun = suppress(boxes[keep], scores[keep], max_iou)
        assert sorted(rerun) == list(range(len(keep)))


def test_length_mismatch_raises():
    with pytest.raises(ValueError, match="scores"):
        suppress([Box(0.0, 0.0, 0.1, 0.1)], [0.5, 0.6], max_iou=0.5)
