"""
Greedy non-maximum suppression over normalized boxes.

Boxes are (x, y, width, height) with a top-left origin. A candidate is
dropped when its IoU with an already selected box exceeds ``max_iou``.
Ties in score keep their original index order, so the result is stable
for identical inputs.
"""

from typing import List, Sequence, Union

import numpy as np

from yunet.detection import Box

BoxesLike = Union[Sequence[Box], np.ndarray]


def _as_xyxy(boxes: BoxesLike) -> np.ndarray:
    if isinstance(boxes, np.ndarray):
        xywh = boxes.astype(np.float64, copy=False).reshape(-1, 4)
    else:
        xywh = np.array([b.as_xywh() for b in boxes], dtype=np.float64).reshape(-1, 4)

    xyxy = xywh.copy()
    xyxy[:, 2] = xywh[:, 0] + xywh[:, 2]
    xyxy[:, 3] = xywh[:, 1] + xywh[:, 3]
    return xyxy


def _iou_one_to_many(xyxy: np.ndarray, areas: np.ndarray, i: int, others: np.ndarray) -> np.ndarray:
    xx1 = np.maximum(xyxy[i, 0], xyxy[others, 0])
    yy1 = np.maximum(xyxy[i, 1], xyxy[others, 1])
    xx2 = np.minimum(xyxy[i, 2], xyxy[others, 2])
    yy2 = np.minimum(xyxy[i, 3], xyxy[others, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    union = areas[i] + areas[others] - inter

    # Zero-area unions count as no overlap instead of NaN.
    iou = np.zeros_like(inter)
    np.divide(inter, union, out=iou, where=union > 0)
    return iou


def iou(a: Box, b: Box) -> float:
    """Intersection-over-union of two boxes; 0.0 when the union is empty."""
    xyxy = _as_xyxy([a, b])
    areas = np.array([a.area, b.area])
    return float(_iou_one_to_many(xyxy, areas, 0, np.array([1]))[0])


def suppress(boxes: BoxesLike, scores: Sequence[float], max_iou: float) -> List[int]:
    """Select the boxes to keep with greedy NMS.

    Args:
        boxes: Sequence of Box, or an (N, 4) xywh array.
        scores: One score per box.
        max_iou: Highest IoU a kept box may have with a better-scoring one.

    Returns:
        Indices into ``boxes`` in selection order (descending score).

    Raises:
        ValueError: If boxes and scores differ in length.
    """
    xyxy = _as_xyxy(boxes)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)

    if xyxy.shape[0] != scores.shape[0]:
        raise ValueError(
            f"Got {xyxy.shape[0]} boxes but {scores.shape[0]} scores."
        )
    if scores.size == 0:
        return []

    widths = np.maximum(0.0, xyxy[:, 2] - xyxy[:, 0])
    heights = np.maximum(0.0, xyxy[:, 3] - xyxy[:, 1])
    areas = widths * heights

    # Stable descending sort: equal scores stay in index order.
    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        overlap = _iou_one_to_many(xyxy, areas, i, rest)
        order = rest[overlap <= max_iou]

    return keep
