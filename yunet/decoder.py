"""
Candidate decoding for the YuNet detection head.

Responsibility:
    Turn the raw per-anchor model outputs into scored candidate boxes in
    normalized image coordinates. Apply score thresholding, variance
    decoding, the vertical axis flip and the optional mapping back into
    the original image.

Non-goals:
    - No overlap suppression (that belongs in nms).
    - No model loading or inference.

Hard-coded:
    - Output tensor layout, one row per anchor:
        offsets     (P, 14): [dx, dy, dw, dh, 10 landmark values]
        confidences (P, 2):  [background, face]
        ious        (P, 1):  [predicted IoU]
    - Landmark values are read past and ignored.
    - The model's vertical axis points the other way from the output
      boxes, so the decoded center is flipped with y -> 1 - y. Anchors
      themselves are not flipped.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from yunet.anchors import ANCHOR_VARIANCE
from yunet.detection import Box, Candidate
from yunet.errors import ShapeMismatch
from yunet.mapping import CoordinateMapper

logger = logging.getLogger(__name__)

OFFSET_COLUMNS = 14
CONFIDENCE_COLUMNS = 2
IOU_COLUMNS = 1

_FACE_CLASS = 1


def _coerce_tensor(name: str, tensor, columns: int, rows: int) -> np.ndarray:
    """Return ``tensor`` as a (rows, columns) float array or raise ShapeMismatch."""
    arr = np.asarray(tensor)

    if arr.ndim == 3:
        if arr.shape[0] != 1:
            raise ShapeMismatch(
                f"Batch > 1 is not supported for '{name}' (got shape {arr.shape}). "
                f"Pass one image at a time."
            )
        arr = arr[0]

    if arr.ndim == 1:
        if arr.size != rows * columns:
            raise ShapeMismatch(
                f"Flat '{name}' tensor has {arr.size} values, expected "
                f"{rows} x {columns} = {rows * columns}."
            )
        arr = arr.reshape(rows, columns)

    if arr.ndim != 2 or arr.shape[1] != columns:
        raise ShapeMismatch(
            f"Expected '{name}' with shape ({rows}, {columns}), got {arr.shape}."
        )

    if arr.shape[0] != rows:
        raise ShapeMismatch(
            f"'{name}' has {arr.shape[0]} rows but the anchor set has {rows}. "
            f"The model input resolution does not match the configured one."
        )

    return arr.astype(np.float64, copy=False)


def coerce_outputs(
    num_anchors: int,
    offsets,
    confidences,
    ious,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Validate and reshape the three model outputs against the anchor count.

    Each tensor may be flat, (P, C), or (1, P, C).

    Raises:
        ShapeMismatch: If any tensor cannot be read as (num_anchors, C).
    """
    return (
        _coerce_tensor("offsets", offsets, OFFSET_COLUMNS, num_anchors),
        _coerce_tensor("confidences", confidences, CONFIDENCE_COLUMNS, num_anchors),
        _coerce_tensor("ious", ious, IOU_COLUMNS, num_anchors),
    )


def compute_scores(confidences: np.ndarray, ious: np.ndarray) -> np.ndarray:
    """Combined score sqrt(face_confidence * clamp(iou, 0, 1)) per row.

    Negative confidences count as zero, so the score is never NaN.
    """
    face = np.maximum(confidences[:, _FACE_CLASS], 0.0)
    quality = np.clip(ious[:, 0], 0.0, 1.0)
    return np.sqrt(face * quality)


def decode_boxes(
    anchors: np.ndarray,
    offsets: np.ndarray,
    variance: Sequence[float] = ANCHOR_VARIANCE,
) -> np.ndarray:
    """Decode offsets against their anchors into (N, 4) model-space xywh boxes.

    ``anchors`` and ``offsets`` must already be row-aligned.
    """
    variance = np.asarray(variance, dtype=np.float64)
    centers = anchors[:, 0:2]
    sizes = anchors[:, 2:4]

    center = centers + variance[0] * (offsets[:, 0:2] * sizes)
    center[:, 1] = 1.0 - center[:, 1]
    size = sizes * np.exp(offsets[:, 2:4] * variance)

    boxes = np.empty((anchors.shape[0], 4), dtype=np.float64)
    boxes[:, 0:2] = center - size / 2.0
    boxes[:, 2:4] = size
    return boxes


def decode(
    anchors: np.ndarray,
    offsets,
    confidences,
    ious,
    min_score: float,
    mapper: Optional[CoordinateMapper] = None,
    variance: Sequence[float] = ANCHOR_VARIANCE,
) -> List[Candidate]:
    """Decode raw model outputs into scored candidates.

    Args:
        anchors: (P, 4) anchor set from generate_anchors().
        offsets: Offset tensor, (P, 14).
        confidences: Confidence tensor, (P, 2).
        ious: IoU tensor, (P, 1).
        min_score: Rows scoring below this are discarded.
        mapper: Optional mapper from model-input space to the original
                image; boxes stay in model space when None.
        variance: (center, size) variance of the anchor table.

    Returns:
        Candidates in anchor order. Empty if no row passes min_score.

    Raises:
        ShapeMismatch: If a tensor does not match the anchor count.
    """
    offsets, confidences, ious = coerce_outputs(
        anchors.shape[0], offsets, confidences, ious
    )

    scores = compute_scores(confidences, ious)
    keep = np.flatnonzero(scores >= min_score)

    logger.debug(
        "Decoded %d/%d rows above min_score=%.2f", keep.size, scores.size, min_score
    )
    if keep.size == 0:
        return []

    boxes = decode_boxes(anchors[keep], offsets[keep], variance)
    if mapper is not None:
        boxes = mapper.map_boxes(boxes)

    return [
        Candidate(
            box=Box(x=float(x), y=float(y), width=float(w), height=float(h)),
            score=float(score),
        )
        for (x, y, w, h), score in zip(boxes.tolist(), scores[keep].tolist())
    ]
