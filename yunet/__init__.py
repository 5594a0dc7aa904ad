"""
YuNet post-processing: turns raw YuNet face detector outputs into
normalized face boxes.

Public API:
    - Predictor: The single entry point for post-processing.
    - Box, Candidate: Data transfer objects for decoded faces.
    - AspectMapper: Maps boxes back into arbitrary-aspect images.
    - ShapeMismatch, InvalidParameter: Errors raised by the core.

The building blocks (generate_anchors, decode, suppress) are exported
for callers that drive their own pipeline.

Usage:
    from yunet import Predictor

    predictor = Predictor()
    boxes = predictor.predict(offsets, confidences, ious)
"""

from yunet.anchors import AnchorGeometry, anchor_count, generate_anchors
from yunet.decoder import decode
from yunet.detection import Box, Candidate
from yunet.errors import InvalidParameter, ShapeMismatch, YuNetError
from yunet.mapping import AspectMapper, CoordinateMapper
from yunet.nms import iou, suppress
from yunet.predictor import Predictor

__all__ = [
    "Predictor",
    "Box",
    "Candidate",
    "AspectMapper",
    "CoordinateMapper",
    "AnchorGeometry",
    "anchor_count",
    "generate_anchors",
    "decode",
    "iou",
    "suppress",
    "YuNetError",
    "ShapeMismatch",
    "InvalidParameter",
]
