"""
Predictor: the main public API for YuNet post-processing.

This module is the intended programmatic entry point for consumers
of the library. The anchor generator, decoder and suppressor are wired
together here; they stay exported from the package for callers that
drive their own pipeline.

Public contract:
    Predictor.predict(offsets, confidences, ious) -> list[Box]

Constraints:
    - Tensors must come from a model whose input resolution equals
      config.model.input_size; the row count is checked on every call.
    - The anchor set is built once and never mutated, so one Predictor
      may serve concurrent calls from several threads.
    - Each call is deterministic and owns its own candidate buffers.

Non-goals:
    - No model loading or inference.
    - No image preprocessing or visualization.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from yunet.anchors import generate_anchors
from yunet.config import (
    AppConfig,
    DetectionConfig,
    ModelConfig,
    load_config,
    validate_config,
)
from yunet.decoder import decode
from yunet.detection import Box, Candidate
from yunet.errors import ShapeMismatch
from yunet.mapping import CoordinateMapper
from yunet.nms import suppress

logger = logging.getLogger(__name__)

_NUM_OUTPUTS = 3


class Predictor:
    """Face box post-processor for the YuNet detector.

    Usage:
        predictor = Predictor()                       # Uses safe defaults
        predictor = Predictor(config=my_config)       # Custom config
        boxes = predictor.predict(offsets, confidences, ious)

    The constructor generates the anchor set once. Subsequent predict()
    calls reuse it; there is no per-call setup cost beyond decoding and
    suppression.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        """Initialize the predictor and build the anchor set.

        Args:
            config: Configuration. If None, safe defaults are used
                    (no config file required).

        Raises:
            InvalidParameter: If configuration values are invalid.
        """
        if config is None:
            config = load_config()
        else:
            validate_config(config)

        self._config = config
        width, height = config.model.input_size
        self._anchors = generate_anchors(width, height, config.anchors)

        logger.info(
            "Predictor initialized (input_size=%dx%d, anchors=%d, "
            "min_score=%.2f, max_iou=%.2f)",
            width,
            height,
            self._anchors.shape[0],
            config.detection.min_score,
            config.detection.max_iou,
        )

    @classmethod
    def create(
        cls,
        min_score: float = 0.5,
        max_iou: float = 0.5,
        input_size: Tuple[int, int] = (320, 320),
    ) -> "Predictor":
        """Build a predictor from thresholds alone, skipping config files.

        Raises:
            InvalidParameter: If a threshold is outside [0, 1] or the
                              input size is not positive.
        """
        config = AppConfig(
            model=ModelConfig(input_size=tuple(input_size)),
            detection=DetectionConfig(min_score=min_score, max_iou=max_iou),
        )
        return cls(config)

    def predict_scored(
        self,
        offsets,
        confidences,
        ious,
        mapper: Optional[CoordinateMapper] = None,
    ) -> List[Candidate]:
        """Decode and suppress, keeping each surviving box's score.

        Args:
            offsets: Offset tensor, (P, 14), flat, or (1, P, 14).
            confidences: Confidence tensor, (P, 2), flat, or (1, P, 2).
            ious: IoU tensor, (P, 1), flat, or (1, P, 1).
            mapper: Optional mapper into the original image's normalized
                    space, for images fit into the model input upstream.

        Returns:
            Candidates in selection order (descending score). Empty list
            if nothing passes the score threshold.

        Raises:
            ShapeMismatch: If a tensor does not match the anchor set.
        """
        detection = self._config.detection
        candidates = decode(
            self._anchors,
            offsets,
            confidences,
            ious,
            min_score=detection.min_score,
            mapper=mapper,
            variance=self._config.anchors.variance,
        )
        if not candidates:
            return []

        keep = suppress(
            [c.box for c in candidates],
            [c.score for c in candidates],
            detection.max_iou,
        )
        logger.debug("Kept %d of %d candidates after NMS", len(keep), len(candidates))

        return [candidates[i] for i in keep]

    def predict(
        self,
        offsets,
        confidences,
        ious,
        mapper: Optional[CoordinateMapper] = None,
    ) -> List[Box]:
        """Turn raw model outputs into face boxes.

        Same arguments as predict_scored().

        Returns:
            Normalized boxes (top-left origin) in selection order.
        """
        return [c.box for c in self.predict_scored(offsets, confidences, ious, mapper)]

    def predict_outputs(
        self,
        outputs: Sequence[np.ndarray],
        mapper: Optional[CoordinateMapper] = None,
    ) -> List[Box]:
        """Predict from the engine's output list [offsets, confidences, ious].

        Raises:
            ShapeMismatch: If there are not exactly three outputs.
        """
        if len(outputs) != _NUM_OUTPUTS:
            raise ShapeMismatch(
                f"Expected {_NUM_OUTPUTS} model outputs (offsets, confidences, ious), "
                f"got {len(outputs)}."
            )
        offsets, confidences, ious = outputs
        return self.predict(offsets, confidences, ious, mapper)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def anchors(self) -> np.ndarray:
        """Return the read-only (P, 4) anchor set."""
        return self._anchors

    @property
    def input_size(self) -> Tuple[int, int]:
        return self._config.model.input_size
