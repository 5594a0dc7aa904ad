"""
Coordinate mapping from model-input space to original image space.

Responsibility:
    Undo the geometric fit applied upstream when an arbitrary-aspect
    image was resized into the fixed model input. Boxes stay normalized
    on both sides of the mapping.

Supported fit modes:
    - 'fill': the image was stretched to the model input. Identity.
    - 'fit':  the image was scaled to fit inside the model input and
              centered with equal padding (letterbox).
    - 'crop': the image was scaled to cover the model input and
              center-cropped.

Non-goals:
    - No image resizing or padding (that happens before inference).
    - No clamping of mapped boxes to [0, 1].
"""

from typing import Protocol, Tuple

import numpy as np

from yunet.errors import InvalidParameter

ASPECT_MODES = ("fill", "fit", "crop")


class CoordinateMapper(Protocol):
    """Anything that maps (N, 4) normalized xywh boxes into image space."""

    def map_boxes(self, boxes: np.ndarray) -> np.ndarray:
        ...


class AspectMapper:
    """Maps model-space boxes back into the original image.

    Usage:
        mapper = AspectMapper(image_size=(1280, 720), model_size=(320, 320))
        image_boxes = mapper.map_boxes(model_boxes)

    The padding or crop is split evenly between both sides of each axis,
    so the mapping does not depend on which vertical axis convention the
    boxes use.
    """

    def __init__(
        self,
        image_size: Tuple[int, int],
        model_size: Tuple[int, int],
        mode: str = "fit",
    ) -> None:
        """Initialize the mapper.

        Args:
            image_size: Original image (width, height) in pixels.
            model_size: Model input (width, height) in pixels.
            mode: Fit mode applied upstream: 'fill', 'fit' or 'crop'.

        Raises:
            InvalidParameter: If a size is not positive or the mode is unknown.
        """
        if mode not in ASPECT_MODES:
            raise InvalidParameter(
                f"Invalid aspect mode: '{mode}'. Must be one of {ASPECT_MODES}."
            )
        for name, size in (("image_size", image_size), ("model_size", model_size)):
            if len(size) != 2 or any(d <= 0 for d in size):
                raise InvalidParameter(
                    f"{name} must be a positive (width, height) pair, got {size}."
                )

        self._image_size = (int(image_size[0]), int(image_size[1]))
        self._model_size = (int(model_size[0]), int(model_size[1]))
        self._mode = mode

        image_w, image_h = self._image_size
        model_w, model_h = self._model_size

        if mode == "fill":
            scaled_w, scaled_h = float(model_w), float(model_h)
        else:
            ratio_w = model_w / image_w
            ratio_h = model_h / image_h
            ratio = min(ratio_w, ratio_h) if mode == "fit" else max(ratio_w, ratio_h)
            scaled_w, scaled_h = image_w * ratio, image_h * ratio

        # Fraction of the model input covered by the scaled image, and the
        # offset of the image's origin inside the model input. For 'crop'
        # the extent exceeds 1 and the offset is negative.
        self._extent = np.array([scaled_w / model_w, scaled_h / model_h])
        self._offset = np.array([
            (model_w - scaled_w) / 2.0 / model_w,
            (model_h - scaled_h) / 2.0 / model_h,
        ])

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def image_size(self) -> Tuple[int, int]:
        return self._image_size

    @property
    def model_size(self) -> Tuple[int, int]:
        return self._model_size

    def map_boxes(self, boxes: np.ndarray) -> np.ndarray:
        """Map (N, 4) normalized xywh model-space boxes to image space.

        Returns a new array; the input is not modified.
        """
        boxes = np.asarray(boxes, dtype=np.float64)
        mapped = np.empty_like(boxes)
        mapped[:, 0:2] = (boxes[:, 0:2] - self._offset) / self._extent
        mapped[:, 2:4] = boxes[:, 2:4] / self._extent
        return mapped
