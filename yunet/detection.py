"""
Detection data transfer objects.

This module defines the Box and Candidate dataclasses returned by the
Predictor. They are frozen, serializable containers with no behavior
beyond data access.

Coordinates are normalized to the image: (0, 0) is the top-left corner
and (1, 1) the bottom-right one. Decoded boxes may extend slightly
outside [0, 1]; they are not clamped here.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No model-space to image-space mapping (that belongs in mapping).
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Box:
    """An axis-aligned box in normalized image coordinates.

    Attributes:
        x: Left edge, as a fraction of image width.
        y: Top edge, as a fraction of image height.
        width: Box width, as a fraction of image width.
        height: Box height, as a fraction of image height.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def x_max(self) -> float:
        """Right edge."""
        return self.x + self.width

    @property
    def y_max(self) -> float:
        """Bottom edge."""
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def area(self) -> float:
        """Box area; zero for degenerate boxes."""
        if self.width <= 0 or self.height <= 0:
            return 0.0
        return self.width * self.height

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x_max, self.y_max

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """Return (x1, y1, x2, y2) in absolute pixels, clamped to the image."""
        x1 = int(round(self.x * image_width))
        y1 = int(round(self.y * image_height))
        x2 = int(round(self.x_max * image_width))
        y2 = int(round(self.y_max * image_height))

        x1 = max(0, min(x1, image_width - 1))
        y1 = max(0, min(y1, image_height - 1))
        x2 = max(0, min(x2, image_width - 1))
        y2 = max(0, min(y2, image_height - 1))
        return x1, y1, x2, y2

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": round(self.x, 6),
            "y": round(self.y, 6),
            "width": round(self.width, 6),
            "height": round(self.height, 6),
        }


@dataclass(frozen=True, slots=True)
class Candidate:
    """A decoded detection: a normalized box and its score in [0, 1]."""

    box: Box
    score: float

    def to_dict(self) -> dict:
        return {**self.box.to_dict(), "score": round(self.score, 4)}
