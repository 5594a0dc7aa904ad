"""
Tests for mapping boxes from model-input space to image space.
"""

import numpy as np
import pytest

from yunet.errors import InvalidParameter
from yunet.mapping import AspectMapper

_FULL = np.array([[0.0, 0.0, 1.0, 1.0]])


def test_fill_is_identity():
    mapper = AspectMapper(image_size=(1280, 720), model_size=(320, 320), mode="fill")
    boxes = np.array([[0.1, 0.2, 0.3, 0.4]])
    assert np.allclose(mapper.map_boxes(boxes), boxes)


def test_fit_removes_vertical_padding():
    """A 2:1 image fit into a square input is padded top and bottom."""
    mapper = AspectMapper(image_size=(640, 320), model_size=(320, 320), mode="fit")

    # The image occupies the model rows 0.25..0.75
    mapped = mapper.map_boxes(np.array([[0.0, 0.25, 1.0, 0.5]]))
    assert np.allclose(mapped, [[0.0, 0.0, 1.0, 1.0]])

    mapped = mapper.map_boxes(np.array([[0.25, 0.25, 0.5, 0.5]]))
    assert np.allclose(mapped, [[0.25, 0.0, 0.5, 1.0]])


def test_fit_removes_horizontal_padding():
    mapper = AspectMapper(image_size=(240, 480), model_size=(320, 320), mode="fit")
    mapped = mapper.map_boxes(_FULL)
    assert np.allclose(mapped, [[-0.5, 0.0, 2.0, 1.0]])


def test_crop_restores_cropped_extent():
    """A 2:1 image covering a square input loses its left and right quarters."""
    mapper = AspectMapper(image_size=(640, 320), model_size=(320, 320), mode="crop")
    mapped = mapper.map_boxes(_FULL)
    assert np.allclose(mapped, [[0.25, 0.0, 0.5, 1.0]])


def test_same_aspect_is_identity_for_every_mode():
    boxes = np.array([[0.1, 0.2, 0.3, 0.4], [0.5, 0.5, 0.1, 0.1]])
    for mode in ("fill", "fit", "crop"):
        mapper = AspectMapper(image_size=(640, 640), model_size=(320, 320), mode=mode)
        assert np.allclose(mapper.map_boxes(boxes), boxes)


def test_input_is_not_modified():
    mapper = AspectMapper(image_size=(640, 320), model_size=(320, 320))
    boxes = np.array([[0.25, 0.25, 0.5, 0.5]])
    mapper.map_boxes(boxes)
    assert np.array_equal(boxes, [[0.25, 0.25, 0.5, 0.5]])


def test_properties():
    mapper = AspectMapper(image_size=(640, 320), model_size=(320, 320), mode="crop")
    assert mapper.mode == "crop"
    assert mapper.image_size == (640, 320)
    assert mapper.model_size == (320, 320)


def test_invalid_arguments():
    with pytest.raises(InvalidParameter, match="aspect mode"):
        AspectMapper(image_size=(640, 320), model_size=(320, 320), mode="stretch")

    with pytest.raises(InvalidParameter, match="image_size"):
        AspectMapper(image_size=(0, 320), model_size=(320, 320))

    with pytest.raises(InvalidParameter, match="model_size"):
        AspectMapper(image_size=(640, 320), model_size=(320,))
