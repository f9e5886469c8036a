import numpy as np
import pytest

from surfacemask.segmentation.mask_processor import (
    MaskProcessor,
    mask_area,
    mask_contains,
    parse_hex_color,
)


def _mask():
    mask = np.zeros((8, 8), dtype=np.uint8)
    mask[2:5, 3:7] = 255
    return mask


def test_area_and_containment():
    mask = _mask()
    assert mask_area(mask) == 12
    assert mask_contains(mask, 3, 2)
    assert not mask_contains(mask, 2, 2)


def test_mask_to_bbox():
    processor = MaskProcessor()
    assert processor.mask_to_bbox(_mask()) == (3, 2, 6, 4)
    assert processor.mask_to_bbox(np.zeros((8, 8), dtype=np.uint8)) is None


def test_create_overlay():
    overlay = MaskProcessor(overlay_alpha=0.6).create_overlay(_mask(), (10, 20, 30))

    assert overlay.shape == (8, 8, 4)
    assert overlay[3, 4].tolist() == [10, 20, 30, 153]
    assert overlay[0, 0].tolist() == [0, 0, 0, 0]


def test_apply_color_overlay_resizes_mask_to_frame():
    frame = np.zeros((16, 16, 3), dtype=np.uint8)

    result = MaskProcessor().apply_color_overlay(frame, _mask(), (200, 100, 0), opacity=0.5)

    assert result.shape == frame.shape
    assert result[6, 8].tolist() == [100, 50, 0]   # inside (mask pixel 3, 4)
    assert result[0, 0].tolist() == [0, 0, 0]
    assert not frame.any()


def test_apply_color_overlay_empty_mask_copies_frame():
    frame = np.full((4, 4, 3), 9, dtype=np.uint8)
    result = MaskProcessor().apply_color_overlay(frame, np.zeros((4, 4), dtype=np.uint8))

    np.testing.assert_array_equal(result, frame)
    assert result is not frame


def test_combine_masks():
    processor = MaskProcessor()
    a = np.zeros((4, 4), dtype=np.uint8)
    b = np.zeros((4, 4), dtype=np.uint8)
    a[0, 0] = 255
    b[3, 3] = 255

    combined = processor.combine_masks([a, b])

    assert mask_area(combined) == 2
    assert processor.combine_masks([]) is None


def test_parse_hex_color():
    assert parse_hex_color("#87CEEB") == (135, 206, 235)
    assert parse_hex_color("ff0000") == (255, 0, 0)
    with pytest.raises(ValueError):
        parse_hex_color("#12345")
    with pytest.raises(ValueError):
        parse_hex_color("#zzzzzz")
