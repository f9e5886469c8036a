import numpy as np
import pytest

from surfacemask.segmentation.point_selector import (
    all_masks,
    find_mask_index,
    generate_fallback_mask,
    select_at,
    tap_to_pixel,
)


SIZE = 640


def _rect_mask(x0, y0, x1, y1, size=SIZE):
    mask = np.zeros((size, size), dtype=np.uint8)
    mask[y0:y1, x0:x1] = 255
    return mask


def test_tap_to_pixel_rounds_and_clamps():
    assert tap_to_pixel(0.5, 0.5, SIZE) == (320, 320)
    assert tap_to_pixel(0.0, 1.0, SIZE) == (0, SIZE - 1)
    assert tap_to_pixel(-0.2, 1.7, SIZE) == (0, SIZE - 1)
    # 0.375 * 4 = 1.5 rounds half up
    assert tap_to_pixel(0.375, 0.125, 4) == (2, 1)


def test_smaller_mask_wins_under_tap():
    full = np.full((SIZE, SIZE), 255, dtype=np.uint8)
    small = _rect_mask(315, 315, 325, 325)

    selected = select_at([full, small], 0.5, 0.5, SIZE)

    assert selected is small


def test_single_containing_mask_is_returned():
    left = _rect_mask(0, 0, 100, 100)
    center = _rect_mask(300, 300, 340, 340)
    right = _rect_mask(500, 500, 640, 640)

    assert select_at([left, center, right], 0.5, 0.5, SIZE) is center


def test_largest_mask_when_nothing_contains_tap():
    small = _rect_mask(0, 0, 10, 10)
    large = _rect_mask(500, 0, 640, 200)

    assert select_at([small, large], 0.5, 0.5, SIZE) is large


def test_equal_area_ties_keep_first():
    a = _rect_mask(310, 310, 330, 330)
    b = _rect_mask(300, 300, 320, 320)
    assert select_at([a, b], 0.5, 0.5, SIZE) is a

    far_a = _rect_mask(0, 0, 10, 10)
    far_b = _rect_mask(600, 600, 610, 610)
    assert select_at([far_a, far_b], 0.5, 0.5, SIZE) is far_a


def test_empty_candidates_use_fallback_ellipse():
    mask = select_at([], 0.25, 0.75, SIZE)

    px, py = tap_to_pixel(0.25, 0.75, SIZE)
    assert mask.shape == (SIZE, SIZE)
    assert mask[py, px] == 255
    assert find_mask_index([], 0.25, 0.75, SIZE) is None


def test_fallback_ellipse_geometry():
    mask = generate_fallback_mask(0.5, 0.5, SIZE)
    radius = SIZE // 3

    assert mask[320, 320] == 255
    assert mask[320, 320 + radius - 1] == 255
    assert mask[320, 320 + radius] == 0
    assert mask[320 - radius, 320] == 0
    assert mask[0, 0] == 0
    assert set(np.unique(mask)) == {0, 255}
    assert np.count_nonzero(mask) == pytest.approx(np.pi * radius * radius, rel=0.01)


def test_fallback_ellipse_clipped_at_corner():
    mask = generate_fallback_mask(0.0, 0.0, SIZE)
    radius = SIZE // 3

    assert mask.shape == (SIZE, SIZE)
    assert mask[0, 0] == 255
    assert np.count_nonzero(mask) == pytest.approx(np.pi * radius * radius / 4, rel=0.02)


def test_all_masks_returns_everything_unfiltered():
    masks = [_rect_mask(0, 0, 5, 5), _rect_mask(0, 0, 0, 0)]
    result = all_masks(masks)

    assert all(a is b for a, b in zip(result, masks))
    assert len(result) == 2
    assert result is not masks


def test_tap_to_pixel_non_finite_values():
    assert tap_to_pixel(float("nan"), float("nan"), SIZE) == (SIZE // 2, SIZE // 2)
    assert tap_to_pixel(float("inf"), float("-inf"), SIZE) == (SIZE - 1, 0)
    assert tap_to_pixel(1e308, -1e308, SIZE) == (SIZE - 1, 0)


def test_fallback_for_nan_tap_is_centred():
    mask = generate_fallback_mask(float("nan"), 0.5, SIZE)

    np.testing.assert_array_equal(mask, generate_fallback_mask(0.5, 0.5, SIZE))
