import pytest

from resize_images import ResizePlan, plan_resize

BOUNDS = [(800, 600), (1024, 1024), (300, 900)]
SIZES = [(1, 1), (640, 480), (800, 600), (1600, 1200), (1200, 1600), (4000, 300), (300, 4000), (1001, 999)]


@pytest.mark.parametrize("max_width, max_height", BOUNDS)
@pytest.mark.parametrize("width, height", SIZES)
def test_plan_respects_bounds_and_aspect(width, height, max_width, max_height):
    plan = plan_resize(width, height, max_width, max_height)

    if width <= max_width and height <= max_height:
        assert plan == ResizePlan(False, width, height)
        return

    assert plan.resize_needed
    assert 1 <= plan.target_width <= max_width
    assert 1 <= plan.target_height <= max_height
    # The truncated side is off by less than one pixel from the exact ratio.
    assert (
        abs(plan.target_height - plan.target_width * height / width) < 1
        or abs(plan.target_width - plan.target_height * width / height) < 1
    )


def test_landscape_scales_to_width():
    assert plan_resize(1600, 1200, 800, 600) == ResizePlan(True, 800, 600)


def test_portrait_clamps_height_after_width():
    assert plan_resize(1000, 2000, 800, 600) == ResizePlan(True, 300, 600)


def test_only_height_too_large():
    assert plan_resize(500, 1000, 800, 600) == ResizePlan(True, 300, 600)


def test_truncates_instead_of_rounding():
    # 500 / (1000 / 333) is 166.5
    assert plan_resize(1000, 333, 500, 500) == ResizePlan(True, 500, 166)


def test_exact_bounds_need_no_resize():
    assert not plan_resize(800, 600, 800, 600).resize_needed


def test_extreme_aspect_ratio_keeps_one_pixel():
    plan = plan_resize(10000, 1, 100, 100)
    assert plan == ResizePlan(True, 100, 1)


@pytest.mark.parametrize("args", [(0, 10, 10, 10), (10, 0, 10, 10), (10, 10, 0, 10), (10, 10, 10, -1)])
def test_non_positive_dimensions_rejected(args):
    with pytest.raises(ValueError):
        plan_resize(*args)
