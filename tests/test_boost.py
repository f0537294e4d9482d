import numpy as np
import pytest

from smartcrop import BoostRegion, ValidationError, apply_boosts
from smartcrop.saliency import SaliencyGrid


def make_grid(values, block_size=10, width=None, height=None):
    values = np.asarray(values, dtype=np.float64)
    rows, cols = values.shape
    return SaliencyGrid(values=values, block_size=block_size,
                        raster_width=width or cols * block_size,
                        raster_height=height or rows * block_size)


def test_boost_adds_weight_to_covered_cell():
    grid = make_grid(np.zeros((4, 4)))
    boosted = apply_boosts(grid, [BoostRegion(0, 0, 10, 10, 0.5)])
    assert boosted.values[0, 0] == pytest.approx(0.5)
    assert boosted.values.sum() == pytest.approx(0.5)


def test_boost_is_proportional_to_overlap():
    grid = make_grid(np.zeros((4, 4)))
    boosted = apply_boosts(grid, [BoostRegion(5, 0, 10, 10, 1.0)])
    assert boosted.values[0, 0] == pytest.approx(0.5)
    assert boosted.values[0, 1] == pytest.approx(0.5)
    assert boosted.values[0, 2] == 0.0
    assert boosted.values[1, 0] == 0.0


def test_boost_result_is_clamped():
    grid = make_grid(np.full((2, 2), 0.8))
    boosted = apply_boosts(grid, [BoostRegion(0, 0, 20, 20, 1.0), BoostRegion(0, 0, 20, 20, 1.0)])
    assert np.all(boosted.values == 1.0)


def test_boost_weight_is_clamped():
    grid = make_grid(np.zeros((2, 2)))
    assert apply_boosts(grid, [BoostRegion(0, 0, 10, 10, 7.5)]).values[0, 0] == 1.0
    assert np.all(apply_boosts(grid, [BoostRegion(0, 0, 10, 10, -3)]).values == 0.0)


@pytest.mark.parametrize("region", [
    BoostRegion(0, 0, 0, 10),
    BoostRegion(0, 0, 10, -4),
    BoostRegion(0, 0, 10, 10, 0.0),
    BoostRegion(0, 0, 10, 10, float("nan")),
    BoostRegion(float("inf"), 0, 10, 10),
    BoostRegion(500, 500, 10, 10),
    BoostRegion(-50, -50, 10, 10),
])
def test_degenerate_boosts_leave_grid_unchanged(region):
    values = np.random.default_rng(1).random((4, 4))
    boosted = apply_boosts(make_grid(values), [region])
    assert np.array_equal(boosted.values, values)


def test_boost_partially_outside_is_clipped():
    grid = make_grid(np.zeros((2, 2)))
    boosted = apply_boosts(grid, [BoostRegion(-10, -10, 20, 20, 1.0)])
    assert boosted.values[0, 0] == pytest.approx(1.0)
    assert boosted.values[1, 1] == 0.0


def test_boost_on_partial_edge_cell():
    grid = make_grid(np.zeros((3, 3)), block_size=10, width=25, height=25)
    boosted = apply_boosts(grid, [BoostRegion(20, 20, 5, 5, 1.0)])
    assert boosted.values[2, 2] == pytest.approx(1.0)
    assert boosted.values.sum() == pytest.approx(1.0)


def test_boost_never_lowers_any_cell():
    values = np.random.default_rng(2).random((5, 5))
    boosted = apply_boosts(make_grid(values), [BoostRegion(12, 7, 23, 31, 0.3)])
    assert np.all(boosted.values >= values)


def test_apply_boosts_does_not_mutate_input():
    values = np.zeros((2, 2))
    grid = make_grid(values)
    apply_boosts(grid, [BoostRegion(0, 0, 20, 20, 1.0)])
    assert np.all(grid.values == 0.0)


def test_boost_from_mapping():
    region = BoostRegion.from_value({'x': 1, 'y': 2, 'width': 3, 'height': 4})
    assert region == BoostRegion(1, 2, 3, 4, 1.0)
    assert BoostRegion.from_value(region) is region


def test_boost_from_mapping_missing_field():
    with pytest.raises(ValidationError, match="height"):
        BoostRegion.from_value({'x': 1, 'y': 2, 'width': 3})


@pytest.mark.parametrize("value", [[1, 2, 3, 4], "1,2,3,4", None])
def test_boost_from_non_mapping(value):
    with pytest.raises(ValidationError):
        BoostRegion.from_value(value)


def test_boost_fields_must_be_numeric():
    with pytest.raises(ValidationError):
        BoostRegion("0", 0, 10, 10)
    with pytest.raises(ValidationError):
        BoostRegion(0, 0, 10, 10, weight=True)


@pytest.mark.parametrize("region", [
    BoostRegion(10 ** 400, 0, 10, 10),
    BoostRegion(0, 0, 10 ** 400, 10),
    BoostRegion(0, -10 ** 400, 10, 10),
    BoostRegion(10 ** 300, 0, 10, 10),
])
def test_huge_coordinates_are_skipped(region):
    values = np.random.default_rng(4).random((4, 4))
    assert np.array_equal(apply_boosts(make_grid(values), [region]).values, values)


def test_huge_weight_clamps_by_sign():
    assert BoostRegion(0, 0, 10, 10, 10 ** 400).clamped_weight == 1.0
    assert BoostRegion(0, 0, 10, 10, -10 ** 400).clamped_weight == 0.0
    boosted = apply_boosts(make_grid(np.zeros((2, 2))), [BoostRegion(0, 0, 10, 10, 10 ** 400)])
    assert boosted.values[0, 0] == 1.0
