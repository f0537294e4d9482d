import concurrent.futures

import numpy as np
import pytest

from smartcrop import Config, Raster, compute_saliency_grid
from smartcrop.saliency import (
    analysis_size,
    choose_block_size,
    grid_shape,
    normalize_scores,
    raw_block_scores,
    working_image,
)

from conftest import GRAY, SKIN, scene_raster, solid_raster


def test_grid_resolution_is_bounded():
    assert choose_block_size(4000, 3000, 64) == 63
    assert grid_shape(4000, 3000, 63) == (48, 64)
    assert choose_block_size(50, 40, 64) == 1
    assert grid_shape(50, 40, 1) == (40, 50)


def test_grid_shape_for_medium_raster():
    grid = compute_saliency_grid(scene_raster(1000, 700, (100, 100, 300, 300)))
    assert grid.block_size == 16
    assert grid.values.shape == (44, 63)
    assert grid.rows <= 64 and grid.cols <= 64


def test_uniform_raster_has_zero_saliency():
    grid = compute_saliency_grid(solid_raster(320, 240, (40, 90, 200)))
    assert grid.values.shape == (48, 64)
    assert np.all(grid.values == 0.0)


def test_values_are_normalized():
    grid = compute_saliency_grid(scene_raster(400, 300, (250, 100, 350, 200)))
    assert grid.values.min() == pytest.approx(0.0)
    assert grid.values.max() == pytest.approx(1.0)
    assert np.all((grid.values >= 0.0) & (grid.values <= 1.0))


def test_edges_score_highest_at_the_boundary():
    array = np.zeros((128, 128, 3), dtype=np.uint8)
    array[:, 64:] = 255
    grid = compute_saliency_grid(Raster.from_array(array))
    assert grid.block_size == 2
    for row in grid.values:
        assert int(np.argmax(row)) in (31, 32)
    assert np.all(grid.values[:, :20] == 0.0)
    assert np.all(grid.values[:, 44:] == 0.0)


def test_saturated_subject_beats_gray_background():
    raster = scene_raster(256, 256, (128, 128, 256, 256))
    grid = compute_saliency_grid(raster)
    subject = grid.values[40:, 40:].mean()
    background = grid.values[:24, :24].mean()
    assert subject > background
    assert background == pytest.approx(0.0)


def test_skin_signal_counts_skin_pixels():
    array = np.empty((64, 64, 3), dtype=np.uint8)
    array[:, :] = GRAY
    array[:32, :32] = SKIN
    skin_only = Config(edge_weight=0.0, contrast_weight=0.0, saturation_weight=0.0, skin_weight=1.0)
    raw, block_size = raw_block_scores(Raster.from_array(array), skin_only)
    assert block_size == 1
    assert np.all(raw[:32, :32] == 1.0)
    assert np.all(raw[32:, :] == 0.0)
    assert np.all(raw[:, 32:] == 0.0)


def test_contrast_signal_rewards_texture_inside_blocks():
    array = np.empty((128, 128, 3), dtype=np.uint8)
    array[:, :] = GRAY
    array[::2, :64] = (200, 200, 200)
    contrast_only = Config(edge_weight=0.0, contrast_weight=1.0, saturation_weight=0.0, skin_weight=0.0)
    raw, _ = raw_block_scores(Raster.from_array(array), contrast_only)
    assert raw[:, :30].min() > 0.0
    assert np.all(raw[:, 34:] == 0.0)


def test_alpha_channel_is_ignored():
    rgb = scene_raster(200, 150, (20, 20, 120, 100)).to_array()
    alpha = np.random.default_rng(3).integers(0, 256, size=(150, 200, 1), dtype=np.uint8)
    rgba = Raster.from_array(np.concatenate([rgb, alpha], axis=2))
    assert np.array_equal(compute_saliency_grid(rgba).values,
                          compute_saliency_grid(Raster.from_array(rgb)).values)


def test_normalization_is_monotonic():
    raw = np.random.default_rng(5).random((16, 16))
    normalized = normalize_scores(raw)
    flat_raw = raw.ravel()
    flat_norm = normalized.ravel()
    order = np.argsort(flat_raw)
    assert np.all(np.diff(flat_norm[order]) >= 0)
    higher = flat_raw[:, None] > flat_raw[None, :]
    assert np.all((flat_norm[:, None] >= flat_norm[None, :])[higher])


def test_flat_raw_scores_normalize_to_zero():
    assert np.all(normalize_scores(np.full((3, 4), 0.7)) == 0.0)


def test_saliency_is_deterministic():
    raster = scene_raster(300, 200, (50, 50, 150, 150))
    first = compute_saliency_grid(raster).values
    second = compute_saliency_grid(raster).values
    assert np.array_equal(first, second)


def test_custom_grid_cap():
    grid = compute_saliency_grid(scene_raster(300, 200, (50, 50, 150, 150)), Config(max_grid_cells=16))
    assert grid.block_size == 19
    assert grid.values.shape == (11, 16)


def test_analysis_size_caps_the_long_side():
    assert analysis_size(8000, 6000, 512) == (512, 384)
    assert analysis_size(1200, 4000, 512) == (154, 512)
    assert analysis_size(300, 200, 512) == (300, 200)


def test_large_raster_is_measured_on_a_small_working_copy():
    raster = scene_raster(3000, 2000, (1800, 600, 2600, 1400))
    assert working_image(raster).shape == (341, 512, 3)
    grid = compute_saliency_grid(raster)
    assert grid.block_size == 47
    assert grid.values.shape == (43, 64)
    subject = grid.values[14:29, 39:55].mean()
    background = grid.values[:10, :30].mean()
    assert subject > background


def test_downscaled_uniform_raster_stays_flat():
    grid = compute_saliency_grid(solid_raster(1500, 1100, (10, 200, 90)))
    assert np.all(grid.values == 0.0)


def test_small_rasters_are_not_resampled():
    raster = scene_raster(200, 150, (20, 20, 120, 100))
    assert np.array_equal(working_image(raster), raster.rgb())


def test_saliency_is_identical_on_a_worker_thread():
    raster = scene_raster(800, 600, (560, 200, 720, 400))
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        threaded = executor.submit(compute_saliency_grid, raster).result()
    assert np.array_equal(threaded.values, compute_saliency_grid(raster).values)
