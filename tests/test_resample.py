import math

import numpy as np
import pytest

from conftest import make_grid
from pgmproc.transform.resample import affine, deg_to_rad, rotate, scale
from pgmproc.utils.types import AffineArgs, Grid, Status


def test_scale_then_inverse_scale_reproduces_input(rng):
    g = Grid(rng.integers(0, 256, size=(4, 6)), 255)
    up = scale(g, 2.0, 2.0)
    assert up.ok
    assert (up.grid.height, up.grid.width) == (8, 12)
    down = scale(up.grid, 0.5, 0.5)
    assert down.ok
    assert down.grid.pixels.shape == g.pixels.shape
    diff = np.abs(down.grid.pixels.astype(int) - g.pixels.astype(int))
    assert diff.max() <= 1


def test_scale_interpolates_and_copies_on_last_row_and_column():
    g = make_grid([[0, 100], [200, 50]])
    res = scale(g, 2.0, 2.0)
    px = res.grid.pixels
    assert px[0, 0] == 0
    assert px[0, 1] == 50         # 가로 방향 중간
    assert px[1, 0] == 100        # 세로 방향 중간
    assert px[1, 1] == 87         # 87.5 -> 내림
    # 보간 원점이 마지막 행/열이면 원점 화소 복사
    assert px[0, 2] == 100
    assert px[2, 0] == 200
    assert px[3, 3] == 50


def test_scale_rounds_half_up():
    g = Grid(np.zeros((2, 5)), 255)
    res = scale(g, 1.25, 0.5)    # 2.5 -> 3, 2.5 -> 3
    assert (res.grid.height, res.grid.width) == (3, 3)


def test_scale_too_big_fails_before_allocation():
    g = Grid(np.zeros((10, 10)), 255)
    res = scale(g, 500.0, 1.0)
    assert res.status is Status.INPUT_TOO_LARGE
    assert res.grid is None


def test_scale_zero_sized_fails():
    g = Grid(np.zeros((10, 10)), 255)
    res = scale(g, 0.01, 1.0)
    assert res.status is Status.DEGENERATE


@pytest.mark.parametrize('factor', [0.0, -1.0, float('nan'), float('inf')])
def test_scale_rejects_invalid_factor(factor):
    g = Grid(np.zeros((4, 4)), 255)
    with pytest.raises(ValueError):
        scale(g, factor, 1.0)


def test_rotate_zero_is_identity_except_edges(rng):
    g = Grid(rng.integers(1, 256, size=(5, 6)), 255)
    res = rotate(g, 0.0, 2, 3)
    assert res.ok
    out = res.grid.pixels
    assert np.array_equal(out[:-1, :-1], g.pixels[:-1, :-1])
    # 마지막 행/열은 보간할 수 없으므로 0
    assert not out[-1, :].any()
    assert not out[:, -1].any()


def test_rotate_half_turn_about_corner_maps_everything_outside(rng):
    g = Grid(rng.integers(1, 256, size=(4, 4)), 255)
    out = rotate(g, math.pi, 0, 0).grid.pixels
    expected = np.zeros_like(g.pixels)
    expected[0, 0] = g.pixels[0, 0]
    assert np.array_equal(out, expected)


def test_rotate_keeps_shape_and_source(random_grid):
    before = random_grid.pixels.copy()
    res = rotate(random_grid, deg_to_rad(30.0), 5.5, 4.5)
    assert res.grid.pixels.shape == before.shape
    assert np.array_equal(random_grid.pixels, before)


def test_affine_identity(random_grid):
    res = affine(random_grid, AffineArgs(1, 0, 0, 0, 1, 0))
    assert res.ok
    out = res.grid.pixels
    assert np.array_equal(out[:-1, :-1], random_grid.pixels[:-1, :-1])
    assert not out[-1, :].any() and not out[:, -1].any()


def test_affine_singular_fails_without_touching_grid(random_grid):
    before = random_grid.pixels.copy()
    res = affine(random_grid, AffineArgs(1, 1, 0, 1, 1, 0))
    assert res.status is Status.DEGENERATE
    assert res.grid is None
    assert np.array_equal(random_grid.pixels, before)


def test_affine_translation(random_grid):
    out = affine(random_grid, AffineArgs(1, 0, 1, 0, 1, 0)).grid.pixels
    # x 방향으로 1 이동: 첫 열은 원본 밖
    assert not out[:, 0].any()
    assert np.array_equal(out[:-1, 1:], random_grid.pixels[:-1, :-1])


def test_deg_to_rad():
    assert deg_to_rad(180.0) == pytest.approx(math.pi)


def test_sampling_reads_source_samples_directly(monkeypatch, random_grid):
    import pgmproc.transform.resample as resample

    seen = []
    real = resample.map_coordinates

    def spy(src, *args, **kwargs):
        seen.append(src)
        return real(src, *args, **kwargs)

    monkeypatch.setattr(resample, 'map_coordinates', spy)
    scale(random_grid, 1.5, 1.5)
    rotate(random_grid, 0.3, 5.0, 4.0)
    affine(random_grid, AffineArgs(1, 0.2, 0, 0, 1, 0))
    assert seen
    # 원본 uint16 버퍼를 그대로 사용 (float 사본 없음)
    assert all(s is random_grid.pixels for s in seen)
