import numpy as np
import pytest

from pgmproc.match.template import find_nearest_region, find_similar_region
from pgmproc.utils.types import Grid, Point, Status


def _sad_bruteforce(target, template):
    tgt = target.pixels.astype(np.int64)
    tpl = template.pixels.astype(np.int64)
    th, tw = tpl.shape
    best = None
    for i in range(tgt.shape[0] - th + 1):
        for j in range(tgt.shape[1] - tw + 1):
            d = int(np.abs(tgt[i:i + th, j:j + tw] - tpl).sum())
            if best is None or d < best[0]:
                best = (d, Point(i, j))
    return best


def test_sad_finds_exact_patch(random_grid):
    tpl = random_grid.with_pixels(random_grid.pixels[3:6, 4:8].copy())
    res = find_nearest_region(random_grid, tpl)
    assert res.ok
    assert res.point == Point(3, 4)
    assert res.value == 0


def test_sad_early_exit_matches_bruteforce(rng):
    target = Grid(rng.integers(0, 256, size=(14, 13)), 255)
    tpl = Grid(rng.integers(0, 256, size=(4, 3)), 255)
    res = find_nearest_region(target, tpl)
    dist, p = _sad_bruteforce(target, tpl)
    assert res.value == dist
    assert res.point == p


def test_ncc_finds_exact_patch(random_grid):
    tpl = random_grid.with_pixels(random_grid.pixels[3:6, 4:8].copy())
    res = find_similar_region(random_grid, tpl)
    assert res.ok
    assert res.point == Point(3, 4)
    assert res.value == pytest.approx(1.0)


def test_ncc_is_scale_invariant():
    target = np.zeros((6, 6), dtype=np.int64)
    target[2:4, 3:5] = [[20, 40], [60, 80]]
    tpl = Grid(np.array([[1, 2], [3, 4]]), 255)
    res = find_similar_region(Grid(target, 255), tpl)
    assert res.point == Point(2, 3)
    assert res.value == pytest.approx(1.0)


@pytest.mark.parametrize('finder', [find_nearest_region, find_similar_region])
def test_template_larger_than_target(finder):
    res = finder(Grid(np.ones((3, 3)), 255), Grid(np.ones((4, 2)), 255))
    assert res.status is Status.DEGENERATE


def test_all_zero_ties_resolve_to_origin():
    target = Grid(np.zeros((5, 5)), 255)
    tpl = Grid(np.zeros((2, 2)), 255)
    sad = find_nearest_region(target, tpl)
    assert sad.point == Point(0, 0) and sad.value == 0
    ncc = find_similar_region(target, tpl)
    assert ncc.ok
    assert ncc.point == Point(0, 0) and ncc.value == 0.0


def test_template_same_size_as_target(random_grid):
    res = find_nearest_region(random_grid, random_grid.copy())
    assert res.point == Point(0, 0) and res.value == 0


def test_sad_stops_at_first_pixel_reaching_bound(caplog):
    import logging

    caplog.set_level(logging.DEBUG, logger='pgmproc')
    target = Grid(np.array([[2, 0, 0, 0, 5, 5, 5]]), 255)
    tpl = Grid(np.zeros((1, 3)), 255)
    res = find_nearest_region(target, tpl)
    assert res.point == Point(0, 1) and res.value == 0
    # 완료된 두 위치(3 + 3) + 중단된 세 위치(각 1 화소)
    assert 'pruned=3, visited_px=9' in caplog.text


@pytest.mark.parametrize('seed', range(4))
def test_sad_with_repeated_patterns_matches_bruteforce(seed):
    rng = np.random.default_rng(seed)
    target = Grid(rng.integers(0, 4, size=(9, 10)), 255)
    tpl = Grid(rng.integers(0, 4, size=(3, 3)), 255)
    res = find_nearest_region(target, tpl)
    assert (res.value, res.point) == _sad_bruteforce(target, tpl)
