import numpy as np
import pytest

from pgmproc.segment.labeling import label_all
from pgmproc.utils.types import Grid, Status


def _binary(shape, points, max_value=255):
    px = np.zeros(shape, dtype=np.int64)
    for y, x in points:
        px[y, x] = max_value
    return Grid(px, max_value)


def test_labels_follow_row_major_discovery():
    g = _binary((5, 5), [(3, 0), (0, 4), (0, 2)])
    res = label_all(g)
    assert res.ok
    assert res.label_max == 3
    assert g.pixels[0, 2] == 1
    assert g.pixels[0, 4] == 2
    assert g.pixels[3, 0] == 3


def test_diagonal_neighbors_are_connected():
    g = _binary((4, 4), [(0, 0), (1, 1), (2, 2), (3, 1)])
    res = label_all(g)
    assert res.label_max == 1
    assert set(g.pixels[g.pixels > 0].tolist()) == {1}


def test_no_wraparound_between_rows():
    g = _binary((3, 4), [(0, 3), (1, 0)])
    res = label_all(g)
    assert res.label_max == 2
    assert g.pixels[0, 3] == 1 and g.pixels[1, 0] == 2


def test_large_region_with_default_capacity():
    g = Grid(np.full((40, 40), 255), 255)
    res = label_all(g)
    assert res.ok and res.label_max == 1
    assert (g.pixels == 1).all()


def test_queue_overflow_leaves_partial_labels():
    g = _binary((3, 3), [(0, 0), (0, 1)])
    res = label_all(g, queue_capacity=1)
    assert res.status is Status.RESOURCE_EXHAUSTED
    assert res.label_max == 0
    assert g.pixels[0, 0] == 1
    # 아직 방문하지 않은 화소는 전경 값 그대로
    assert g.pixels[0, 1] == 255


def test_queue_overflow_reports_last_completed_label():
    points = [(0, 0)] + [(y, x) for y in (2, 3) for x in (2, 3)]
    g = _binary((5, 5), points)
    res = label_all(g, queue_capacity=1)
    assert res.status is Status.RESOURCE_EXHAUSTED
    assert res.label_max == 1


def test_capacity_one_is_enough_for_isolated_pixels():
    g = _binary((5, 5), [(0, 0), (2, 2), (4, 4)])
    res = label_all(g, queue_capacity=1)
    assert res.ok and res.label_max == 3


def test_label_space_exhausted():
    g = _binary((1, 5), [(0, 0), (0, 2), (0, 4)], max_value=3)
    res = label_all(g)
    assert res.status is Status.RESOURCE_EXHAUSTED
    assert res.label_max == 2
    assert g.pixels.tolist() == [[1, 0, 2, 0, 3]]


def test_max_value_one_has_no_label_space():
    g = _binary((2, 2), [(0, 0)], max_value=1)
    res = label_all(g)
    assert res.status is Status.RESOURCE_EXHAUSTED
    assert res.label_max == 0
    assert g.pixels[0, 0] == 1


def test_invalid_capacity():
    with pytest.raises(ValueError):
        label_all(_binary((2, 2), [(0, 0)]), queue_capacity=0)


def test_background_untouched(rng):
    px = np.where(rng.random((15, 15)) > 0.6, 255, 0)
    g = Grid(px, 255)
    res = label_all(g)
    assert res.ok
    assert np.array_equal(g.pixels == 0, px == 0)
    assert g.pixels.max() == res.label_max
