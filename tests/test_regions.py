import numpy as np
import pytest

from pgmproc.segment.labeling import label_all
from pgmproc.segment.regions import extract_region, format_props_table, get_region_props, select_region
from pgmproc.utils.types import Grid, Status


def _label_map(points_by_label, shape=(10, 10)):
    px = np.zeros(shape, dtype=np.int64)
    for lab, pts in points_by_label.items():
        for y, x in pts:
            px[y, x] = lab
    return Grid(px, 255)


def test_square_props():
    lm = _label_map({1: [(y, x) for y in range(1, 4) for x in range(1, 4)]})
    p = get_region_props(lm, 1)[1]
    assert p.area == 9
    assert (p.ycenter, p.xcenter) == pytest.approx((2.0, 2.0))
    assert p.m20 == pytest.approx(6.0)
    assert p.m02 == pytest.approx(6.0)
    assert p.m11 == pytest.approx(0.0)
    assert p.deg == pytest.approx(0.0)


def test_bar_orientation():
    lm = _label_map({
        1: [(8, x) for x in range(2, 7)],
        2: [(y, 1) for y in range(0, 5)],
    })
    props = get_region_props(lm, 2)
    assert props[1].deg == pytest.approx(0.0)
    assert props[2].deg == pytest.approx(90.0)


def test_diagonal_orientation_within_range():
    lm = _label_map({1: [(i, i) for i in range(6)], 2: [(i, 8 - i) for i in range(6)]})
    props = get_region_props(lm, 2)
    assert props[1].deg == pytest.approx(45.0)
    assert props[2].deg == pytest.approx(45.0)


def test_missing_label_has_zero_area():
    lm = _label_map({2: [(0, 0)]})
    props = get_region_props(lm, 2)
    assert props[1].area == 0
    assert props[2].area == 1


def test_extract_keeps_vertical_bar(two_bars):
    gray = two_bars.copy()
    gray.pixels[two_bars.pixels > 0] = 77
    res = label_all(two_bars)
    props = get_region_props(two_bars, res.label_max)
    sel = extract_region(gray, two_bars, props, res.label_max)
    assert sel.status is Status.OK
    assert sel.label == 1
    assert sel.score == pytest.approx(5.0)
    assert (sel.grid.pixels[1:6, 2] == 77).all()
    assert not sel.grid.pixels[8].any()
    # 입력 이미지는 변하지 않음
    assert (gray.pixels[8, 4:9] == 77).all()


def test_extract_no_op_when_only_horizontal():
    lm = _label_map({1: [(5, x) for x in range(1, 9)]})
    props = get_region_props(lm, 1)
    sel = extract_region(lm.copy(), lm, props, 1)
    assert sel.status is Status.NO_OP
    assert sel.grid is None


def test_small_regions_are_ignored():
    lm = _label_map({1: [(y, 3) for y in range(4)], 2: [(y, 7) for y in range(8)]})
    props = get_region_props(lm, 2)
    # min_area = 100 // 10 = 10: 두 영역 모두 제외
    assert select_region(props, 2, lm.total_area, 10) == (0, 0.0)
    # min_area = 100 // 20 = 5: 영역 2 만 후보
    label, score = select_region(props, 2, lm.total_area, 20)
    assert label == 2 and score == pytest.approx(8.0)


def test_tie_keeps_first_label():
    lm = _label_map({1: [(y, 2) for y in range(4)], 2: [(y, 6) for y in range(4)]})
    props = get_region_props(lm, 2)
    assert select_region(props, 2, lm.total_area)[0] == 1


def test_extract_shape_mismatch():
    lm = _label_map({1: [(0, 0)]})
    with pytest.raises(ValueError):
        extract_region(Grid(np.zeros((3, 3)), 255), lm, get_region_props(lm, 1), 1)


def test_format_props_table():
    lm = _label_map({1: [(0, 0)], 2: [(5, 5)]})
    table = format_props_table(get_region_props(lm, 2), 2)
    assert len(table.splitlines()) == 3


def test_labeled_square_block():
    px = np.zeros((7, 7), dtype=np.int64)
    px[2:5, 3:6] = 255
    g = Grid(px, 255)
    res = label_all(g)
    assert res.ok and res.label_max == 1
    p = get_region_props(g, res.label_max)[1]
    assert p.area == 9
    assert (p.ycenter, p.xcenter) == pytest.approx((3.0, 4.0))
    assert p.deg == pytest.approx(0.0)
