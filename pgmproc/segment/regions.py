from __future__ import annotations

import math
from typing import List, Optional, Tuple

import numpy as np

from ..utils.config import REGION
from ..utils.logger import get_logger
from ..utils.types import Grid, Props, RegionSelection, Status


def get_region_props(label_map: Grid, label_max: int) -> List[Props]:
    """각 label 영역의 면적, 중심, 중심 모멘트, 관성 주축 각도.

    Returns:
        길이 label_max + 1 의 리스트. 0 번째는 배경(label 0) 정보로, 보통 사용하지 않음
    """
    px = label_map.pixels.astype(np.int64)
    ys, xs = np.indices(px.shape, dtype=np.float64)
    mask = px <= label_max
    lab = px[mask]
    x = xs[mask]
    y = ys[mask]
    n = int(label_max) + 1

    area = np.bincount(lab, minlength=n)[:n]
    sum_x = np.bincount(lab, weights=x, minlength=n)[:n]
    sum_y = np.bincount(lab, weights=y, minlength=n)[:n]
    m20 = np.bincount(lab, weights=x * x, minlength=n)[:n]
    m02 = np.bincount(lab, weights=y * y, minlength=n)[:n]
    m11 = np.bincount(lab, weights=x * y, minlength=n)[:n]

    props: List[Props] = []
    for i in range(n):
        a = int(area[i])
        if a == 0:
            props.append(Props(label=i))
            continue
        cx = sum_x[i] / a
        cy = sum_y[i] / a
        # 각 모멘트를 중심 기준으로 변환
        m20_cor = float(m20[i] - a * cx * cx)
        m02_cor = float(m02[i] - a * cy * cy)
        m11_cor = float(m11[i] - a * cx * cy)
        rad = 0.5 * math.atan2(2.0 * m11_cor, m20_cor - m02_cor)
        deg = abs(math.degrees(rad))
        assert 0.0 <= deg <= 90.0, f'orientation out of range: {deg}'
        props.append(Props(label=i, area=a, ycenter=float(cy), xcenter=float(cx),
                           m20=m20_cor, m02=m02_cor, m11=m11_cor, deg=deg))
    return props


def format_props_table(props: List[Props], label_max: int) -> str:
    lines = ['label num   area   xcenter   ycenter   deg']
    for p in props[1:label_max + 1]:
        lines.append(f'{p.label:<9d}   {p.area:<5d}  {p.xcenter:<8.2f}  {p.ycenter:<8.2f}  {p.deg:<5.1f}')
    return '\n'.join(lines)


def select_region(props: List[Props], label_max: int, total_area: int,
                  min_area_divisor: Optional[int] = None) -> Tuple[int, float]:
    """extract_region 의 후보 선택부. (label, score) 반환, 없으면 (0, 0.0).

    - 면적이 total_area // min_area_divisor 미만인 영역은 제외
    - score = area * (1 - (90 - deg) / 90), 엄격히 큰 경우에만 갱신 (동점이면 먼저 발견된 label)
    """
    divisor = int(REGION.min_area_divisor if min_area_divisor is None else min_area_divisor)
    ref = float(REGION.angle_ref_deg)
    min_area = total_area // divisor

    max_score = 0.0
    max_index = 0
    for p in props[1:label_max + 1]:
        if p.area < min_area:
            continue
        rightness = 1.0 - ((ref - p.deg) / ref)
        score = p.area * rightness
        if max_score < score:
            max_score = score
            max_index = p.label
    return max_index, max_score


def extract_region(grid: Grid, label_map: Grid, props: List[Props], label_max: int,
                   min_area_divisor: Optional[int] = None) -> RegionSelection:
    """가장 점수가 높은 영역만 남기고 나머지 화소를 0 으로 만든 새 Grid 반환.

    후보가 없으면 NO_OP 이며 grid 는 그대로 (새 Grid 를 만들지 않음).
    """
    if label_map.pixels.shape != grid.pixels.shape:
        raise ValueError(f'label map shape {label_map.pixels.shape} != image shape {grid.pixels.shape}')

    label, score = select_region(props, label_max, grid.total_area, min_area_divisor)
    if label == 0:
        reason = 'could not find a qualifying region'
        get_logger().info('[INFO] extract_region: %s', reason)
        return RegionSelection(Status.NO_OP, None, 0, 0.0, reason)

    out = np.where(label_map.pixels == label, grid.pixels, 0)
    get_logger().info('[INFO] extract_region: label=%d score=%.2f', label, score)
    return RegionSelection(Status.OK, grid.with_pixels(out), label, float(score))
