from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..utils.logger import get_logger
from ..utils.types import Grid, MatchResult, Point, Status


def _check_fits(target: Grid, template: Grid, name: str) -> Optional[MatchResult]:
    if template.height > target.height or template.width > target.width:
        reason = (f'template {template.width}x{template.height} does not fit '
                  f'in target {target.width}x{target.height}')
        get_logger().error('[FAIL] %s: %s', name, reason)
        return MatchResult(Status.DEGENERATE, Point(0, 0), 0.0, reason)
    return None


def find_nearest_region(target: Grid, template: Grid) -> MatchResult:
    """SAD(sum of absolute differences)가 최소인 위치 탐색.

    각 위치에서 부분합이 지금까지의 최소 거리 이상이 되는 순간 그 위치의 계산을 중단 (branch and bound).
    한 행의 차이를 누적합(np.cumsum)으로 이어 붙여 최소 거리에 도달한 화소를 찾고, 그 뒤의 화소는
    보지 않음. 중단된 위치의 최종 거리는 어차피 최소 거리 이상이므로 결과는 전수 계산과 동일.
    동일 거리이면 row-major 순서로 먼저 발견된 위치를 유지.

    Returns:
        MatchResult(point=좌상단 위치, value=최소 거리)
    """
    failed = _check_fits(target, template, 'find_nearest_region')
    if failed is not None:
        return failed

    tgt = target.pixels.astype(np.int64)
    tpl = template.pixels.astype(np.int64)
    th, tw = tpl.shape
    min_dist: Optional[int] = None
    nearest = Point(0, 0)
    pruned = 0
    visited_px = 0

    for i in range(target.height - th + 1):
        for j in range(target.width - tw + 1):
            dist = 0
            for k in range(th):
                partial = dist + np.cumsum(np.abs(tgt[i + k, j:j + tw] - tpl[k]))
                if min_dist is not None:
                    # 최소 거리 이상이 된 첫 화소에서 이 위치의 계산을 중단
                    hit = np.flatnonzero(partial >= min_dist)
                    if hit.size:
                        visited_px += k * tw + int(hit[0]) + 1
                        pruned += 1
                        break
                dist = int(partial[-1])
            else:
                # 최소값이 갱신될 때에만 도달
                visited_px += th * tw
                min_dist = dist
                nearest = Point(i, j)

    get_logger().debug('[DBG_SAD] min_dist=%d at (%d, %d), pruned=%d, visited_px=%d',
                       min_dist, nearest.y, nearest.x, pruned, visited_px)
    return MatchResult(Status.OK, nearest, min_dist)


def _window_sums(arr: np.ndarray, th: int, tw: int) -> np.ndarray:
    """integral image 로 모든 (th, tw) 윈도우의 합 계산"""
    ii = np.zeros((arr.shape[0] + 1, arr.shape[1] + 1), dtype=np.int64)
    ii[1:, 1:] = arr.cumsum(axis=0).cumsum(axis=1)
    return ii[th:, tw:] - ii[:-th, tw:] - ii[th:, :-tw] + ii[:-th, :-tw]


def find_similar_region(target: Grid, template: Grid) -> MatchResult:
    """정규화 상호상관(NCC)이 최대인 위치 탐색.

    sim = dot / (sqrt(template 제곱합) * sqrt(영역 제곱합))
    - template 제곱합은 한 번만 계산
    - 영역 제곱합이 0 인 위치(NaN)는 선택되지 않음
    - 동일 유사도이면 row-major 순서로 먼저 발견된 위치

    Returns:
        MatchResult(point=좌상단 위치, value=최대 유사도), 유효한 위치가 없으면 (0, 0) 과 0.0
    """
    failed = _check_fits(target, template, 'find_similar_region')
    if failed is not None:
        return failed

    tgt = target.pixels.astype(np.int64)
    tpl = template.pixels.astype(np.int64)
    th, tw = tpl.shape

    # 템플릿의 화소 제곱합을 미리 계산
    tpl_sqsum = int((tpl * tpl).sum())
    windows = sliding_window_view(tgt, (th, tw))
    dot = np.einsum('ijkl,kl->ij', windows, tpl)
    region_sqsum = _window_sums(tgt * tgt, th, tw)

    with np.errstate(divide='ignore', invalid='ignore'):
        sim = dot / (np.sqrt(float(tpl_sqsum)) * np.sqrt(region_sqsum.astype(np.float64)))

    valid = np.isfinite(sim) & (sim > 0)
    if not valid.any():
        get_logger().warning('[WARN] find_similar_region: no placement with positive similarity')
        return MatchResult(Status.OK, Point(0, 0), 0.0)

    flat = int(np.argmax(np.where(valid, sim, -np.inf)))
    i, j = divmod(flat, sim.shape[1])
    max_sim = float(sim[i, j])
    get_logger().debug('[DBG_NCC] max_sim=%.6f at (%d, %d)', max_sim, i, j)
    return MatchResult(Status.OK, Point(i, j), max_sim)
