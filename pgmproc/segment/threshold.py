from __future__ import annotations

import numpy as np

from ..utils.logger import get_logger
from ..utils.types import SAMPLE_DTYPE, Grid, MinMax, Status


def find_min_max(grid: Grid) -> MinMax:
    return MinMax(min=int(grid.pixels.min()), max=int(grid.pixels.max()))


def adjust_contrast(grid: Grid, mm: MinMax) -> Status:
    """선형 contrast stretch (in place): new = max_value * (old - min) // (max - min)

    아래의 경우는 보정해도 값이 변하지 않으므로 NO_OP 반환
        - 모든 화소값이 동일할 때
        - 최소값이 0, 최대값이 max_value 일 때
    """
    diff = mm.max - mm.min
    if diff == 0 or (mm.max == grid.max_value and mm.min == 0):
        get_logger().info('[INFO] adjust_contrast: no operation performed')
        return Status.NO_OP

    px = grid.pixels.astype(np.int64)
    grid.pixels[...] = ((grid.max_value * (px - mm.min)) // diff).astype(SAMPLE_DTYPE)
    return Status.OK


def histogram(grid: Grid) -> np.ndarray:
    """[0, max_value] 범위의 화소값 빈도"""
    return np.bincount(grid.pixels.ravel(), minlength=grid.max_value + 1).astype(np.int64)


def find_threshold(grid: Grid) -> int:
    """Otsu 방법으로 이진화 임계값 탐색.

    omega[t]: 임계값 t 이하 클래스의 화소 비율 (누적합)
    mu[t]:    임계값 t 이하 클래스의 평균 기여분 (누적합)
    클래스 간 분산 = (mu[max]*omega[t] - mu[t])^2 / (omega[t]*(1-omega[t]))

    - omega[t] == 0 (하위 클래스가 비어 있음) 은 건너뜀
    - omega[t] == 1 (상위 클래스가 비어 있음) 이면 탐색 종료
    - 분산이 엄격히 더 큰 경우에만 갱신, 후보가 없으면 max_value
    """
    total_px = grid.total_area
    max_val = grid.max_value
    ni = histogram(grid)

    # 누적합을 정수로 계산한 뒤 나누므로 omega 의 마지막 값은 정확히 1.0
    omega = np.cumsum(ni) / total_px
    mu = np.cumsum(np.arange(max_val + 1, dtype=np.int64) * ni) / total_px

    # omega 가 처음으로 1 이 되는 지점 이후는 볼 필요 없음
    stop = int(np.argmax(omega >= 1.0))
    cand = np.arange(stop)
    cand = cand[omega[cand] > 0]
    if cand.size == 0:
        get_logger().debug('[DBG_OTSU] no candidate, threshold=%d', max_val)
        return max_val

    w = omega[cand]
    var = (mu[max_val] * w - mu[cand]) ** 2 / (w * (1.0 - w))
    best = int(np.argmax(var))  # 동일 분산이면 가장 작은 t
    if not var[best] > 0:
        return max_val
    threshold = int(cand[best])
    get_logger().debug('[DBG_OTSU] threshold=%d var=%.6f', threshold, float(var[best]))
    return threshold


def binarize(grid: Grid, threshold: int) -> None:
    """in place: threshold 초과이면 max_value, 아니면 0"""
    grid.pixels[...] = np.where(grid.pixels > threshold, grid.max_value, 0).astype(SAMPLE_DTYPE)
