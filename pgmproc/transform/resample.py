from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from scipy.ndimage import map_coordinates

from ..utils.config import LIMITS
from ..utils.logger import get_logger
from ..utils.types import SAMPLE_DTYPE, AffineArgs, Grid, Status, TransformResult

# 좌표 배열을 한 번에 만들지 않고 행 단위로 나눠 계산 (작업 메모리 상한)
_ROW_CHUNK = 256


def deg_to_rad(deg: float) -> float:
    return deg * (math.pi / 180.0)


def _round_half_up(v: float) -> int:
    """C round() 와 동일하게 .5 는 올림 (양수 전용)"""
    return int(math.floor(v + 0.5))


def _bilinear(src: np.ndarray, ys: np.ndarray, xs: np.ndarray) -> np.ndarray:
    """실수 좌표 (ys, xs) 에서 2x2 이웃 bilinear 보간.

    order=1 은 bilinear interpolation, prefilter 불필요.
    src 는 uint16 원본을 그대로 받음 (float 사본을 만들지 않음), 보간 결과만 float64.
    마지막 행/열 처리 정책은 호출측에서 마스크로 덮어씀 (mode='nearest' 는 범위 밖 참조 방지용).
    """
    coords = np.stack([ys.ravel(), xs.ravel()])
    vals = map_coordinates(src, coords, order=1, mode='nearest', prefilter=False, output=np.float64)
    return vals.reshape(ys.shape)


def _truncate(vals: np.ndarray) -> np.ndarray:
    # 보간값은 항상 0 이상이므로 trunc == floor
    return np.trunc(vals).astype(SAMPLE_DTYPE)


def _check_scaled_size(grid: Grid, height_factor: float, width_factor: float) -> Tuple[Status, int, int, str]:
    new_h = _round_half_up(height_factor * grid.height)
    new_w = _round_half_up(width_factor * grid.width)
    get_logger().info('[INFO] scale: %dx%d -> %dx%d', grid.height, grid.width, new_h, new_w)
    if new_h > LIMITS.height_max or new_w > LIMITS.width_max:
        return Status.INPUT_TOO_LARGE, new_h, new_w, 'cannot scale, resulting image will be too big'
    if new_h == 0 or new_w == 0:
        return Status.DEGENERATE, new_h, new_w, 'cannot scale, resulting image will be zero-sized'
    return Status.OK, new_h, new_w, ''


def scale(grid: Grid, height_factor: float, width_factor: float) -> TransformResult:
    """스케일 변환 (역변환 + bilinear).

    - 결과 크기 = round(factor * 원래 크기), 상한 초과/0 이면 할당 전에 실패
    - 보간 원점이 원본의 마지막 행 또는 열이면 보간하지 않고 원점 화소값을 복사
    """
    for name, v in (('height_factor', height_factor), ('width_factor', width_factor)):
        if not (math.isfinite(v) and v > 0):
            raise ValueError(f'{name} must be a positive finite number, got {v}')

    status, new_h, new_w, reason = _check_scaled_size(grid, height_factor, width_factor)
    if status is not Status.OK:
        get_logger().error('[FAIL] scale: %s', reason)
        return TransformResult(status, None, reason)

    H, W = grid.height, grid.width
    out = np.empty((new_h, new_w), dtype=SAMPLE_DTYPE)

    # 보간 원점: 결과 화소를 원본 공간으로 되돌린 실수 좌표의 정수부
    ys_all = np.arange(new_h, dtype=np.float64) / height_factor
    xs = np.arange(new_w, dtype=np.float64) / width_factor
    w_base = np.floor(xs).astype(np.int64)
    w_edge = w_base == W - 1

    for r0 in range(0, new_h, _ROW_CHUNK):
        ys = ys_all[r0:r0 + _ROW_CHUNK]
        h_base = np.floor(ys).astype(np.int64)
        yy, xx = np.meshgrid(ys, xs, indexing='ij')
        vals = _truncate(_bilinear(grid.pixels, yy, xx))
        edge = (h_base == H - 1)[:, None] | w_edge[None, :]
        # 원본 끝에서는 보간할 이웃이 없으므로 원점 화소값을 그대로 사용
        nearest = grid.pixels[h_base[:, None], w_base[None, :]]
        out[r0:r0 + len(ys)] = np.where(edge, nearest, vals)

    return TransformResult(Status.OK, grid.with_pixels(out))


def _sample_inverse(grid: Grid, y_orig: np.ndarray, x_orig: np.ndarray) -> np.ndarray:
    """rotate/affine 공통: 역변환 좌표에서 샘플링.

    - 원본 범위 [0, dim-1] 밖이면 0
    - 보간 원점이 마지막 행/열이면 0 (회전에서는 대체할 '가장 가까운' 화소가 정의되지 않음)
    """
    H, W = grid.height, grid.width
    inside = (x_orig >= 0) & (x_orig <= W - 1) & (y_orig >= 0) & (y_orig <= H - 1)
    h_base = np.floor(y_orig).astype(np.int64)
    w_base = np.floor(x_orig).astype(np.int64)
    edge = (h_base == H - 1) | (w_base == W - 1)
    vals = _truncate(_bilinear(grid.pixels, y_orig, x_orig))
    return np.where(inside & ~edge, vals, 0).astype(SAMPLE_DTYPE)


def rotate(grid: Grid, theta: float, center_y: float, center_x: float) -> TransformResult:
    """(center_y, center_x) 를 중심으로 theta [rad] 만큼 회전. 결과 크기는 입력과 동일."""
    sint = math.sin(theta)
    cost = math.cos(theta)
    out = np.empty_like(grid.pixels)
    j = np.arange(grid.width, dtype=np.float64) - center_x

    for r0 in range(0, grid.height, _ROW_CHUNK):
        i = np.arange(r0, min(r0 + _ROW_CHUNK, grid.height), dtype=np.float64) - center_y
        ii, jj = np.meshgrid(i, j, indexing='ij')
        # 역변환 (-theta 회전) 으로 원래 좌표를 산출
        x_orig = cost * jj + sint * ii + center_x
        y_orig = -sint * jj + cost * ii + center_y
        out[r0:r0 + len(i)] = _sample_inverse(grid, y_orig, x_orig)

    get_logger().debug('[DBG_ROTATE] theta=%.6f center=(%.3f, %.3f)', theta, center_y, center_x)
    return TransformResult(Status.OK, grid.with_pixels(out))


def affine(grid: Grid, args: AffineArgs) -> TransformResult:
    """아핀 변환. 변환 행렬이 특이(det == 0)이면 실패하고 grid 는 건드리지 않음."""
    det = args.det
    if det == 0:
        reason = 'determinant is zero'
        get_logger().error('[FAIL] affine: %s', reason)
        return TransformResult(Status.DEGENERATE, None, reason)

    out = np.empty_like(grid.pixels)
    j = np.arange(grid.width, dtype=np.float64) - args.c

    for r0 in range(0, grid.height, _ROW_CHUNK):
        i = np.arange(r0, min(r0 + _ROW_CHUNK, grid.height), dtype=np.float64) - args.f
        ii, jj = np.meshgrid(i, j, indexing='ij')
        x_orig = (args.e * jj - args.b * ii) / det
        y_orig = (-args.d * jj + args.a * ii) / det
        out[r0:r0 + len(i)] = _sample_inverse(grid, y_orig, x_orig)

    return TransformResult(Status.OK, grid.with_pixels(out))
