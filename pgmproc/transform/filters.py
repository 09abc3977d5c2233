from __future__ import annotations

import cv2
import numpy as np

from ..utils.types import SAMPLE_DTYPE, Grid, Point


def smooth_with_median(grid: Grid) -> Grid:
    """3x3 median filter. 가장자리 1 화소는 원래 값 유지."""
    out = grid.pixels.copy()
    if grid.height < 3 or grid.width < 3:
        return grid.with_pixels(out)
    # uint16 은 ksize 3/5 만 지원
    blurred = cv2.medianBlur(np.ascontiguousarray(grid.pixels), 3)
    out[1:-1, 1:-1] = blurred[1:-1, 1:-1]
    return grid.with_pixels(out)


def pixelize(grid: Grid, block_size: int) -> Grid:
    """block_size x block_size 블록을 블록 평균(내림)으로 채움. 오른쪽/아래 끝 블록은 잘린 크기 그대로."""
    if block_size < 1:
        raise ValueError(f'block_size must be >= 1, got {block_size}')
    px = grid.pixels.astype(np.int64)
    out = np.empty_like(grid.pixels)
    for i in range(0, grid.height, block_size):
        for j in range(0, grid.width, block_size):
            block = px[i:i + block_size, j:j + block_size]
            out[i:i + block_size, j:j + block_size] = block.sum() // block.size
    return grid.with_pixels(out)


def _expand_region(grid: Grid, val: int) -> Grid:
    """val 인 화소의 상하좌우 이웃을 val 로 만듦"""
    mask = (grid.pixels == val).astype(np.uint8)
    kernel = cv2.getStructuringElement(cv2.MORPH_CROSS, (3, 3))
    grown = cv2.dilate(mask, kernel).astype(bool)
    out = grid.pixels.copy()
    out[grown] = val
    return grid.with_pixels(out)


def erode(grid: Grid) -> Grid:
    return _expand_region(grid, 0)


def dilate(grid: Grid) -> Grid:
    return _expand_region(grid, grid.max_value)


def invert_brightness(grid: Grid) -> Grid:
    out = (grid.max_value - grid.pixels.astype(np.int64)).astype(SAMPLE_DTYPE)
    return grid.with_pixels(out)


def mark_region(grid: Grid, p1: Point, p2: Point) -> Grid:
    """좌상단 p1, 우하단 p2 로 정해지는 사각형 테두리를 max_value 로 그림 (이미지 밖은 잘림)"""
    out = grid.pixels.copy()
    cv2.rectangle(out, (p1.x, p1.y), (p2.x, p2.y), int(grid.max_value), 1)
    return grid.with_pixels(out)


def mark_template_region(grid: Grid, template: Grid, p: Point) -> Grid:
    """템플릿 영역을 바깥쪽 한 화소에서 둘러싸는 사각형"""
    p2 = Point(p.y + template.height, p.x + template.width)
    return mark_region(grid, p, p2)


def cutout_template(grid: Grid, p: Point, height: int, width: int) -> Grid:
    if p.y < 0 or p.x < 0 or p.y + height > grid.height or p.x + width > grid.width:
        raise ValueError(f'cutout ({p.y}, {p.x}) {width}x{height} exceeds image {grid.width}x{grid.height}')
    return grid.with_pixels(grid.pixels[p.y:p.y + height, p.x:p.x + width].copy())
