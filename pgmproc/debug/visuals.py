from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from ..utils.config import DEBUG
from ..utils.types import Grid, Point, Props


def to_preview(grid: Grid) -> np.ndarray:
    """max_value 기준으로 8bit 로 변환 (imwrite 용)"""
    px = grid.pixels.astype(np.float64) * (255.0 / grid.max_value)
    return np.clip(np.round(px), 0, 255).astype(np.uint8)


def save_label_overlay(
    label_map: Grid,
    props: List[Props],
    label_max: int,
    out_path: Path,
    selected: Optional[int] = None,
) -> None:
    '''
    label 별로 colormap 색을 입히고, 각 영역 중심에 원과 label 번호를 표시.
    selected 가 주어지면 해당 영역 중심을 강조색으로 표시.
    '''
    out_path.parent.mkdir(parents=True, exist_ok=True)
    labels = label_map.pixels.astype(np.int64)
    valid = (labels > 0) & (labels <= label_max)

    # label 값을 [1, 255] 로 펼쳐서 colormap 적용
    idx = np.zeros(labels.shape, dtype=np.uint8)
    if label_max > 0:
        idx[valid] = (1 + (labels[valid] - 1) * 254 // max(1, label_max - 1)).astype(np.uint8)
    vis = cv2.applyColorMap(idx, DEBUG.colormap)
    vis[~valid] = DEBUG.background_color

    for p in props[1:label_max + 1]:
        if p.area == 0:
            continue
        c = (int(round(p.xcenter)), int(round(p.ycenter)))
        color = DEBUG.selected_color if p.label == selected else DEBUG.centroid_color
        cv2.circle(vis, c, DEBUG.centroid_radius, color, DEBUG.centroid_thickness, lineType=cv2.LINE_AA)
        cv2.putText(vis, str(p.label), (c[0] + DEBUG.centroid_radius + 1, c[1]),
                    cv2.FONT_HERSHEY_SIMPLEX, DEBUG.label_font_scale, color, DEBUG.label_thickness, cv2.LINE_AA)
    cv2.imwrite(str(out_path), vis)


def save_match_overlay(target: Grid, template: Grid, p: Point, out_path: Path) -> None:
    """템플릿 매칭 위치를 사각형으로 표시"""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    vis = cv2.cvtColor(to_preview(target), cv2.COLOR_GRAY2BGR)
    p2 = (p.x + template.width - 1, p.y + template.height - 1)
    cv2.rectangle(vis, (p.x, p.y), p2, DEBUG.match_color, DEBUG.rect_thickness)
    cv2.imwrite(str(out_path), vis)
