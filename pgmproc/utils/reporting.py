from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import tifffile as tiff

from .config import DEBUG
from .logger import get_logger
from .types import VERSION, Grid, RunSummary


def _json_default(obj):
    # numpy 스칼라/배열을 JSON 직렬화 가능 형태로 변환
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return str(obj)


def save_json(path: Path, data: Dict) -> None:
    """JSON 파일로 저장"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=_json_default)


def build_run_report(summary: RunSummary) -> Dict:
    """RunSummary → report.json 내용"""
    regions: List[Dict] = []
    if summary.label_max:
        for p in summary.props[1:summary.label_max + 1]:
            regions.append({
                'label': p.label,
                'area': p.area,
                'centroid': {'y': p.ycenter, 'x': p.xcenter},
                'moments': {'m20': p.m20, 'm02': p.m02, 'm11': p.m11},
                'deg': p.deg,
            })
    out = {
        'version': VERSION,
        'stages': [{'stage': s, 'status': st} for (s, st) in summary.stages],
        'threshold': summary.threshold,
        'label_max': summary.label_max,
        'selected_label': summary.selected_label,
        'regions': regions,
        'failed': summary.failed,
    }
    if summary.match is not None:
        out['match'] = {
            'status': summary.match.status.value,
            'y': summary.match.point.y,
            'x': summary.match.point.x,
            'value': summary.match.value,
        }
    if summary.kmeans is not None:
        out['kmeans'] = asdict(summary.kmeans)
    return out


def save_label_map(path: Path, label_map: Grid) -> None:
    """label map 을 16bit TIFF 로 무손실 저장 (PGM 뷰어로는 label 구분이 어려움)"""
    path.parent.mkdir(parents=True, exist_ok=True)
    tiff.imwrite(str(path), label_map.pixels.astype(np.uint16))


def plot_histogram(grid: Grid, out_path: Path, threshold: Optional[int] = None) -> None:
    """화소값 히스토그램 + Otsu 임계값 표시"""
    try:
        logger = get_logger()
        logger.info('[ENTER] plot_histogram -> %s', str(out_path))
        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        hist = np.bincount(grid.pixels.ravel(), minlength=grid.max_value + 1)
        fig, ax = plt.subplots(1, 1, figsize=DEBUG.plot_figsize)
        ax.bar(np.arange(hist.size), hist, width=1.0, color='gray')
        if threshold is not None:
            ax.axvline(threshold, color='r', linestyle='--', label=f'threshold = {threshold}')
            ax.legend()
        ax.set_xlim(0, grid.max_value)
        ax.set_xlabel('Pixel value')
        ax.set_ylabel('Count')
        ax.grid(True, alpha=0.3)
        plt.tight_layout()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(out_path, dpi=DEBUG.plot_dpi, bbox_inches='tight')
        plt.close(fig)
    except Exception as e:
        get_logger().exception('[ERR] Histogram plot failed: %s', e)
