from __future__ import annotations

import argparse
import math
from dataclasses import fields, is_dataclass

from .utils.config import KMEANS, LABELING, MATCH, REGION
from .utils.types import AppConfig


def _finite_float(text: str) -> float:
    try:
        v = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f'input is not a valid number: {text!r}') from None
    if not math.isfinite(v):
        raise argparse.ArgumentTypeError(f'input is out of range: {text!r}')
    return v


def _positive_float(text: str) -> float:
    v = _finite_float(text)
    if v <= 0:
        raise argparse.ArgumentTypeError(f'factor must be positive: {text!r}')
    return v


def _positive_int(text: str) -> int:
    try:
        v = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f'input is not a valid integer: {text!r}') from None
    if v < 1:
        raise argparse.ArgumentTypeError(f'value must be >= 1: {text!r}')
    return v


def build_argparser() -> argparse.ArgumentParser:
    """CLI 파서 생성 - 모든 default 값은 AppConfig에서 관리"""

    default_config = AppConfig(
        src=None, dst=None, debug_dir=None  # Required fields는 None으로 설정
    )

    ap = argparse.ArgumentParser(description='pgmproc: ASCII PGM transform / segmentation / matching')

    # positional --------------------------------------------------------------
    ap.add_argument('src', type=str, help='input PGM (P2)')
    ap.add_argument('dst', type=str, help='output PGM (P2)')

    # filters -----------------------------------------------------------------
    ap.add_argument('--median', dest='median', action='store_true', default=default_config.median, help='3x3 median smoothing')
    ap.add_argument('--pixelize', dest='pixelize', type=_positive_int, default=None, help='block size for mosaic')
    ap.add_argument('--contrast', dest='contrast', action='store_true', default=default_config.contrast, help='linear contrast stretch to [0, max]')
    ap.add_argument('--invert', dest='invert', action='store_true', default=default_config.invert, help='invert brightness (max - value)')

    # geometry ----------------------------------------------------------------
    ap.add_argument('--scale', dest='scale', type=_positive_float, nargs=2, metavar=('HF', 'WF'), default=default_config.scale, help='height and width factors')
    ap.add_argument('--rotate', dest='rotate_deg', type=_finite_float, default=default_config.rotate_deg, help='rotation angle in degrees')
    ap.add_argument('--center', dest='center', type=_finite_float, nargs=2, metavar=('Y', 'X'), default=default_config.center, help='rotation center, default is image center')
    ap.add_argument('--affine', dest='affine', type=_finite_float, nargs=6, metavar=('A', 'B', 'C', 'D', 'E', 'F'), default=default_config.affine, help='(X, Y) = [[a, b], [d, e]] (x, y) + (c, f)')

    # segmentation ------------------------------------------------------------
    ap.add_argument('--binarize', dest='binarize', action='store_true', default=default_config.binarize, help='binarize, threshold by Otsu unless --threshold given')
    ap.add_argument('--threshold', dest='threshold', type=int, default=default_config.threshold, help='fixed binarization threshold')
    ap.add_argument('--erode', dest='erode', action='store_true', default=default_config.erode, help='4-neighbour erosion after binarize (implies --binarize)')
    ap.add_argument('--dilate', dest='dilate', action='store_true', default=default_config.dilate, help='4-neighbour dilation after binarize (implies --binarize)')
    ap.add_argument('--label', dest='label', action='store_true', default=default_config.label, help='label connected regions (implies --binarize)')
    ap.add_argument('--extract', dest='extract', action='store_true', default=default_config.extract, help='keep only the best-scoring region (implies --label)')
    ap.add_argument('--queue_capacity', dest='queue_capacity', type=_positive_int, default=default_config.queue_capacity, help=f'flood fill queue capacity, default is {LABELING.queue_capacity}')
    ap.add_argument('--min_area_divisor', dest='min_area_divisor', type=_positive_int, default=default_config.min_area_divisor, help=f'regions smaller than total/N are ignored, default is {REGION.min_area_divisor}')
    ap.add_argument('--kmeans', dest='n_clusters', type=_positive_int, nargs='?', const=KMEANS.n_clusters, default=default_config.n_clusters, metavar='K', help=f'cluster region areas into K groups, K defaults to {KMEANS.n_clusters} (implies --label)')

    # template matching -------------------------------------------------------
    ap.add_argument('--template', dest='template', type=str, default=None, help='template PGM to search for')
    ap.add_argument('--template_out', dest='template_out', type=str, default=None, help='write the matched cut-out here')
    ap.add_argument('--match', dest='match', type=str, choices=['sad', 'ncc'], default=default_config.match, help=f'matching metric, default is "{MATCH.match}"')

    # runtime/control ---------------------------------------------------------
    ap.add_argument('--save_debug', dest='save_debug', action='store_true', default=default_config.save_debug, help='save report, overlays and plots')
    ap.add_argument('--verbose', dest='verbose', action='store_true', default=default_config.verbose, help='verbose output')
    return ap


def update_dataclass_from_namespace(dc_obj, ns) -> None:
    """Update dataclass instance from argparse Namespace.

    - Matches by exact field names
    - Only sets when value is not None
    - Leaves other fields untouched
    """
    if not is_dataclass(dc_obj):
        raise TypeError('dc_obj must be a dataclass instance')
    for f in fields(dc_obj):
        if hasattr(ns, f.name):
            v = getattr(ns, f.name)
            if v is not None:
                setattr(dc_obj, f.name, v)
