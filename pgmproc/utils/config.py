from __future__ import annotations

import cv2
from dataclasses import dataclass


@dataclass(frozen=True)
class GridLimits:
    """utils.types.Grid / transform.resample: 이미지 크기 상한.

    사용처:
    - Grid.__post_init__ (생성 시 크기 검사)
    - resample.scale (스케일 결과 크기 검사, 할당 전에 실패)
    """
    width_max: int = 4096
    height_max: int = 4096
    # PGM maxval 상한 (16bit). 샘플은 uint16 으로 저장됨
    sample_max: int = 65535


@dataclass(frozen=True)
class LabelingConfig:
    """segment.labeling: flood fill 큐 설정.

    사용처:
    - label_all / label_region
    """
    # flood fill 대기열에 동시에 들어갈 수 있는 최대 좌표 수.
    # 이미지 크기에 비례하지 않는 고정 상한이며, 초과 시 RESOURCE_EXHAUSTED 로 중단됨.
    # 큰 단일 영역(배경이 흰색인 경우 등)에서 실패한다면 이 값을 늘려야 함.
    queue_capacity: int = 65536


@dataclass(frozen=True)
class RegionConfig:
    """segment.regions: 최적 영역 선택(extract_region) 파라미터.

    사용처:
    - extract_region
    """
    # 전체 면적 // min_area_divisor 미만인 영역은 후보에서 제외 (기본: 1%)
    min_area_divisor: int = 100
    # 주축 각도 정규화 기준 (deg). score = area * (1 - (angle_ref - deg) / angle_ref)
    angle_ref_deg: float = 90.0


@dataclass(frozen=True)
class MatchConfig:
    """match.template: 템플릿 매칭 방식.

    사용처:
    - main.run (--match)
    """
    match: str = 'ncc'  # 'sad' | 'ncc'


@dataclass(frozen=True)
class KMeansConfig:
    """cluster.kmeans: 영역 특징 클러스터링.

    사용처:
    - main.run (--kmeans), 영역 면적을 클러스터링
    - cli (--kmeans 에 K 를 생략하면 n_clusters 사용)
    """
    n_clusters: int = 2
    feature: str = 'area'  # 'area' | 'xcenter' | 'ycenter'


@dataclass(frozen=True)
class DebugConfig:
    """debug.visuals / utils.reporting 오버레이 스타일.

    사용처:
    - save_label_overlay, save_match_overlay, plot_histogram
    """
    centroid_radius: int = 3
    centroid_thickness: int = 1
    label_font_scale: float = 0.4
    label_thickness: int = 1
    rect_thickness: int = 1
    colormap: int = cv2.COLORMAP_TURBO
    plot_figsize: tuple = (8, 4)
    plot_dpi: int = 150

    # 색상 설정 (BGR 형식)
    centroid_color: tuple = (255, 255, 255)   # 영역 중심 (흰색)
    selected_color: tuple = (0, 0, 255)       # extract_region 선택 영역 (빨강)
    match_color: tuple = (0, 255, 0)          # 템플릿 매칭 위치 (초록)
    background_color: tuple = (0, 0, 0)       # label 0 (검정)


LIMITS = GridLimits()
LABELING = LabelingConfig()
REGION = RegionConfig()
MATCH = MatchConfig()
KMEANS = KMeansConfig()
DEBUG = DebugConfig()
