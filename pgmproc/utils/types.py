from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from .config import LIMITS

T = TypeVar('T')

# PGM 샘플은 16bit 로 충분함
SAMPLE_DTYPE = np.uint16


@dataclass(frozen=True)
class VersionEntry:
    date: str
    author: str
    note: str

VERSION_HISTORY: List[VersionEntry] = [
    VersionEntry("2026-09-28", "pgmproc", "first version: scale/rotate/affine, Otsu, labeling"),
    VersionEntry("2026-10-05", "pgmproc", "Add template matching (SAD early exit, NCC) and k-means"),
    VersionEntry("2026-10-12", "pgmproc", "Separate label state from sample values, configurable queue capacity"),
]

CURRENT_VERSION: VersionEntry = VERSION_HISTORY[-1]
VERSION: str = CURRENT_VERSION.date + '-' + CURRENT_VERSION.author


class Status(str, Enum):
    """코어 연산 결과 분류.

    - OK: 성공
    - INPUT_TOO_LARGE: 결과 크기가 상한 초과, 할당 전에 실패
    - DEGENERATE: 0 크기 결과, 특이 행렬 등. 변환 시작 전에 실패하며 grid 는 그대로
    - RESOURCE_EXHAUSTED: labeling 큐 초과 또는 label 공간 소진. grid 가 부분적으로 labeling 된 상태일 수 있음
    - NO_OP: 수행할 작업이 없음 (치명적이지 않음). grid 는 그대로
    """
    OK = 'ok'
    INPUT_TOO_LARGE = 'input_too_large'
    DEGENERATE = 'degenerate'
    RESOURCE_EXHAUSTED = 'resource_exhausted'
    NO_OP = 'no_op'


@dataclass
class Grid:
    """단일 채널 이미지. pixels 는 (height, width) uint16 배열, row-major.

    - 모든 샘플은 0 <= sample <= max_value
    - magic 은 인코더로 그대로 전달됨 (예: 'P2')
    """
    pixels: np.ndarray
    max_value: int
    magic: str = 'P2'

    def __post_init__(self) -> None:
        px = np.asarray(self.pixels)
        if px.ndim != 2:
            raise ValueError(f'pixels must be 2-D, got shape {px.shape}')
        h, w = px.shape
        if h == 0 or w == 0:
            raise ValueError(f'zero-sized grid: {w}x{h}')
        if w > LIMITS.width_max or h > LIMITS.height_max:
            raise ValueError(f'image is too big: {w}x{h} (max {LIMITS.width_max}x{LIMITS.height_max})')
        max_value = int(self.max_value)
        if not 0 < max_value <= LIMITS.sample_max:
            raise ValueError(f'max_value out of range: {max_value}')
        lo, hi = int(px.min()), int(px.max())
        if lo < 0 or hi > max_value:
            raise ValueError(f'sample out of range [0, {max_value}]: min={lo} max={hi}')
        self.pixels = px.astype(SAMPLE_DTYPE, copy=False)
        self.max_value = max_value

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def total_area(self) -> int:
        return self.width * self.height

    @classmethod
    def from_samples(cls, width: int, height: int, max_value: int, samples: Sequence[int],
                     magic: str = 'P2', clamp: bool = False) -> 'Grid':
        """디코더용 생성자. samples 는 row-major 순서.

        clamp=True 이면 max_value 초과 샘플을 max_value 로 자르고, 아니면 ValueError.
        """
        arr = np.asarray(samples, dtype=np.int64)
        if arr.size != int(width) * int(height):
            raise ValueError(f'expected {int(width) * int(height)} samples, got {arr.size}')
        if clamp:
            arr = np.clip(arr, 0, int(max_value))
        return cls(arr.reshape(int(height), int(width)), max_value, magic)

    def to_samples(self) -> Tuple[int, int, int, List[int]]:
        """인코더용 접근자: (width, height, max_value, row-major samples)"""
        return self.width, self.height, self.max_value, self.pixels.ravel(order='C').tolist()

    def copy(self) -> 'Grid':
        return Grid(self.pixels.copy(), self.max_value, self.magic)

    def with_pixels(self, pixels: np.ndarray) -> 'Grid':
        """같은 max_value/magic 을 가지는 새 Grid"""
        return Grid(pixels, self.max_value, self.magic)


@dataclass(frozen=True)
class Point:
    """(row, column) 좌표"""
    y: int
    x: int


@dataclass(frozen=True)
class MinMax:
    min: int
    max: int


@dataclass(frozen=True)
class AffineArgs:
    """(X, Y) = [[a, b], [d, e]] @ (x, y) + (c, f)"""
    a: float
    b: float
    c: float
    d: float
    e: float
    f: float

    @property
    def det(self) -> float:
        return self.a * self.e - self.b * self.d


@dataclass
class Props:
    """label 별 영역 특성 (segment.regions.get_region_props 산출물)"""
    label: int
    area: int = 0
    ycenter: float = 0.0
    xcenter: float = 0.0
    m20: float = 0.0  # 중심 모멘트 (x 방향)
    m02: float = 0.0  # 중심 모멘트 (y 방향)
    m11: float = 0.0
    deg: float = 0.0  # 관성 주축 각도의 절댓값, [0, 90]


@dataclass
class Feature:
    value: float
    cluster: int = 0


@dataclass
class Cluster:
    centre: float
    n_members: int = 0
    sum_values: float = 0.0


@dataclass
class TransformResult:
    status: Status
    grid: Optional[Grid] = None
    reason: str = ''

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


@dataclass
class LabelingResult:
    """label_max: 완료된 가장 큰 label 값 (실패 시에도 설정됨)"""
    status: Status
    label_max: int = 0
    reason: str = ''

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


@dataclass
class RegionSelection:
    status: Status
    grid: Optional[Grid] = None
    label: int = 0
    score: float = 0.0
    reason: str = ''

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


@dataclass
class MatchResult:
    """point: 템플릿 좌상단 위치, value: SAD 거리 또는 NCC 유사도"""
    status: Status
    point: Point = Point(0, 0)
    value: float = 0.0
    reason: str = ''

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


@dataclass
class KMeansResult:
    centroids: List[float]
    counts: List[int]
    iterations: int


@dataclass
class AppConfig:
    """전체 파이프라인 실행 설정(단일 진입점).

    사용처:
    - main.run: CLI 인자 수집 및 각 단계로 전달
    - 모든 CLI default 값을 중앙 관리
    """
    # Required paths
    src: Path
    dst: Path
    debug_dir: Path

    # 템플릿 매칭 (template 이 있을 때만 수행)
    template: Optional[Path] = None
    template_out: Optional[Path] = None
    match: Optional[str] = None  # 'sad' | 'ncc', None 이면 MatchConfig 기본값

    #########################################
    # 필터 / 기하 변환
    #########################################
    median: bool = False
    pixelize: int = 0  # 0 이면 수행하지 않음
    invert: bool = False
    contrast: bool = False
    scale: Optional[Tuple[float, float]] = None  # (height_factor, width_factor)
    rotate_deg: Optional[float] = None
    center: Optional[Tuple[float, float]] = None  # (y, x), None 이면 이미지 중심
    affine: Optional[Tuple[float, float, float, float, float, float]] = None

    #########################################
    # 이진화 / labeling
    #########################################
    binarize: bool = False
    threshold: Optional[int] = None  # None 이면 Otsu
    erode: bool = False  # 이진화 후 4-이웃 침식
    dilate: bool = False  # 이진화 후 4-이웃 팽창
    label: bool = False
    extract: bool = False
    queue_capacity: Optional[int] = None  # None 이면 LabelingConfig 기본값
    min_area_divisor: Optional[int] = None
    n_clusters: Optional[int] = None  # None 이면 k-means 수행하지 않음

    #########################################
    # 결과 저장 관련 파라미터
    #########################################
    save_debug: bool = False
    verbose: bool = False


@dataclass
class RunSummary:
    """main.run 실행 결과 요약 (리포트 저장용)"""
    stages: List[Tuple[str, str]] = field(default_factory=list)  # (stage, status)
    threshold: Optional[int] = None
    label_max: Optional[int] = None
    props: List[Props] = field(default_factory=list)
    selected_label: Optional[int] = None
    match: Optional[MatchResult] = None
    kmeans: Optional[KMeansResult] = None
    failed: bool = False


def merge_config_from_app(app: AppConfig, default_cfg: T) -> T:
    """범용 Config 병합 함수: AppConfig에서 같은 이름의 필드를 찾아 frozen Config 를 갱신.

    Args:
        app: AppConfig 인스턴스
        default_cfg: 기본 Config 인스턴스 (frozen dataclass도 지원)

    Returns:
        병합된 새로운 Config 인스턴스
    """
    if not is_dataclass(default_cfg):
        raise TypeError('default_cfg must be a dataclass instance')

    updates = {}
    for f in fields(default_cfg):
        if hasattr(app, f.name):
            app_value = getattr(app, f.name)
            # None이 아니면 업데이트
            if app_value is not None:
                updates[f.name] = app_value

    if updates:
        return replace(default_cfg, **updates)
    return default_cfg
