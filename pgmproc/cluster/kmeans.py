from __future__ import annotations

from typing import List, Sequence

from ..utils.logger import get_logger
from ..utils.types import Cluster, Feature, KMeansResult


class ClusteringError(RuntimeError):
    """k-means 반복 중 소속 데이터가 없는 클러스터가 생긴 경우"""


def cluster_by_kmeans(feats: List[Feature], n_clsts: int) -> KMeansResult:
    """1차원 특징값 k-means (in place 로 feats[i].cluster 갱신).

    - 클러스터 중심 초기값은 앞쪽 n_clsts 개 데이터의 특징값 (난수 없음, 재현 가능)
    - 가장 가까운 중심에 배정, 거리가 같으면 index 가 작은 클러스터
    - 중심이 하나도 변하지 않을 때까지 반복
    """
    n_feats = len(feats)
    if n_clsts < 1 or n_feats < n_clsts:
        raise ValueError(f'need 1 <= n_clsts <= n_feats, got n_clsts={n_clsts}, n_feats={n_feats}')

    # 각 데이터의 소속 클러스터 초기화
    for f in feats:
        f.cluster = 0

    clsts = [Cluster(centre=feats[i].value) for i in range(n_clsts)]

    iterations = 0
    counts: List[int] = [0] * n_clsts
    finished = False
    while not finished:
        finished = True
        iterations += 1

        for f in feats:
            min_dist = None
            for j, c in enumerate(clsts):
                dist = abs(c.centre - f.value)
                if min_dist is None or dist < min_dist:
                    min_dist = dist
                    f.cluster = j
            # 이 데이터의 소속이 확정되었으므로 클러스터 정보에 반영
            clsts[f.cluster].n_members += 1
            clsts[f.cluster].sum_values += f.value

        for j, c in enumerate(clsts):
            if c.n_members == 0:
                raise ClusteringError(f'cluster {j} has no members (centre={c.centre})')
            old_centre = c.centre
            c.centre = c.sum_values / c.n_members
            if c.centre != old_centre:
                finished = False
            counts[j] = c.n_members
            # 다음 반복을 위해 초기화
            c.n_members = 0
            c.sum_values = 0.0

    centroids = [c.centre for c in clsts]
    get_logger().debug('[DBG_KMEANS] k=%d iterations=%d centroids=%s', n_clsts, iterations, centroids)
    return KMeansResult(centroids=centroids, counts=counts, iterations=iterations)


def features_from_values(values: Sequence[float]) -> List[Feature]:
    return [Feature(value=float(v)) for v in values]
