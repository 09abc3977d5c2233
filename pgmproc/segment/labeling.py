from __future__ import annotations

from collections import deque
from typing import List, Optional

import numpy as np

from ..utils.config import LABELING
from ..utils.logger import get_logger
from ..utils.types import Grid, LabelingResult, Status

# label 상태. 양수는 확정된 label 값
UNVISITED = -1   # 아직 labeling 되지 않은 전경 (== max_value)
BACKGROUND = 0   # 전경이 아닌 화소 (labeling 대상 아님)

# 8-이웃, 위 → 같은 행 → 아래 순서
_NEIGHBORS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)


def label_region(state: List[List[int]], y: int, x: int, l_val: int, capacity: int) -> bool:
    """(y, x) 에서 시작해 8-연결 전경을 l_val 로 채움 (BFS, 재귀 없음).

    - enqueue 시점에 label 을 기록하여 중복 enqueue 방지
    - 처리 중인 좌표는 이웃을 모두 넣은 뒤에 큐에서 제거되므로 큐 점유에 포함됨
    - 큐 길이가 capacity 에 도달한 상태에서 enqueue 가 필요하면 False (부분 labeling 상태로 남음)
    """
    h = len(state)
    w = len(state[0])
    queue = deque()
    queue.append((y, x))
    state[y][x] = l_val

    while queue:
        py, px = queue[0]
        for dy, dx in _NEIGHBORS:
            ny, nx = py + dy, px + dx
            if 0 <= ny < h and 0 <= nx < w and state[ny][nx] == UNVISITED:
                if len(queue) >= capacity:
                    return False
                queue.append((ny, nx))
                state[ny][nx] = l_val
        queue.popleft()
    return True


def label_all(grid: Grid, queue_capacity: Optional[int] = None) -> LabelingResult:
    """이진화된 grid 의 연결된 전경 영역(== max_value)을 각각 labeling (in place).

    label 은 row-major 스캔에서 처음 발견된 순서로 1 부터 부여.
    실패 시 grid 는 부분 labeling 상태로 남고, label_max 에 완료된 마지막 label 이 들어감:
      - 큐 초과: 현재 label 이 미완료이므로 현재 label - 1
      - label 이 max_value 에 도달: 현재 label 은 완료되었으므로 현재 label
    """
    capacity = int(LABELING.queue_capacity if queue_capacity is None else queue_capacity)
    if capacity < 1:
        raise ValueError(f'queue_capacity must be >= 1, got {capacity}')

    logger = get_logger()
    if grid.max_value <= 1:
        # label 1 이 전경 값과 구분되지 않음
        reason = f'max_value {grid.max_value} leaves no room for labels'
        logger.error('[FAIL] label_all: %s', reason)
        return LabelingResult(Status.RESOURCE_EXHAUSTED, 0, reason)

    fg = grid.pixels == grid.max_value
    state = np.where(fg, UNVISITED, BACKGROUND).tolist()
    w = grid.width

    status = Status.OK
    reason = ''
    l_val = 1
    # 초기 전경 위치만 row-major 순서로 확인 (이미 채워진 곳은 건너뜀)
    for flat in np.flatnonzero(fg):
        i, j = divmod(int(flat), w)
        if state[i][j] != UNVISITED:
            continue
        if not label_region(state, i, j, l_val, capacity):
            reason = f'queue overflowed at label {l_val}, consider increasing queue_capacity (now {capacity})'
            logger.error('[FAIL] label_all: %s', reason)
            status = Status.RESOURCE_EXHAUSTED
            break
        l_val += 1
        if l_val == grid.max_value:
            reason = f'label reached max ({grid.max_value})'
            logger.error('[FAIL] label_all: %s', reason)
            status = Status.RESOURCE_EXHAUSTED
            break

    arr = np.asarray(state, dtype=np.int64)
    labeled = arr > 0
    grid.pixels[labeled] = arr[labeled]

    label_max = l_val - 1
    logger.debug('[DBG_LABEL] status=%s label_max=%d', status.value, label_max)
    return LabelingResult(status, label_max, reason)
