from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

from ..utils.config import LIMITS
from ..utils.logger import get_logger
from ..utils.types import Grid


class PgmFormatError(ValueError):
    """ASCII PGM 파싱 실패"""


def _tokens(text: str) -> Iterator[str]:
    # '#' 부터 줄 끝까지는 주석
    for line in text.splitlines():
        line = line.split('#', 1)[0]
        yield from line.split()


def _parse_uint(tok: str, what: str) -> int:
    try:
        v = int(tok)
    except ValueError:
        raise PgmFormatError(f'cannot read {what}: {tok!r}') from None
    if v < 0:
        raise PgmFormatError(f'{what} must be non-negative: {v}')
    return v


def read_image(path: Path) -> Grid:
    """ASCII PGM (P2) 읽기. 헤더: magic width height max, 이후 row-major 화소값."""
    path = Path(path)
    try:
        text = path.read_text(encoding='ascii')
    except UnicodeDecodeError:
        raise PgmFormatError(f'{path}: image is not PGM(ASCII)') from None
    toks = _tokens(text)
    header: List[str] = []
    for tok in toks:
        header.append(tok)
        if len(header) == 4:
            break
    if len(header) != 4:
        raise PgmFormatError(f'{path}: cannot read the header')

    magic = header[0]
    if magic != 'P2':
        raise PgmFormatError(f'{path}: image is not PGM(ASCII), magic={magic!r}')
    width = _parse_uint(header[1], 'width')
    height = _parse_uint(header[2], 'height')
    max_value = _parse_uint(header[3], 'max')
    if width > LIMITS.width_max or height > LIMITS.height_max:
        raise PgmFormatError(f'{path}: image is too big ({width}x{height})')
    if width == 0 or height == 0:
        raise PgmFormatError(f'{path}: zero-sized image ({width}x{height})')
    if not 0 < max_value <= LIMITS.sample_max:
        raise PgmFormatError(f'{path}: max out of range ({max_value})')

    samples: List[int] = []
    n = width * height
    for tok in toks:
        v = _parse_uint(tok, 'a pixel')
        if v > max_value:
            i, j = divmod(len(samples), width)
            raise PgmFormatError(f'{path}: pixel "{v}" ({i} {j}) exceeds the max "{max_value}"')
        samples.append(v)
        if len(samples) == n:
            break
    if len(samples) != n:
        raise PgmFormatError(f'{path}: cannot read a pixel (got {len(samples)} of {n})')

    get_logger().debug('[DBG_IO] read %s: %dx%d max=%d', str(path), width, height, max_value)
    return Grid.from_samples(width, height, max_value, samples, magic)


def write_image(path: Path, grid: Grid) -> None:
    """ASCII PGM 쓰기. 한 행을 한 줄로, 각 화소는 '%3d ' 형식."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    width, height, max_value, samples = grid.to_samples()
    lines = [grid.magic, f'{width} {height}', str(max_value)]
    for i in range(height):
        row = samples[i * width:(i + 1) * width]
        lines.append(''.join(f'{v:3d} ' for v in row))
    path.write_text('\n'.join(lines) + '\n', encoding='ascii')
    get_logger().debug('[DBG_IO] wrote %s', str(path))
