import numpy as np
import pytest

from pgmproc.io.pgm import PgmFormatError, read_image, write_image
from pgmproc.utils.types import Grid


def test_write_format(tmp_path):
    path = tmp_path / 'out.pgm'
    write_image(path, Grid(np.array([[0, 1], [255, 7]]), 255))
    assert path.read_text() == 'P2\n2 2\n255\n  0   1 \n255   7 \n'


def test_read_with_comments(tmp_path):
    path = tmp_path / 'in.pgm'
    path.write_text('P2\n# created by hand\n3 1\n# max\n9\n1 2 3 # trailing\n')
    g = read_image(path)
    assert (g.width, g.height, g.max_value) == (3, 1, 9)
    assert g.pixels.tolist() == [[1, 2, 3]]


def test_write_then_read(tmp_path, random_grid):
    path = tmp_path / 'sub' / 'rt.pgm'
    write_image(path, random_grid)
    g = read_image(path)
    assert g.max_value == random_grid.max_value
    assert np.array_equal(g.pixels, random_grid.pixels)


@pytest.mark.parametrize('text', [
    'P5\n2 1\n255\n0 0\n',        # binary PGM
    'P2\n2 1\n',                  # header 부족
    'P2\n2 2\n255\n1 2 3\n',      # 화소 부족
    'P2\n2 1\n9\n1 10\n',         # max 초과
    'P2\n2 1\n0\n0 0\n',          # max 범위 밖
    'P2\n0 1\n255\n',             # 0 크기
    'P2\nx 1\n255\n0\n',          # 숫자가 아님
    'P2\n5000 1\n255\n0\n',       # 크기 상한 초과
])
def test_rejects_malformed(tmp_path, text):
    path = tmp_path / 'bad.pgm'
    path.write_text(text)
    with pytest.raises(PgmFormatError):
        read_image(path)


def test_error_names_offending_pixel(tmp_path):
    path = tmp_path / 'bad.pgm'
    path.write_text('P2\n2 2\n9\n1 2\n3 12\n')
    with pytest.raises(PgmFormatError, match=r'\(1 1\)'):
        read_image(path)


def test_rejects_binary_payload(tmp_path):
    path = tmp_path / 'bin.pgm'
    path.write_bytes(b'P2\n2 1\n255\n\xff\xfe\n')
    with pytest.raises(PgmFormatError):
        read_image(path)
