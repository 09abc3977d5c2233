from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .types import VERSION

_LOGGER_NAME = 'pgmproc'
_FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s.%(module)s: %(message)s'
# 메시지 자체에 [INFO]/[FAIL] 태그가 있으므로 콘솔은 메시지만 출력
_CONSOLE_FORMAT = '%(message)s'

_logger: Optional[logging.Logger] = None


def _console_handler(level: int) -> logging.Handler:
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return ch


def _reset_handlers(logger: logging.Logger) -> None:
    while logger.handlers:
        handler = logger.handlers.pop()
        handler.close()


def init_logger(
    log_path: Optional[Path],
    console_level: Optional[int] = logging.INFO,
    file_level: int = logging.DEBUG,
) -> logging.Logger:
    """pgmproc 로거 (재)초기화.

    - log_path 가 주어지면 실행마다 새로 쓰는 파일 로그 (module 이름 포함)
    - console_level 이 None 이 아니면 콘솔 출력
    - 첫 줄에 패키지 버전을 기록하여 report.json 과 대조 가능하게 함
    """
    global _logger
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    _reset_handlers(logger)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), mode='w', encoding='utf-8')
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    if console_level is not None:
        logger.addHandler(_console_handler(console_level))

    _logger = logger
    logger.debug('[DBG_LOG] pgmproc %s, log file: %s', VERSION, str(log_path) if log_path else None)
    return logger


def get_logger() -> logging.Logger:
    global _logger
    if _logger is not None:
        return _logger
    # init_logger 호출 전 (라이브러리로 import 된 경우) 에는 콘솔 전용 로거로 동작
    logger = logging.getLogger(_LOGGER_NAME)
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)
        logger.addHandler(_console_handler(logging.INFO))
    _logger = logger
    return logger
