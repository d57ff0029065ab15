"""로깅 설정.

uvicorn 과 같은 형식으로 출력하여 서버 로그와 앱 로그가 섞여도 읽기 쉽게 합니다.
"""
import logging
import os

from uvicorn.logging import DefaultFormatter

LOG_LEVEL_ENV = "ARTMARKET_LOG_LEVEL"


def get_logger(name: str, log_level: int = None):
    """`artmarket.*` 이름의 로거를 리턴합니다.

    로그 레벨은 `log_level` 인자, ``ARTMARKET_LOG_LEVEL`` 환경변수, ``INFO``
    순서로 결정됩니다.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        if log_level is None:
            log_level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "INFO"))
        logger.setLevel(log_level)
        ch = logging.StreamHandler()
        ch.setFormatter(DefaultFormatter(fmt="%(levelprefix)s %(name)s: %(message)s"))
        logger.addHandler(ch)

    return logger
