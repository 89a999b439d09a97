import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from pythonjsonlogger import jsonlogger

from src.common.config.settings import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logging(log_file_name: str = "app.log") -> logging.Logger:
    """
    로깅 설정

    개발 환경에서는 DEBUG, 그 외에는 LOG_LEVEL 을 사용합니다.
    LOG_FORMAT=json 이면 JSON 포맷터를 사용합니다.
    """
    level = logging.DEBUG if settings.APP_ENV == "development" else settings.LOG_LEVEL

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_file = os.path.join(settings.LOG_DIR, log_file_name)

    if settings.LOG_FORMAT == "json":
        formatter = jsonlogger.JsonFormatter(JSON_LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    else:
        formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    file_handler = RotatingFileHandler(log_file, maxBytes=5*1024*1024, backupCount=2, encoding='utf-8')
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 기존 핸들러 제거
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.addHandler(stream_handler)
    root_logger.addHandler(file_handler)

    # 서드파티 라이브러리 로깅 레벨 조정
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('telegram').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    return root_logger
