# -*- coding: utf-8 -*-
import logging
import sys
from pathlib import Path

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# 외부 라이브러리 로그는 WARNING 이상만
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "google_genai")

_configured = False


def setup_logging():
    """루트 로거 설정 (여러 번 호출해도 핸들러는 한 번만 등록)"""
    global _configured
    if _configured:
        return

    log_level = logging.DEBUG if settings.environment == "development" else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if settings.environment == "production":
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "live_quiz.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
