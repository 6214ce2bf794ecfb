"""
로깅 설정 유틸
- setup_logging()으로 gemini_ai (+ 선택적으로 httpx) 로거 설정
- text / JSON 포맷
- API key(?key=...)와 Bearer 토큰은 출력 전에 마스킹
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Literal

GEMINI_LOGGER_NAME = "gemini_ai"
HTTPX_LOGGER_NAME = "httpx"

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SECRET_PATTERNS = (
    re.compile(r"([?&]key=)[^&\s'\"]+"),
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-~+/=]+"),
)


def redact(message: str) -> str:
    """URL의 key 파라미터와 Bearer 토큰을 *** 로 치환"""
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(r"\1***", message)
    return message


class RedactSecretsFilter(logging.Filter):
    """레코드 메시지에서 비밀값 제거"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """JSON 구조화 로그 포매터"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, DEFAULT_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(
    level: int | str = logging.INFO,
    format: Literal["text", "json"] = "text",
    stream: object = None,
    include_httpx: bool = False,
) -> logging.Logger:
    """
    gemini_ai 루트 로거를 설정한다.

    Args:
        level: 로그 레벨 (예: logging.DEBUG, "DEBUG")
        format: 로그 포맷 ("text" 또는 "json")
        stream: 출력 스트림 (기본: sys.stderr)
        include_httpx: httpx 요청 로그도 같은 핸들러로 출력 (URL의 key는 마스킹)

    Returns:
        설정된 gemini_ai 루트 로거
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(RedactSecretsFilter())
    if format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        )

    names = [GEMINI_LOGGER_NAME]
    if include_httpx:
        names.append(HTTPX_LOGGER_NAME)

    for name in names:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # 기존 핸들러 제거 (중복 방지)
        logger.handlers.clear()
        logger.addHandler(handler)

    return logging.getLogger(GEMINI_LOGGER_NAME)
