"""
실행 단위(세션) 로깅 설정 모듈입니다.

역할:
- 콘솔 + <log_dir>/wavoice.log 순환 파일(10MB × 5) 핸들러 구성
- json 포맷: python-json-logger로 한 줄 JSON (session_id, level, module 필드)
- text 포맷: 세션 ID 앞 8자리를 접두어로 붙인 한 줄 텍스트
- 모든 핸들러에서 API 키(sk-...)와 Bearer 토큰을 '***'로 치환

모듈은 logging.getLogger(__name__)를 그대로 사용하고,
main.py가 시작할 때 setup_logging()을 한 번 호출합니다.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
import uuid
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from wavoice.config.schema import AppConfig

LOG_FILENAME = "wavoice.log"
_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 5

_SECRET_PATTERN = re.compile(r"(sk-[A-Za-z0-9_\-]{8,}|Bearer\s+[A-Za-z0-9_\-\.]+)")

# 요청마다 INFO 로그를 남기는 HTTP 라이브러리 로거
_CHATTY_LOGGERS = ("httpx",)


def setup_logging(config: AppConfig, session_id: Optional[str] = None) -> str:
    """
    root 로거를 이번 실행용으로 다시 구성합니다.

    이미 붙어있는 핸들러는 닫고 제거하므로 여러 번 호출해도 핸들러가 쌓이지 않습니다.

    파라미터:
        config: AppConfig 인스턴스 (system 섹션 사용)
        session_id: 세션 식별자. 없으면 config.system.session_id, 그것도 없으면 UUID4

    반환값:
        str: 실제로 사용한 세션 ID
    """
    session = session_id or config.system.session_id or str(uuid.uuid4())
    level = getattr(logging, config.system.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    secret_filter = SecretMaskFilter()
    for handler in _build_handlers(Path(config.system.log_dir), level):
        handler.setFormatter(_make_formatter(config.system.log_format, session))
        handler.addFilter(secret_filter)
        root_logger.addHandler(handler)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        f"로깅 초기화: level={config.system.log_level}, "
        f"format={config.system.log_format}, session={session}"
    )
    return session


def mask_secrets(text: str) -> str:
    """문자열 안의 API 키와 Bearer 토큰을 '***'로 치환합니다."""
    return _SECRET_PATTERN.sub("***", text)


class SecretMaskFilter(logging.Filter):
    """
    레코드 메시지에서 API 키를 가리는 필터입니다.

    치환이 일어나면 record.msg를 포맷 완료된 문자열로 바꾸고 args를 비웁니다.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_secrets(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _build_handlers(log_dir: Path, level: int) -> list[logging.Handler]:
    """콘솔 핸들러와 (가능하면) 순환 파일 핸들러를 만듭니다."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_dir / LOG_FILENAME,
                maxBytes=_MAX_LOG_BYTES,
                backupCount=_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )
    except OSError as exc:
        # 파일 로그 없이 콘솔만으로 계속 진행
        logging.getLogger(__name__).warning(
            f"로그 파일을 열 수 없습니다: {log_dir / LOG_FILENAME} ({exc})"
        )

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def _make_formatter(log_format: str, session_id: str) -> logging.Formatter:
    if log_format == "json":
        return _SessionJsonFormatter(session_id)
    return _SessionTextFormatter(session_id)


class _SessionJsonFormatter(jsonlogger.JsonFormatter):
    """모든 레코드에 session_id를 넣고 levelname/name을 level/module로 내보냅니다."""

    def __init__(self, session_id: str = "") -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            rename_fields={"levelname": "level", "name": "module"},
            static_fields={"session_id": session_id},
            json_ensure_ascii=False,
        )


class _SessionTextFormatter(logging.Formatter):
    def __init__(self, session_id: str = "") -> None:
        prefix = session_id[:8] if session_id else "no-sid"
        super().__init__(
            fmt=f"%(asctime)s [{prefix}] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
