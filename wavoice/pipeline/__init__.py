"""
전사 파이프라인 모듈 패키지

- transcriber: 첨부 하나를 전사하는 오케스트레이터 (예외를 밖으로 던지지 않음)
- batch: 여러 첨부를 순서대로 전사하는 배치 실행기

공통 에러:
- ConfigurationError: 배치 시작 전 설정 오류 (API 키 누락 등)
"""

from wavoice.audio import ProgressCallback


class ConfigurationError(Exception):
    """배치를 시작할 수 없는 설정 오류입니다 (예: 빈 API 키)."""
    pass


__all__ = ["ConfigurationError", "ProgressCallback"]
