"""
STT 모듈 패키지

공통 에러:
- TranscriptionError: 전사 서비스 호출 실패 (HTTP 상태 코드 포함 가능)
"""

from typing import Optional


class TranscriptionError(Exception):
    """
    전사 요청이 실패했을 때 발생하는 에러입니다.

    필드:
        status_code: 서비스가 돌려준 HTTP 상태 코드 (전송 실패 시 None)
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """전송 실패, 429, 5xx만 재시도 대상입니다."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
