"""
Whisper 호환 전사 API 클라이언트 모듈입니다.

역할:
- 페이로드 하나를 multipart/form-data로 업로드 (file, model 필드)
- Bearer 인증 헤더로 API 키 전달
- 성공 응답의 JSON text 필드 반환
- 실패 시 TranscriptionError 발생 (상태 코드 + 서비스 에러 메시지)
- 선택적 재시도: 전송 실패 / 429 / 5xx만, exponential backoff 적용

요청 흐름:
    EncodedPayload → POST {endpoint} (file=<bytes>, model=whisper-1)
                   → 2xx: {"text": "..."} → str
                   → 그 외: {"error": {"message": "..."}} → TranscriptionError

사용 예시:
    >>> client = WhisperClient(config)
    >>> text = await client.transcribe(payload, api_key)
    >>> await client.aclose()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from wavoice.audio import EncodedPayload
from wavoice.config.schema import AppConfig
from wavoice.stt import TranscriptionError

logger = logging.getLogger(__name__)


class WhisperClient:
    """
    전사 서비스 HTTP 클라이언트입니다.

    httpx.AsyncClient를 주입하지 않으면 첫 요청 시 내부에서 생성하고,
    aclose()에서 정리합니다. 주입된 클라이언트는 호출자가 정리합니다.

    파라미터:
        config: AppConfig 인스턴스 (stt 섹션 사용)
        client: 사용할 httpx.AsyncClient (테스트에서 MockTransport 주입용)
    """

    def __init__(
        self,
        config: AppConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._stt_cfg = config.stt
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "WhisperClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """내부에서 생성한 HTTP 클라이언트를 닫습니다."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def transcribe(self, payload: EncodedPayload, api_key: str) -> str:
        """
        페이로드 하나를 전사합니다.

        파라미터:
            payload: 업로드할 페이로드 (25MiB 이하)
            api_key: Bearer 인증 키

        반환값:
            str: 전사 텍스트

        에러:
            TranscriptionError: HTTP 오류 응답, 전송 실패, 잘못된 응답 본문
        """
        max_retries = self._stt_cfg.max_retries
        attempt = 0

        while True:
            try:
                return await self._post(payload, api_key)
            except TranscriptionError as exc:
                if attempt >= max_retries or not exc.retryable:
                    raise
                wait_sec = min(
                    self._stt_cfg.retry_backoff_base_sec * (2 ** attempt),
                    self._stt_cfg.retry_backoff_max_sec,
                )
                attempt += 1
                logger.warning(
                    f"전사 재시도 {attempt}/{max_retries}: {payload.upload_name}, "
                    f"{wait_sec}초 대기 ({exc})"
                )
                await asyncio.sleep(wait_sec)

    # =========================================================================
    # 내부 헬퍼 메서드
    # =========================================================================

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._stt_cfg.timeout_sec)
        return self._client

    async def _post(self, payload: EncodedPayload, api_key: str) -> str:
        """단일 multipart POST 요청을 보내고 응답을 해석합니다."""
        headers = {"Authorization": f"Bearer {api_key}"}
        files = {"file": (payload.upload_name, payload.data, payload.content_type)}
        data = {"model": self._stt_cfg.model}

        logger.info(
            f"전사 요청: {payload.upload_name} "
            f"({payload.size / (1024 * 1024):.2f}MB, {payload.index}/{payload.total})"
        )

        try:
            response = await self._get_client().post(
                self._stt_cfg.endpoint,
                headers=headers,
                files=files,
                data=data,
                timeout=self._stt_cfg.timeout_sec,
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"OpenAI API request failed: {exc}") from exc

        if not response.is_success:
            raise TranscriptionError(
                f"OpenAI API error: {response.status_code} - {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TranscriptionError(
                f"OpenAI API returned invalid JSON: {exc}",
                status_code=response.status_code,
            ) from exc

        text = body.get("text") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise TranscriptionError(
                "OpenAI API response has no text field",
                status_code=response.status_code,
            )

        logger.debug(f"전사 완료: {payload.upload_name}, {len(text)}자")
        return text


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _error_message(response: httpx.Response) -> str:
    """
    오류 응답에서 사람이 읽을 메시지를 뽑습니다.

    우선순위: JSON error.message → HTTP reason phrase → 'Unknown error'
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])

    return response.reason_phrase or "Unknown error"
