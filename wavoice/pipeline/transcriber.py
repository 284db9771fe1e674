"""
오디오 전사 오케스트레이터 모듈입니다.

역할:
- 첨부 하나(바이트 + 파일 이름)를 받아 최종 전사 문자열 반환
- 크기/형식에 따라 직접 업로드, 단일 패스 재인코딩, 청크 분할 중 경로 선택
- 진행률 콜백 호출
- 모든 실패를 '[Audio transcription failed: ...]' 문자열로 변환 (예외를 던지지 않음)

처리 흐름:
    크기 확인 (25MiB 초과 시 진행률만 보고)
        ├─ .opus 또는 상한 초과 → 처리 경로
        │     디코딩 → 전략 선택
        │        ├─ 분할 → 청크별 업로드 (실패 청크는 표식) → 조립
        │        └─ 단일 패스: 리샘플 → 정규화 → 압축 → 인코딩
        │              └─ 여전히 상한 초과 → 원본 버퍼 분할로 전환
        └─ 그 외 → 직접 경로 (원본 바이트 그대로 업로드)

사용 예시:
    >>> async with AudioTranscriber(config) as transcriber:
    ...     text = await transcriber.transcribe_audio(data, "PTT-0001.opus", api_key)
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import PurePath
from typing import Optional, Protocol

from wavoice.audio import (
    DecodedBuffer,
    EncodedPayload,
    EncodingOverflowError,
    ProcessingPlan,
    ProgressCallback,
    report_progress,
    wav_upload_name,
)
from wavoice.audio.conditioner import calculate_peak, compress, normalize
from wavoice.audio.decoder import AudioDecoder
from wavoice.audio.partitioner import partition
from wavoice.audio.resampler import resample_mixdown
from wavoice.audio.strategy import is_within_upload_limit, select_strategy
from wavoice.audio.wav_encoder import encode_wav
from wavoice.config.schema import AppConfig
from wavoice.stt.whisper_client import WhisperClient
from wavoice.transcript.assembler import assemble

logger = logging.getLogger(__name__)

# 직접 경로에서 MIME 타입을 추측하지 못했을 때 사용
_FALLBACK_CONTENT_TYPE = "audio/mpeg"

# 진행률 구간 (청크 업로드: 60% ~ 90%)
_UPLOAD_PROGRESS_BASE = 60.0
_UPLOAD_PROGRESS_SPAN = 30.0
_LARGE_FILE_PROGRESS = 50.0


class Decoder(Protocol):
    async def decode(self, data: bytes, file_name: str) -> DecodedBuffer: ...


class Transcriber(Protocol):
    async def transcribe(self, payload: EncodedPayload, api_key: str) -> str: ...


class AudioTranscriber:
    """
    첨부 하나를 전사하는 오케스트레이터입니다.

    decoder/client를 주입하지 않으면 설정으로 AudioDecoder / WhisperClient를 생성합니다.
    내부에서 생성한 WhisperClient는 aclose()에서 정리합니다.

    파라미터:
        config: AppConfig 인스턴스
        decoder: 오디오 디코더 (테스트 더블 주입용)
        client: 전사 클라이언트 (테스트 더블 주입용)
    """

    def __init__(
        self,
        config: AppConfig,
        decoder: Optional[Decoder] = None,
        client: Optional[Transcriber] = None,
    ) -> None:
        self._config = config
        self._max_upload_bytes = config.audio.max_upload_bytes
        self._partition_cfg = config.audio.partition
        self._decoder = decoder or AudioDecoder(ffmpeg_path=config.audio.ffmpeg_path)
        self._owned_client: Optional[WhisperClient] = None
        if client is None:
            self._owned_client = WhisperClient(config)
            client = self._owned_client
        self._client = client

    async def __aenter__(self) -> "AudioTranscriber":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.aclose()

    async def transcribe_audio(
        self,
        data: bytes,
        file_name: str,
        api_key: str,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        첨부 하나를 전사합니다.

        파라미터:
            data: 원본 오디오 바이트
            file_name: 원본 파일 이름
            api_key: 전사 서비스 인증 키
            progress: 진행률 콜백 (선택)

        반환값:
            str: 전사 텍스트, 또는 '[Audio transcription failed: <메시지>]'
        """
        try:
            return await self._transcribe(data, file_name, api_key, progress)
        except Exception as exc:
            logger.error(f"오디오 전사 실패: {file_name}, 오류: {exc}", exc_info=True)
            return f"[Audio transcription failed: {exc}]"

    # =========================================================================
    # 내부 처리 메서드
    # =========================================================================

    async def _transcribe(
        self,
        data: bytes,
        file_name: str,
        api_key: str,
        progress: Optional[ProgressCallback],
    ) -> str:
        oversize = not is_within_upload_limit(len(data), self._max_upload_bytes)
        if oversize:
            logger.info(
                f"대용량 오디오 감지: {file_name} "
                f"({len(data) / (1024 * 1024):.2f}MB)"
            )
            report_progress(
                progress,
                _LARGE_FILE_PROGRESS,
                f"Large audio file detected. Processing {file_name}...",
            )

        if oversize or _is_opus(file_name):
            return await self._process_path(data, file_name, api_key, progress)

        return await self._direct_path(data, file_name, api_key)

    async def _direct_path(self, data: bytes, file_name: str, api_key: str) -> str:
        """원본 바이트를 그대로 업로드합니다."""
        content_type = mimetypes.guess_type(file_name)[0] or _FALLBACK_CONTENT_TYPE
        payload = EncodedPayload(
            data=data,
            upload_name=PurePath(file_name).name,
            content_type=content_type,
        )
        logger.info(f"직접 업로드: {file_name} ({content_type})")
        return await self._client.transcribe(payload, api_key)

    async def _process_path(
        self,
        data: bytes,
        file_name: str,
        api_key: str,
        progress: Optional[ProgressCallback],
    ) -> str:
        """디코딩 후 단일 패스 또는 분할 경로로 처리합니다."""
        buffer = await self._decoder.decode(data, file_name)
        logger.info(
            f"디코딩 완료: {file_name}, {buffer.sample_rate}Hz, "
            f"{buffer.channel_count}ch, {buffer.duration:.1f}s"
        )

        plan = select_strategy(
            len(data),
            buffer.duration,
            buffer.sample_rate,
            max_upload_bytes=self._max_upload_bytes,
        )

        if plan.use_partitioning:
            return await self._partition_path(buffer, file_name, api_key, progress)

        try:
            payload = self._single_pass(buffer, file_name, plan)
        except EncodingOverflowError as exc:
            logger.warning(f"단일 패스 결과가 상한 초과, 분할로 전환: {file_name} ({exc})")
            return await self._partition_path(buffer, file_name, api_key, progress)

        return await self._client.transcribe(payload, api_key)

    def _single_pass(
        self,
        buffer: DecodedBuffer,
        file_name: str,
        plan: ProcessingPlan,
    ) -> EncodedPayload:
        """
        리샘플 → 정규화 → 압축 → 인코딩으로 단일 페이로드를 만듭니다.

        에러:
            EncodingOverflowError: 인코딩 결과가 업로드 상한 초과
        """
        if plan.truncated:
            logger.warning(
                f"오디오 길이 {buffer.duration:.0f}s가 최대 {plan.max_duration_sec}s를 "
                f"넘어 뒷부분이 잘립니다: {file_name}"
            )

        samples = resample_mixdown(buffer, plan.target_sample_rate, plan.max_duration_sec)
        normalize(samples)
        compress(samples, plan.compression_factor)
        rate = min(plan.target_sample_rate, buffer.sample_rate)
        data = encode_wav(samples, rate, plan.bit_depth)

        logger.info(
            f"단일 패스 인코딩: {file_name}, {rate}Hz/{plan.bit_depth}bit, "
            f"peak={calculate_peak(samples):.2f}, {len(data) / (1024 * 1024):.2f}MB"
        )

        if not is_within_upload_limit(len(data), self._max_upload_bytes):
            raise EncodingOverflowError(len(data), self._max_upload_bytes)

        return EncodedPayload(data=data, upload_name=wav_upload_name(file_name))

    async def _partition_path(
        self,
        buffer: DecodedBuffer,
        file_name: str,
        api_key: str,
        progress: Optional[ProgressCallback],
    ) -> str:
        """
        원본 버퍼를 분할하여 청크별로 전사하고 조립합니다.

        청크 하나의 실패는 종류와 관계없이 해당 위치의 표식으로 남기고
        나머지 청크를 계속 전사합니다.
        """
        result = partition(
            buffer,
            file_name,
            progress=progress,
            sample_rate=self._partition_cfg.sample_rate,
            max_chunk_duration_sec=self._partition_cfg.max_chunk_duration_sec,
            min_chunk_duration_sec=self._partition_cfg.min_chunk_duration_sec,
            max_chunk_bytes=self._partition_cfg.max_chunk_bytes,
        )

        fragments: list[str] = []
        for i, chunk in enumerate(result.chunks):
            report_progress(
                progress,
                _UPLOAD_PROGRESS_BASE + (i / result.chunk_count) * _UPLOAD_PROGRESS_SPAN,
                f"Transcribing chunk {i + 1}/{result.chunk_count}...",
            )
            try:
                fragments.append(await self._client.transcribe(chunk, api_key))
            except Exception as exc:
                logger.error(f"청크 {i + 1}/{result.chunk_count} 전사 실패: {exc}")
                fragments.append(f"[Error with part {i + 1}: {exc}]")

        transcript = assemble(fragments)
        logger.info(
            f"분할 전사 완료: {file_name}, {result.chunk_count}개 청크, {len(transcript)}자"
        )
        return transcript


async def transcribe_audio(
    data: bytes,
    file_name: str,
    api_key: str,
    progress: Optional[ProgressCallback] = None,
    config: Optional[AppConfig] = None,
) -> str:
    """
    기본 설정으로 첨부 하나를 전사하는 편의 함수입니다.

    반환값:
        str: 전사 텍스트 또는 실패 표식 (예외를 던지지 않음)
    """
    async with AudioTranscriber(config or AppConfig()) as transcriber:
        return await transcriber.transcribe_audio(data, file_name, api_key, progress)


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _is_opus(file_name: str) -> bool:
    return file_name.lower().endswith(".opus")

