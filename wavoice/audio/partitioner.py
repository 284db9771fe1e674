"""
긴 오디오 청크 분할 모듈입니다.

역할:
- 원본 디코딩 버퍼를 거의 같은 길이의 구간으로 나눔
- 각 구간을 16kHz 모노로 매핑 → 정규화 → 16비트 WAV 인코딩
- 청크마다 진행률 콜백 호출 (50~60% 구간)

청크 수 결정:
    count = max(ceil(길이 / 360s), ceil(N × C × 4 / 20MiB))
    평균 청크 길이 < 120s 이고 전체 > 120s 이면 count = floor(길이 / 120s)
    전체 ≤ 120s 이면 count = 1 (count는 항상 1 이상)

사용 예시:
    >>> result = partition(buffer, "PTT-0001.opus", progress=on_progress)
    >>> len(result.chunks) == result.chunk_count
    True
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from wavoice.audio import (
    DecodedBuffer,
    EncodedPayload,
    PartitionResult,
    ProgressCallback,
    report_progress,
    wav_upload_name,
)
from wavoice.audio.conditioner import normalize
from wavoice.audio.resampler import mixdown_range
from wavoice.audio.wav_encoder import encode_wav

logger = logging.getLogger(__name__)

# 기본 분할 파라미터 (config.audio.partition과 동일한 기본값)
CHUNK_SAMPLE_RATE = 16000
MAX_CHUNK_DURATION_SEC = 360
MIN_CHUNK_DURATION_SEC = 120
MAX_CHUNK_BYTES = 20 * 1024 * 1024

# 진행률 구간 (50% ~ 60%)
_PROGRESS_BASE = 50.0
_PROGRESS_SPAN = 10.0


def compute_chunk_count(
    duration: float,
    length: int,
    channel_count: int,
    max_chunk_duration_sec: float = MAX_CHUNK_DURATION_SEC,
    min_chunk_duration_sec: float = MIN_CHUNK_DURATION_SEC,
    max_chunk_bytes: int = MAX_CHUNK_BYTES,
) -> int:
    """
    청크 수를 계산합니다.

    크기 기준은 float32 원본 추정치(N × C × 4 바이트)를 사용합니다.

    파라미터:
        duration: 전체 길이 (초)
        length: 채널당 샘플 수
        channel_count: 채널 수
        max_chunk_duration_sec: 청크 최대 길이
        min_chunk_duration_sec: 청크 최소 길이
        max_chunk_bytes: 청크 크기 기준 (바이트)

    반환값:
        int: 1 이상의 청크 수
    """
    if duration <= min_chunk_duration_sec:
        return 1

    chunk_count = max(
        math.ceil(duration / max_chunk_duration_sec),
        math.ceil(length * channel_count * 4 / max_chunk_bytes),
    )

    if duration / chunk_count < min_chunk_duration_sec:
        chunk_count = math.floor(duration / min_chunk_duration_sec)

    return max(chunk_count, 1)


def partition(
    buffer: DecodedBuffer,
    file_name: str,
    progress: Optional[ProgressCallback] = None,
    sample_rate: int = CHUNK_SAMPLE_RATE,
    max_chunk_duration_sec: float = MAX_CHUNK_DURATION_SEC,
    min_chunk_duration_sec: float = MIN_CHUNK_DURATION_SEC,
    max_chunk_bytes: int = MAX_CHUNK_BYTES,
) -> PartitionResult:
    """
    디코딩 버퍼를 청크 WAV 페이로드 목록으로 분할합니다.

    파라미터:
        buffer: 원본 디코딩 버퍼 (단일 패스로 줄인 버퍼가 아님)
        file_name: 원본 파일 이름 (업로드 이름 생성용)
        progress: 진행률 콜백 (선택)
        sample_rate: 청크 출력 샘플링레이트
        max_chunk_duration_sec / min_chunk_duration_sec / max_chunk_bytes:
            compute_chunk_count() 참조

    반환값:
        PartitionResult: 순서대로 정렬된 청크 목록
    """
    duration = buffer.duration
    chunk_count = compute_chunk_count(
        duration,
        buffer.length,
        buffer.channel_count,
        max_chunk_duration_sec=max_chunk_duration_sec,
        min_chunk_duration_sec=min_chunk_duration_sec,
        max_chunk_bytes=max_chunk_bytes,
    )

    logger.info(
        f"오디오 분할 시작: {file_name}, 길이={duration:.0f}s, 청크 수={chunk_count}"
    )

    chunk_duration = duration / chunk_count
    samples_per_chunk = math.floor(chunk_duration * sample_rate)
    source_samples_per_chunk = math.floor(chunk_duration * buffer.sample_rate)

    result = PartitionResult(
        file_name=file_name,
        chunk_count=chunk_count,
        total_duration=duration,
    )

    for i in range(chunk_count):
        report_progress(
            progress,
            _PROGRESS_BASE + (i / chunk_count) * _PROGRESS_SPAN,
            f"Processing audio chunk {i + 1}/{chunk_count}...",
        )

        start = i * source_samples_per_chunk
        end = min((i + 1) * source_samples_per_chunk, buffer.length)

        samples = mixdown_range(buffer, start, end, samples_per_chunk)
        normalize(samples)
        data = encode_wav(samples, sample_rate, 16)

        result.chunks.append(
            EncodedPayload(
                data=data,
                upload_name=wav_upload_name(file_name, i + 1),
                index=i + 1,
                total=chunk_count,
            )
        )
        logger.debug(
            f"청크 {i + 1}/{chunk_count} 인코딩 완료: "
            f"{len(data) / (1024 * 1024):.2f}MB"
        )

    return result

