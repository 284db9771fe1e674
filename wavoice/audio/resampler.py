"""
오디오 리샘플러/믹스다운 모듈입니다.

역할:
- N채널 / R_src Hz 버퍼를 1채널 / R_tgt Hz 버퍼로 변환
- 최근접 이웃(nearest-neighbor) 인덱스 매핑과 채널 평균으로 처리
- 최대 길이 초과분은 뒤쪽을 잘라냄 (슬라이딩 윈도우 아님)
- 원본의 일부 구간만 지정 길이로 매핑하는 구간 믹스다운 (청크 분할용)

안티에일리어싱 필터가 없습니다. 음성 전사 용도에서는 충분하며,
필터를 추가하면 전사 결과가 달라지므로 의도적으로 유지합니다.

사용 예시:
    >>> mono = resample_mixdown(buffer, 11025, max_duration_sec=1200)
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from wavoice.audio import DecodedBuffer

logger = logging.getLogger(__name__)


def effective_rate(source_rate: int, target_rate: int) -> int:
    """업샘플링하지 않도록 목표 샘플링레이트를 원본 이하로 제한합니다."""
    return min(int(target_rate), int(source_rate))


def resample_mixdown(
    buffer: DecodedBuffer,
    target_rate: int,
    max_duration_sec: Optional[float] = None,
) -> np.ndarray:
    """
    버퍼를 모노 / target_rate로 변환합니다.

    처리 단계:
    1. 목표 길이 = floor(원본 길이 × 목표 rate / 원본 rate)
    2. 원본 길이가 max_duration_sec를 넘으면 floor(max_duration_sec × 목표 rate)로 절단
    3. 출력 i번째 샘플 = 원본 floor(i × 원본 rate / 목표 rate) 위치의 채널 평균
       (원본 범위를 벗어나는 위치는 0으로 남음)

    파라미터:
        buffer: 디코딩된 원본 버퍼
        target_rate: 목표 샘플링레이트 (Hz, 원본보다 크면 원본으로 제한)
        max_duration_sec: 최대 길이 (초), None이면 제한 없음

    반환값:
        np.ndarray: shape=(samples,) float32 모노 배열
    """
    source_rate = buffer.sample_rate
    source_length = buffer.length
    rate = effective_rate(source_rate, target_rate)

    final_length = (source_length * rate) // source_rate
    if max_duration_sec is not None and buffer.duration > max_duration_sec:
        final_length = int(math.floor(max_duration_sec * rate))
        logger.info(
            f"오디오가 너무 김 ({buffer.duration:.0f}s), "
            f"{max_duration_sec:.0f}s로 절단"
        )

    output = np.zeros(final_length, dtype=np.float32)
    if final_length == 0 or source_length == 0:
        return output

    source_index = (np.arange(final_length, dtype=np.int64) * source_rate) // rate
    valid = source_index < source_length
    output[valid] = _mixdown_to_mono(buffer.channels, source_index[valid])

    logger.debug(
        f"리샘플링: {source_rate}Hz/{buffer.channel_count}ch/{source_length}samples "
        f"→ {rate}Hz/1ch/{final_length}samples"
    )
    return output


def mixdown_range(
    buffer: DecodedBuffer,
    start: int,
    end: int,
    out_length: int,
) -> np.ndarray:
    """
    원본의 [start, end) 구간을 out_length 샘플로 매핑한 모노 배열을 반환합니다.

    출력 j번째 샘플 = 원본 start + floor(j × (end - start) / out_length) 위치의 채널 평균.
    원본 범위를 벗어나는 위치는 0으로 남습니다.

    파라미터:
        buffer: 디코딩된 원본 버퍼
        start: 원본 구간 시작 인덱스 (포함)
        end: 원본 구간 끝 인덱스 (제외)
        out_length: 출력 샘플 수

    반환값:
        np.ndarray: shape=(out_length,) float32 모노 배열
    """
    output = np.zeros(max(out_length, 0), dtype=np.float32)
    if out_length <= 0:
        return output

    span = max(end - start, 0)
    positions = start + (np.arange(out_length, dtype=np.int64) * span) // out_length
    valid = positions < buffer.length
    if np.any(valid):
        output[valid] = _mixdown_to_mono(buffer.channels, positions[valid])
    return output


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _mixdown_to_mono(channels: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    지정 인덱스의 샘플을 모든 채널에 대해 평균합니다.

    파라미터:
        channels: shape=(채널, 샘플) float32 배열
        indices: 가져올 샘플 인덱스 배열

    반환값:
        np.ndarray: shape=(len(indices),) float32 배열
    """
    if channels.shape[0] == 1:
        return channels[0, indices]
    return channels[:, indices].mean(axis=0, dtype=np.float32)
