"""
업로드 크기 추정 및 압축 전략 선택 모듈입니다.

역할:
- 원본 바이트 크기와 디코딩 길이로 압축 강도(compression factor, 1~5)를 계산
- 강도에 따라 샘플링레이트 / 최대 길이 / 비트뎁스 단계를 선택
- 단일 패스 재인코딩과 청크 분할 중 어느 경로를 탈지 결정

강도가 높을수록 샘플링레이트, 최대 길이, 비트뎁스는 같거나 낮아집니다.
I/O와 난수가 없는 순수 함수입니다.

사용 예시:
    >>> plan = select_strategy(30 * 1024 * 1024, 480.0, 44100)
    >>> plan.compression_factor, plan.target_sample_rate, plan.bit_depth
    (2, 11025, 16)
"""

from __future__ import annotations

import logging
import math

from wavoice.audio import ProcessingPlan

logger = logging.getLogger(__name__)

# 전사 서비스 업로드 상한 (25MiB)
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

# 강도 상한
_MAX_COMPRESSION_FACTOR = 5

# 분할 경로 트리거
_PARTITION_SIZE_RATIO = 2.5
_PARTITION_DURATION_SEC = 600

# (최소 강도, 값) 단계표. 위에서부터 처음 만족하는 단계를 사용
_SAMPLE_RATE_LADDER = ((5, 5000), (4, 6000), (3, 8000), (2, 11025), (1, 16000))
_MAX_DURATION_LADDER = ((4, 300), (3, 600), (2, 1200), (1, 1800))
_BIT_DEPTH_LADDER = ((3, 8), (1, 16))


def is_within_upload_limit(byte_length: int, max_upload_bytes: int = MAX_UPLOAD_BYTES) -> bool:
    """바이트 크기가 업로드 상한 이하인지 반환합니다."""
    return byte_length <= max_upload_bytes


def compute_compression_factor(
    original_byte_length: int,
    max_upload_bytes: int = MAX_UPLOAD_BYTES,
) -> int:
    """
    원본 크기 대비 상한 비율로 압축 강도를 계산합니다.

    ceil(ratio)가 0이 되는 빈 파일도 가장 약한 강도 1로 취급합니다.

    파라미터:
        original_byte_length: 원본 바이트 크기
        max_upload_bytes: 업로드 상한

    반환값:
        int: 1~5 압축 강도
    """
    size_ratio = max(original_byte_length, 0) / max_upload_bytes
    return max(1, min(math.ceil(size_ratio), _MAX_COMPRESSION_FACTOR))


def select_strategy(
    original_byte_length: int,
    decoded_duration: float,
    original_sample_rate: int,
    max_upload_bytes: int = MAX_UPLOAD_BYTES,
) -> ProcessingPlan:
    """
    첨부 하나의 압축 전략을 결정합니다.

    파라미터:
        original_byte_length: 원본 바이트 크기
        decoded_duration: 디코딩된 길이 (초)
        original_sample_rate: 원본 샘플링레이트 (Hz)
        max_upload_bytes: 업로드 상한 (기본 25MiB)

    반환값:
        ProcessingPlan: 선택된 전략
    """
    size_ratio = max(original_byte_length, 0) / max_upload_bytes
    factor = compute_compression_factor(original_byte_length, max_upload_bytes)

    use_partitioning = (
        size_ratio > _PARTITION_SIZE_RATIO
        or decoded_duration > _PARTITION_DURATION_SEC
    )

    target_sample_rate = _pick(_SAMPLE_RATE_LADDER, factor)
    # 업샘플링 금지
    if original_sample_rate > 0:
        target_sample_rate = min(target_sample_rate, original_sample_rate)

    max_duration_sec = _pick(_MAX_DURATION_LADDER, factor)
    bit_depth = _pick(_BIT_DEPTH_LADDER, factor)

    plan = ProcessingPlan(
        compression_factor=factor,
        target_sample_rate=target_sample_rate,
        max_duration_sec=max_duration_sec,
        bit_depth=bit_depth,
        use_partitioning=use_partitioning,
        truncated=decoded_duration > max_duration_sec,
    )

    logger.debug(
        f"압축 전략 선택: size_ratio={size_ratio:.2f}, factor={factor}, "
        f"rate={target_sample_rate}Hz, max_duration={max_duration_sec}s, "
        f"bit_depth={bit_depth}, partition={use_partitioning}"
    )
    return plan


def _pick(ladder: tuple[tuple[int, int], ...], factor: int) -> int:
    """강도 이상을 요구하는 첫 단계의 값을 반환합니다."""
    for min_factor, value in ladder:
        if factor >= min_factor:
            return value
    return ladder[-1][1]
