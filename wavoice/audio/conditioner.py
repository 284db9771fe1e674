"""
모노 샘플 배열용 신호 처리 모듈입니다.

역할:
- 피크 정규화: 최대 진폭을 0.8로 맞춤 (20% headroom)
- 하드니 다이내믹 레인지 압축: 임계값 0.5 초과분만 ratio로 나눔
- 피크 레벨 계산 (로그용)

모든 변환은 배열을 제자리(in-place)에서 수정합니다.
무음(전부 0) 입력은 그대로 0으로 남습니다.

사용 예시:
    >>> normalize(samples)
    >>> compress(samples, compression_factor=3)
"""

from __future__ import annotations

import numpy as np

# 정규화 목표 피크
NORMALIZE_TARGET_PEAK = 0.8

# 압축 임계값 및 기본 ratio (ratio = 2 + compression_factor)
COMPRESSOR_THRESHOLD = 0.5
_COMPRESSOR_BASE_RATIO = 2


def normalize(samples: np.ndarray) -> None:
    """
    피크가 0.8이 되도록 배열 전체에 같은 배율을 곱합니다.

    피크가 0이면(무음) 아무것도 하지 않습니다.

    파라미터:
        samples: float32 모노 배열 (제자리 수정)
    """
    if samples.size == 0:
        return
    peak = float(np.max(np.abs(samples)))
    if peak > 0:
        # float64로 곱함: 피크가 정확히 float32(0.8), 재적용 시 샘플 불변
        samples[:] = samples.astype(np.float64) * (NORMALIZE_TARGET_PEAK / peak)


def compress(samples: np.ndarray, compression_factor: int) -> None:
    """
    임계값을 넘는 샘플만 압축하는 메모리 없는(sample-wise) 컴프레서입니다.

    |x| > 0.5 인 샘플: |x'| = 0.5 + (|x| - 0.5) / (2 + compression_factor), 부호 유지.
    compression_factor < 2 이면 아무것도 하지 않습니다.

    파라미터:
        samples: float32 모노 배열 (제자리 수정)
        compression_factor: 압축 강도 (1~5)
    """
    if compression_factor < 2 or samples.size == 0:
        return

    ratio = _COMPRESSOR_BASE_RATIO + compression_factor
    magnitude = np.abs(samples)
    over = magnitude > COMPRESSOR_THRESHOLD
    if not np.any(over):
        return

    compressed = COMPRESSOR_THRESHOLD + (magnitude[over] - COMPRESSOR_THRESHOLD) / ratio
    samples[over] = np.copysign(compressed, samples[over]).astype(samples.dtype)


def calculate_peak(samples: np.ndarray) -> float:
    """최대 절대 진폭을 반환합니다 (빈 배열은 0.0)."""
    if samples.size == 0:
        return 0.0
    return float(np.max(np.abs(samples)))

