"""
PCM WAV 인코더 모듈입니다.

역할:
- float32 샘플 버퍼를 44바이트 RIFF/WAVE 헤더 + PCM 데이터로 직렬화
- 8비트(unsigned, 무음=128) / 16비트(signed little-endian) 지원
- 큰 버퍼도 일정 크기 윈도우 단위로 변환하여 임시 메모리 사용량 제한

데이터 영역은 채널 순서대로 이어붙입니다 (채널 0 전체, 채널 1 전체, ...).
파이프라인에서는 항상 모노만 인코딩하므로 인터리브 배치와 결과가 같습니다.

사용 예시:
    >>> wav_bytes = encode_wav(mono, 16000, 16)
"""

from __future__ import annotations

import logging
import struct

import numpy as np

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44

# 윈도우 크기 (샘플 수)
_WINDOW_SAMPLES = {8: 16384, 16: 8192}


def encode_wav(samples: np.ndarray, sample_rate: int, bit_depth: int) -> bytes:
    """
    샘플 배열을 WAV 바이트로 인코딩합니다.

    파라미터:
        samples: shape=(샘플,) 모노 또는 shape=(채널, 샘플) float32 배열
        sample_rate: 샘플링레이트 (Hz)
        bit_depth: 8 또는 16

    반환값:
        bytes: 44 + 채널 수 × 샘플 수 × (bit_depth / 8) 바이트

    에러:
        ValueError: bit_depth가 8/16이 아닐 때
    """
    if bit_depth not in _WINDOW_SAMPLES:
        raise ValueError(f"지원하지 않는 비트뎁스: {bit_depth} (8 또는 16만 가능)")

    data = np.asarray(samples, dtype=np.float32)
    if data.ndim == 1:
        data = data.reshape(1, -1)

    channel_count, length = data.shape
    bytes_per_sample = bit_depth // 8
    data_size = channel_count * length * bytes_per_sample

    header = build_wav_header(sample_rate, channel_count, bit_depth, data_size)

    window = _WINDOW_SAMPLES[bit_depth]
    converter = _to_uint8 if bit_depth == 8 else _to_int16_le
    parts: list[bytes] = [header]
    for channel in data:
        for start in range(0, length, window):
            parts.append(converter(channel[start:start + window]))

    encoded = b"".join(parts)
    logger.debug(
        f"WAV 인코딩: {channel_count}ch, {sample_rate}Hz, {bit_depth}bit, "
        f"{length}samples → {len(encoded)}bytes"
    )
    return encoded


def build_wav_header(
    sample_rate: int,
    channel_count: int,
    bit_depth: int,
    data_size: int,
) -> bytes:
    """
    표준 44바이트 PCM WAV 헤더를 생성합니다.

    파라미터:
        sample_rate: 샘플링레이트 (Hz)
        channel_count: 채널 수
        bit_depth: 샘플당 비트 수
        data_size: data 청크 바이트 수

    반환값:
        bytes: 44바이트 헤더
    """
    block_align = channel_count * (bit_depth // 8)
    byte_rate = sample_rate * block_align
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,             # fmt 청크 크기
        1,              # PCM
        channel_count,
        sample_rate,
        byte_rate,
        block_align,
        bit_depth,
        b"data",
        data_size,
    )


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _to_uint8(window: np.ndarray) -> bytes:
    """[-1, 1] → [0, 255] unsigned, 0.5는 올림 후 클램핑"""
    scaled = np.floor((window.astype(np.float64) + 1.0) / 2.0 * 255.0 + 0.5)
    return np.clip(scaled, 0, 255).astype(np.uint8).tobytes()


def _to_int16_le(window: np.ndarray) -> bytes:
    """[-1, 1] 클램핑 후 음수는 ×0x8000, 양수는 ×0x7FFF, 0 방향 절삭"""
    clipped = np.clip(window.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    return np.trunc(scaled).astype("<i2").tobytes()
