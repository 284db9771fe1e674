"""
오디오 처리 모듈 패키지

공통 데이터 타입:
- DecodedBuffer: 디코딩된 멀티채널 float32 샘플 버퍼
- ProcessingPlan: 원본 크기/길이로부터 계산한 압축 전략
- EncodedPayload: 업로드 가능한 WAV(또는 원본) 바이트와 업로드 파일 이름
- PartitionResult: 분할 처리 결과 (청크 목록)

공통 에러:
- DecodeError: 오디오 바이트를 해석할 수 없음
- EncodingOverflowError: 다운샘플링 후에도 업로드 상한 초과
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

# 진행률 콜백: (퍼센트 0~100, 상태 메시지)
ProgressCallback = Callable[[float, str], None]


class DecodeError(Exception):
    """오디오 바이트를 디코딩할 수 없을 때 발생하는 에러입니다."""
    pass


class EncodingOverflowError(Exception):
    """
    단일 패스 인코딩 결과가 업로드 상한을 넘었을 때 발생하는 에러입니다.

    오케스트레이터가 잡아서 원본 버퍼 분할 경로로 전환합니다.
    """

    def __init__(self, encoded_bytes: int, limit_bytes: int) -> None:
        super().__init__(
            f"인코딩 결과 {encoded_bytes / (1024 * 1024):.2f}MB가 "
            f"상한 {limit_bytes / (1024 * 1024):.2f}MB를 초과합니다"
        )
        self.encoded_bytes = encoded_bytes
        self.limit_bytes = limit_bytes


@dataclass
class DecodedBuffer:
    """
    디코딩된 오디오 버퍼입니다.

    필드:
        channels: shape=(채널 수, 샘플 수) float32 배열. 값은 대체로 -1.0~+1.0이지만
                  인코딩 전까지 클램핑하지 않습니다.
        sample_rate: 샘플링레이트 (Hz, 양수)
    """
    channels: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        data = np.asarray(self.channels, dtype=np.float32)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.ndim != 2 or data.shape[0] == 0:
            raise ValueError(f"channels는 (채널, 샘플) 2차원 배열이어야 합니다: shape={data.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate는 양수여야 합니다: {self.sample_rate}")
        self.channels = data

    @property
    def channel_count(self) -> int:
        return int(self.channels.shape[0])

    @property
    def length(self) -> int:
        """채널당 샘플 수"""
        return int(self.channels.shape[1])

    @property
    def duration(self) -> float:
        """재생 길이 (초)"""
        return self.length / self.sample_rate


@dataclass(frozen=True)
class ProcessingPlan:
    """
    첨부 하나에 대한 압축 전략입니다. strategy.select_strategy()가 생성합니다.

    필드:
        compression_factor: 1~5, 클수록 공격적으로 축소
        target_sample_rate: 단일 패스 출력 샘플링레이트 (원본 이하)
        max_duration_sec: 단일 패스 최대 길이 (초과분은 잘라냄)
        bit_depth: 8 또는 16
        use_partitioning: True이면 단일 패스 대신 청크 분할
        truncated: 원본 길이가 max_duration_sec를 넘어 잘리는지 여부
    """
    compression_factor: int
    target_sample_rate: int
    max_duration_sec: int
    bit_depth: int
    use_partitioning: bool
    truncated: bool = False


@dataclass
class EncodedPayload:
    """
    전사 서비스에 업로드할 페이로드입니다.

    필드:
        data: 업로드 바이트 (처리 경로는 WAV, 직접 경로는 원본)
        upload_name: multipart 파일 이름
        content_type: MIME 타입
        index: 1부터 시작하는 청크 순번 (단일 페이로드는 1)
        total: 부모 파일의 전체 청크 수 (단일 페이로드는 1)
    """
    data: bytes
    upload_name: str
    content_type: str = "audio/wav"
    index: int = 1
    total: int = 1

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class PartitionResult:
    """
    partitioner.partition()의 결과입니다.

    필드:
        file_name: 원본 파일 이름
        chunks: 순서대로 정렬된 청크 페이로드 목록
        chunk_count: 청크 수
        total_duration: 원본 전체 길이 (초)
    """
    file_name: str
    chunks: list[EncodedPayload] = field(default_factory=list)
    chunk_count: int = 0
    total_duration: float = 0.0


def wav_upload_name(file_name: str, chunk_index: Optional[int] = None) -> str:
    """
    처리된 페이로드의 업로드 파일 이름을 만듭니다.

    확장자는 .wav로 바꾸고, 청크이면 'chunk_<n>_' 접두어를 붙입니다.

    >>> wav_upload_name("PTT-0001.opus")
    'PTT-0001.wav'
    >>> wav_upload_name("PTT-0001.opus", 2)
    'chunk_2_PTT-0001.wav'
    """
    stem = PurePath(file_name).stem or "audio"
    name = f"{stem}.wav"
    if chunk_index is not None:
        name = f"chunk_{chunk_index}_{name}"
    return name


def report_progress(progress: Optional[ProgressCallback], percent: float, message: str) -> None:
    """진행률 콜백을 호출합니다. 콜백 예외는 로그만 남기고 무시합니다."""
    if progress is None:
        return
    try:
        progress(percent, message)
    except Exception as exc:
        logger.warning(f"진행률 콜백 실패 (무시): {exc}")
