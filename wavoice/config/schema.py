"""
wavoice 설정 스키마 정의 모듈입니다.

역할:
- Pydantic v2 BaseModel 기반으로 config.yaml의 전체 구조를 타입 안전하게 정의
- 각 섹션(system, audio, stt, archive, export)을 독립적인 중첩 모델로 분리
- 필드별 기본값, 허용 범위, 유효성 검증(validator)을 포함

사용 예시:
    >>> from wavoice.config.schema import AppConfig
    >>> config = AppConfig(**yaml_data)
    >>> print(config.stt.endpoint)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

# 모듈 로거 설정
logger = logging.getLogger(__name__)


# =============================================================================
# system 섹션: 시스템 전역 설정
# =============================================================================

class SystemConfig(BaseModel):
    """
    시스템 전역 설정을 정의하는 모델입니다.

    역할:
    - 로깅 레벨 및 포맷 지정
    - 세션 식별자 관리
    """
    # 로그 출력 레벨
    log_level: str = Field(default="INFO", description="로그 레벨 (DEBUG | INFO | WARNING | ERROR)")
    # 로그 출력 포맷
    log_format: str = Field(default="text", description="로그 포맷 (json | text)")
    # 로그 파일 저장 디렉토리 경로
    log_dir: str = Field(default="output/logs", description="로그 저장 디렉토리")
    # 세션 고유 식별자 (빈 문자열이면 UUID로 자동 생성)
    session_id: str = Field(default="", description="세션 ID (비어있으면 UUID 자동생성)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """로그 레벨이 유효한 Python 로깅 레벨인지 검증합니다."""
        allowed_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        # 대소문자 구분 없이 비교 후 대문자로 정규화
        upper_value = value.upper()
        if upper_value not in allowed_levels:
            error_message = f"log_level은 {allowed_levels} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """로그 포맷이 지원되는 형식인지 검증합니다."""
        allowed_formats = ("json", "text")
        if value not in allowed_formats:
            error_message = f"log_format은 {allowed_formats} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return value


# =============================================================================
# audio 섹션: 업로드 크기 제한 및 분할 설정
# =============================================================================

class PartitionConfig(BaseModel):
    """
    긴 오디오를 여러 청크로 분할할 때의 설정입니다.

    역할:
    - 청크 출력 샘플링레이트 지정 (모든 청크 공통)
    - 청크 길이의 상한/하한 지정
    - 청크 개수 추정에 쓰는 크기 예산 지정
    """
    # 청크 출력 샘플링레이트 (Hz)
    sample_rate: int = Field(default=16000, description="청크 샘플링레이트 (Hz)")
    # 청크 최대 길이 (초)
    max_chunk_duration_sec: float = Field(default=360.0, description="청크 최대 길이 (초)")
    # 청크 최소 길이 (초)
    min_chunk_duration_sec: float = Field(default=120.0, description="청크 최소 길이 (초)")
    # 청크 개수 추정용 크기 예산 (바이트, float32 기준)
    max_chunk_bytes: int = Field(default=20 * 1024 * 1024, description="청크 크기 예산 (바이트)")

    @field_validator("sample_rate")
    @classmethod
    def validate_sample_rate(cls, value: int) -> int:
        """샘플링레이트가 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"sample_rate는 양수여야 합니다. 입력값: {value}")
        return value


class AudioConfig(BaseModel):
    """
    오디오 전처리 설정을 정의하는 모델입니다.

    역할:
    - 전사 서비스 업로드 크기 상한 지정
    - 분할 하위 설정 포함
    - 디코딩 fallback용 ffmpeg 실행 파일 경로 지정
    """
    # 전사 서비스 업로드 크기 상한 (바이트, 기본 25MiB)
    max_upload_bytes: int = Field(default=25 * 1024 * 1024, description="업로드 크기 상한 (바이트)")
    # 분할 설정
    partition: PartitionConfig = Field(default_factory=PartitionConfig, description="분할 설정")
    # ffmpeg 실행 파일 경로 (libsndfile이 열지 못하는 컨테이너용)
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg 실행 파일 경로")

    @field_validator("max_upload_bytes")
    @classmethod
    def validate_max_upload_bytes(cls, value: int) -> int:
        """업로드 상한이 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"max_upload_bytes는 양수여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# stt 섹션: 전사 서비스(HTTP) 설정
# =============================================================================

class STTConfig(BaseModel):
    """
    원격 음성 전사 서비스 연결 설정입니다.

    역할:
    - 엔드포인트 URL 및 모델 식별자 관리
    - 타임아웃, 재시도 전략 설정
    """
    # 전사 API 엔드포인트 URL
    endpoint: str = Field(
        default="https://api.openai.com/v1/audio/transcriptions",
        description="전사 API 엔드포인트",
    )
    # 전사 모델 식별자
    model: str = Field(default="whisper-1", description="모델 식별자")
    # API 인증 키 (환경변수 WAVOICE_STT_API_KEY 사용 권장)
    api_key: str = Field(default="", description="API 인증 키")
    # HTTP 요청 타임아웃 (초)
    timeout_sec: float = Field(default=300.0, description="HTTP 타임아웃 (초)")
    # 실패 시 재시도 횟수 (0이면 재시도하지 않음)
    max_retries: int = Field(default=0, description="재시도 횟수 (0=재시도 안 함)")
    # 재시도 backoff 기본 대기 시간 (초)
    retry_backoff_base_sec: float = Field(default=1.0, description="재시도 backoff 기본값 (초)")
    # 재시도 backoff 최대 대기 시간 (초)
    retry_backoff_max_sec: float = Field(default=16.0, description="재시도 backoff 최대값 (초)")

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, value: int) -> int:
        """재시도 횟수가 0~10 범위인지 검증합니다."""
        if not 0 <= value <= 10:
            raise ValueError(f"max_retries는 0~10 범위여야 합니다. 입력값: {value}")
        return value

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """타임아웃이 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"timeout_sec는 양수여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# archive 섹션: 채팅 내보내기 압축 파일 설정
# =============================================================================

class ArchiveConfig(BaseModel):
    """
    WhatsApp 채팅 내보내기(zip)에서 음성 첨부를 찾는 규칙입니다.
    """
    # 오디오로 간주할 확장자 (소문자, 점 제외)
    audio_extensions: list[str] = Field(
        default=["opus", "mp3", "m4a", "wav", "ogg"],
        description="오디오 확장자 목록",
    )
    # 파일 이름에 포함되면 오디오로 간주할 문자열
    name_markers: list[str] = Field(default=["PTT-", "audio"], description="오디오 파일 이름 표식")

    @field_validator("audio_extensions")
    @classmethod
    def normalize_extensions(cls, value: list[str]) -> list[str]:
        """확장자를 소문자, 점 없는 형태로 정규화합니다."""
        return [ext.lower().lstrip(".") for ext in value]


# =============================================================================
# export 섹션: 전사 결과 저장 설정
# =============================================================================

class ExportConfig(BaseModel):
    """
    전사 결과 파일 저장 설정입니다.
    """
    # 결과 출력 디렉토리
    output_dir: str = Field(default="output/transcripts", description="결과 출력 디렉토리")
    # JSON 매핑 저장 여부
    write_json: bool = Field(default=True, description="JSON 저장 여부")
    # 텍스트 목록 저장 여부
    write_text: bool = Field(default=True, description="텍스트 저장 여부")
    # JSON 파일 이름
    json_filename: str = Field(default="transcripts.json", description="JSON 파일 이름")
    # 텍스트 파일 이름
    text_filename: str = Field(default="transcripts.txt", description="텍스트 파일 이름")


# =============================================================================
# 최상위 AppConfig: 모든 섹션을 통합하는 루트 모델
# =============================================================================

class AppConfig(BaseModel):
    """
    애플리케이션 전체 설정을 통합하는 최상위 모델입니다.

    역할:
    - config.yaml의 모든 섹션을 하나의 타입 안전한 객체로 통합
    - 각 섹션이 누락된 경우 기본값으로 자동 생성

    사용 예시:
        >>> import yaml
        >>> with open("config.yaml") as f:
        ...     raw = yaml.safe_load(f)
        >>> config = AppConfig(**raw)
        >>> print(config.audio.max_upload_bytes)
        26214400
    """
    # 시스템 전역 설정
    system: SystemConfig = Field(default_factory=SystemConfig, description="시스템 설정")
    # 오디오 전처리 설정
    audio: AudioConfig = Field(default_factory=AudioConfig, description="오디오 설정")
    # 전사 서비스 설정
    stt: STTConfig = Field(default_factory=STTConfig, description="STT 설정")
    # 압축 파일 탐색 설정
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig, description="압축 파일 설정")
    # 결과 저장 설정
    export: ExportConfig = Field(default_factory=ExportConfig, description="저장 설정")
