"""
wavoice 실행 설정 로더입니다.

config.yaml → WAVOICE_ 환경변수 → AppConfig 검증 순서로 설정 객체를 만듭니다.
CLI는 실행 시작 시 한 번 로드한 설정을 끝까지 사용합니다.

환경변수 매핑 (접두사 뒤 첫 토큰이 섹션):
    WAVOICE_STT_API_KEY                 -> stt.api_key
    WAVOICE_SYSTEM_LOG_LEVEL            -> system.log_level
    WAVOICE_AUDIO_PARTITION_SAMPLE_RATE -> audio.partition.sample_rate

사용 예시:
    >>> config = ConfigManager().load_or_default("config.yaml")
    >>> config.stt.model
    'whisper-1'
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, ValidationError

from wavoice.config.schema import AppConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "WAVOICE_"


class ConfigLoadError(Exception):
    """설정을 만들 수 없을 때 발생하는 에러의 기본 클래스입니다."""


class ConfigValidationError(ConfigLoadError):
    """값이 AppConfig 스키마를 만족하지 않을 때 발생합니다."""


class ConfigFileNotFoundError(ConfigLoadError):
    """지정한 설정 파일이 없을 때 발생합니다."""


class ConfigManager:
    """
    설정 파일과 환경변수를 합쳐 AppConfig를 만드는 로더입니다.

    파라미터:
        environ: 오버라이드를 읽을 환경변수 매핑 (기본: os.environ)
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

    def load(self, filepath: str | Path) -> AppConfig:
        """
        YAML 파일을 읽어 환경변수를 덮어쓴 뒤 검증된 설정을 반환합니다.

        에러:
            ConfigFileNotFoundError: 파일이 없을 때
            ConfigValidationError: 스키마 검증 실패
            ConfigLoadError: 읽기/YAML 문법 오류, 최상위가 매핑이 아닐 때
        """
        filepath = Path(filepath)
        if not filepath.is_file():
            raise ConfigFileNotFoundError(f"설정 파일을 찾을 수 없습니다: {filepath}")

        config = self._build(self._read_yaml(filepath))
        logger.info(
            f"설정 로드: {filepath} (model={config.stt.model}, "
            f"max_retries={config.stt.max_retries}, output={config.export.output_dir})"
        )
        return config

    def load_or_default(self, filepath: str | Path | None) -> AppConfig:
        """
        파일이 있으면 load()와 같고, 없으면 기본값에 환경변수만 적용합니다.

        파일은 있지만 내용이 잘못된 경우에는 에러를 그대로 전파합니다.
        """
        if filepath is not None and Path(filepath).is_file():
            return self.load(filepath)

        logger.info(f"설정 파일 없음, 기본값 사용: {filepath}")
        return self._build({})

    # =========================================================================
    # 내부 메서드
    # =========================================================================

    def _read_yaml(self, filepath: Path) -> dict:
        try:
            with open(filepath, "r", encoding="utf-8") as config_file:
                raw = yaml.safe_load(config_file)
        except yaml.YAMLError as exc:
            raise ConfigLoadError(f"YAML 문법 오류: {filepath} ({exc})") from exc
        except OSError as exc:
            raise ConfigLoadError(f"설정 파일을 읽을 수 없습니다: {filepath} ({exc})") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigLoadError(
                f"설정 파일 최상위는 섹션 매핑이어야 합니다: {type(raw).__name__}"
            )
        return raw

    def _build(self, raw: dict) -> AppConfig:
        self._apply_env_overrides(raw)
        try:
            return AppConfig(**raw)
        except ValidationError as exc:
            for error in exc.errors():
                field_path = ".".join(str(loc) for loc in error["loc"])
                logger.error(f"설정 값 오류: {field_path}: {error['msg']}")
            raise ConfigValidationError(
                f"설정 검증 실패: {exc.error_count()}개 항목"
            ) from exc

    def _apply_env_overrides(self, raw: dict) -> None:
        """
        WAVOICE_ 환경변수를 raw 딕셔너리에 제자리로 반영합니다.

        값은 문자열 그대로 넣고 숫자/불리언 변환은 Pydantic 검증에 맡깁니다.
        """
        for env_key, env_value in self._environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            path = _resolve_env_path(env_key[len(ENV_PREFIX):].lower())
            if path is None:
                logger.debug(f"알 수 없는 설정 환경변수 무시: {env_key}")
                continue

            target = raw
            for part in path[:-1]:
                if not isinstance(target.get(part), dict):
                    target[part] = {}
                target = target[part]
            target[path[-1]] = env_value

            # 키 값은 남기지 않음
            logger.info(f"환경변수 적용: {env_key} -> {'.'.join(path)}")


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _resolve_env_path(name: str) -> Optional[list[str]]:
    """
    'audio_partition_sample_rate' 같은 이름을 스키마 경로로 바꿉니다.

    섹션 이름이 AppConfig에 없으면 None을 반환합니다.
    나머지 부분의 첫 토큰이 하위 모델 필드이면 3단계 경로로 해석합니다.
    """
    section, _, rest = name.partition("_")
    if not rest or section not in AppConfig.model_fields:
        return None

    section_model = AppConfig.model_fields[section].annotation
    sub, _, field_name = rest.partition("_")
    sub_field = section_model.model_fields.get(sub) if field_name else None
    if sub_field is not None and _is_model(sub_field.annotation):
        return [section, sub, field_name]
    return [section, rest]


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)

