"""
WhatsApp 음성 메시지 전사 CLI

역할:
- 채팅 내보내기 zip에서 음성 첨부를 찾아 순서대로 전사
- 결과를 {파일 이름: 전사} JSON과 텍스트 목록으로 저장
- 진행률은 로거로 출력

실행 예시:
    python main.py --archive "WhatsApp Chat.zip"
    python main.py --archive export.zip --config config.yaml --output-dir out/
    WAVOICE_STT_API_KEY=sk-... python main.py --archive export.zip
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from wavoice.archive import ArchiveError
from wavoice.archive.reader import ChatArchive
from wavoice.config.config_manager import ConfigLoadError, ConfigManager
from wavoice.config.schema import AppConfig
from wavoice.export.transcript_exporter import TranscriptExporter
from wavoice.logging.structured_logger import setup_logging
from wavoice.pipeline import ConfigurationError
from wavoice.pipeline.batch import transcribe_attachments
from wavoice.pipeline.transcriber import AudioTranscriber

logger = logging.getLogger(__name__)


# =============================================================================
# 진입점
# =============================================================================

def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """커맨드라인 인자를 파싱합니다."""
    parser = argparse.ArgumentParser(
        description="wavoice: WhatsApp 채팅 내보내기 음성 메시지 전사"
    )
    parser.add_argument(
        "--archive", required=True, help="WhatsApp 채팅 내보내기 zip 파일 경로"
    )
    parser.add_argument(
        "--config", default="config.yaml",
        help="설정 파일 경로 (기본: config.yaml, 없으면 기본값 사용)",
    )
    parser.add_argument(
        "--api-key", default=None,
        help="전사 API 키 (없으면 stt.api_key / WAVOICE_STT_API_KEY 사용)",
    )
    parser.add_argument(
        "--output-dir", default=None, help="결과 저장 디렉토리 (export.output_dir 오버라이드)"
    )
    return parser.parse_args(argv)


def _log_progress(percent: float, message: str) -> None:
    logger.info(f"[{percent:5.1f}%] {message}")


def _write_exports(config: AppConfig, transcripts: dict[str, str]) -> list[Path]:
    """설정에 따라 JSON/텍스트 결과 파일을 저장합니다."""
    exporter = TranscriptExporter()
    output_dir = Path(config.export.output_dir)
    written: list[Path] = []
    if config.export.write_json:
        written.append(
            exporter.export_json(transcripts, output_dir / config.export.json_filename)
        )
    if config.export.write_text:
        written.append(
            exporter.export_text(transcripts, output_dir / config.export.text_filename)
        )
    return written


async def _main(argv: Optional[list[str]] = None) -> int:
    """비동기 메인 함수입니다. 프로세스 종료 코드를 반환합니다."""
    args = _parse_args(argv)

    # 설정 로드
    manager = ConfigManager()
    try:
        config = manager.load_or_default(args.config)
    except ConfigLoadError as exc:
        print(f"설정 로드 실패: {exc}", file=sys.stderr)
        return 2

    # 커맨드라인 오버라이드 (Pydantic 모델 재생성)
    if args.output_dir:
        config_dict = config.model_dump()
        config_dict["export"]["output_dir"] = args.output_dir
        config = AppConfig(**config_dict)

    setup_logging(config)

    api_key = args.api_key or config.stt.api_key

    try:
        with ChatArchive(
            args.archive,
            extensions=config.archive.audio_extensions,
            name_markers=config.archive.name_markers,
        ) as archive:
            audio_count = len(archive.audio_names())
            if audio_count == 0:
                logger.info("음성 첨부가 없습니다")
                return 0

            # 첨부 바이트는 배치가 요청할 때 하나씩 압축 해제
            async with AudioTranscriber(config) as transcriber:
                transcripts = await transcribe_attachments(
                    transcriber,
                    archive.audio_attachments(),
                    api_key,
                    progress=_log_progress,
                    total=audio_count,
                )
    except ArchiveError as exc:
        logger.error(f"압축 파일 읽기 실패: {exc}")
        return 1
    except ConfigurationError as exc:
        logger.error(f"설정 오류: {exc}")
        return 2

    try:
        written = _write_exports(config, transcripts)
    except OSError as exc:
        logger.error(f"결과 저장 실패: {exc}")
        return 1

    _log_progress(100.0, f"Done. {len(transcripts)} audio file(s) transcribed")
    for path in written:
        logger.info(f"저장: {path}")
    return 0


def run() -> None:
    """콘솔 스크립트 진입점입니다."""
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    run()
