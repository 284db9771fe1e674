"""
전사 결과 파일 내보내기 모듈입니다.

역할:
- {파일 이름: 전사} 매핑을 JSON 파일로 저장 (UTF-8, 한글/이모지 그대로)
- 같은 매핑을 사람이 읽는 텍스트 목록으로 저장

사용 예시:
    >>> exporter = TranscriptExporter()
    >>> exporter.export_json(transcripts, "output/transcripts/transcripts.json")
    >>> exporter.export_text(transcripts, "output/transcripts/transcripts.txt")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class TranscriptExporter:
    """
    전사 매핑을 JSON/텍스트 파일로 내보내는 클래스입니다.

    파일 저장 실패 시 OSError를 상위로 전파합니다.
    """

    def export_json(self, transcripts: dict[str, str], filepath: str | Path) -> Path:
        """
        전사 매핑을 JSON으로 저장합니다.

        파라미터:
            transcripts: {파일 이름: 전사}
            filepath: 저장할 .json 파일 경로

        반환값:
            Path: 저장된 파일 경로
        """
        filepath = Path(filepath)
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(transcripts, f, ensure_ascii=False, indent=2)
                f.write("\n")
            logger.info(f"JSON 저장 완료: {filepath} ({len(transcripts)}개 전사)")
        except OSError as exc:
            logger.error(f"JSON 저장 실패: {filepath}, 오류: {exc}")
            raise

        return filepath

    def export_text(self, transcripts: dict[str, str], filepath: str | Path) -> Path:
        """
        전사 매핑을 텍스트 목록으로 저장합니다.

        포맷:
            파일 이름
            전사 텍스트
            (빈 줄)

        파라미터:
            transcripts: {파일 이름: 전사}
            filepath: 저장할 .txt 파일 경로

        반환값:
            Path: 저장된 파일 경로
        """
        filepath = Path(filepath)
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w", encoding="utf-8") as f:
                for file_name, transcript in transcripts.items():
                    f.write(f"{file_name}\n")
                    f.write(f"{transcript}\n")
                    f.write("\n")
            logger.info(f"텍스트 저장 완료: {filepath} ({len(transcripts)}개 전사)")
        except OSError as exc:
            logger.error(f"텍스트 저장 실패: {filepath}, 오류: {exc}")
            raise

        return filepath
