"""
여러 음성 첨부를 순서대로 전사하는 배치 실행기입니다.

역할:
- 첨부 목록을 발견 순서대로 하나씩 전사 (동시 실행 없음)
- 첨부마다 진행률 보고 (30% ~ 80% 구간)
- 첨부 하나의 실패가 나머지를 멈추지 않음 (실패 표식으로 기록)
- 결과를 {파일 이름: 전사} 매핑으로 반환

사용 예시:
    >>> transcripts = await transcribe_attachments(transcriber, attachments, api_key)
"""

from __future__ import annotations

import logging
from collections.abc import Sized
from typing import Iterable, Optional

from wavoice.audio import ProgressCallback, report_progress
from wavoice.pipeline import ConfigurationError
from wavoice.pipeline.transcriber import AudioTranscriber

logger = logging.getLogger(__name__)

# 진행률 구간 (30% ~ 80%)
_PROGRESS_BASE = 30.0
_PROGRESS_SPAN = 50.0


async def transcribe_attachments(
    transcriber: AudioTranscriber,
    attachments: Iterable[tuple[str, bytes]],
    api_key: str,
    progress: Optional[ProgressCallback] = None,
    total: Optional[int] = None,
) -> dict[str, str]:
    """
    음성 첨부를 순서대로 전사합니다.

    파라미터:
        transcriber: 첨부 하나를 전사하는 오케스트레이터
        attachments: (파일 이름, 바이트) 이터러블. 제너레이터면 하나씩 꺼내 처리하므로
            한 번에 첨부 하나만 메모리에 유지됩니다
        api_key: 전사 서비스 인증 키
        progress: 진행률 콜백 (선택, 첨부별 세부 진행률도 같은 콜백으로 전달)
        total: 전체 첨부 수 (진행률 분모). 생략하면 attachments의 길이를 사용하고,
            길이가 없는 이터러블이면 먼저 목록으로 만듭니다

    반환값:
        dict[str, str]: {파일 이름: 전사 또는 실패 표식}

    에러:
        ConfigurationError: API 키가 비어있을 때 (첨부를 처리하기 전에 발생)
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError("API key is required for audio transcription")

    if total is None:
        if not isinstance(attachments, Sized):
            attachments = list(attachments)
        total = len(attachments)
    transcripts: dict[str, str] = {}

    logger.info(f"음성 첨부 {total}개 전사 시작")

    for count, (file_name, data) in enumerate(attachments):
        report_progress(
            progress,
            _PROGRESS_BASE + _PROGRESS_SPAN * count / max(total, 1),
            f"Analyzing audio files ({count}/{total})...",
        )
        try:
            transcripts[file_name] = await transcriber.transcribe_audio(
                data, file_name, api_key, progress
            )
        except Exception as exc:
            logger.error(f"첨부 전사 중 예상치 못한 오류: {file_name}, {exc}", exc_info=True)
            transcripts[file_name] = f"[Audio transcription failed: {exc}]"
        # 다음 첨부를 꺼내기 전에 현재 바이트 참조 해제
        del data

    if total:
        report_progress(
            progress,
            _PROGRESS_BASE + _PROGRESS_SPAN,
            f"Analyzing audio files ({total}/{total})...",
        )

    failed = sum(1 for text in transcripts.values() if text.startswith("[Audio transcription failed"))
    logger.info(f"음성 첨부 전사 완료: 성공 {len(transcripts) - failed}개, 실패 {failed}개")
    return transcripts
