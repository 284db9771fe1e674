"""
전사 조각 조립 모듈입니다.

역할:
- 청크별 전사 텍스트(또는 오류 표식)를 순서대로 이어붙임
- 청크 경계에서 반복된 문장을 문장 단위로 제거

중복 판정:
- '.', '!', '?' 연속 구간에서 문장을 나눔 (마지막 미종결 텍스트도 한 문장)
- 소문자 + 공백 정리 후 비교, 처음 나온 것만 유지
- 5자 이하 짧은 문장("Okay." 등)은 중복이어도 항상 유지

결과에 다시 적용해도 같은 문자열이 나옵니다.

사용 예시:
    >>> assemble(["Hello there. How are you?", "How are you? Fine."])
    'Hello there. How are you? Fine.'
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

logger = logging.getLogger(__name__)

# 문장 = 종결부호가 아닌 문자열 + 종결부호 연속 (없을 수도 있음)
_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]*")
_WHITESPACE_PATTERN = re.compile(r"\s+")

# 이 길이 이하의 문장은 중복 제거 대상에서 제외
_MIN_DEDUP_LENGTH = 5


def join_fragments(fragments: Iterable[str]) -> str:
    """양쪽이 모두 비어있지 않을 때만 공백 하나를 넣어 조각을 이어붙입니다."""
    joined = ""
    for fragment in fragments:
        if not fragment:
            continue
        joined = f"{joined} {fragment}" if joined else fragment
    return joined


def split_sentences(text: str) -> list[str]:
    """텍스트를 앞뒤 공백을 제거한 문장 목록으로 나눕니다. 빈 문장은 버립니다."""
    sentences = []
    for match in _SENTENCE_PATTERN.finditer(text):
        sentence = match.group(0).strip()
        if sentence:
            sentences.append(sentence)
    return sentences


def assemble(fragments: Iterable[str]) -> str:
    """
    전사 조각을 하나의 중복 제거된 전사로 합칩니다.

    파라미터:
        fragments: 청크 순서대로 정렬된 전사 텍스트 목록

    반환값:
        str: 조립된 전사 (조각이 모두 비어있으면 빈 문자열)
    """
    sentences = split_sentences(join_fragments(fragments))

    seen: set[str] = set()
    kept: list[str] = []
    for sentence in sentences:
        key = _WHITESPACE_PATTERN.sub(" ", sentence.lower())
        if len(key) <= _MIN_DEDUP_LENGTH:
            kept.append(sentence)
            continue
        if key in seen:
            continue
        seen.add(key)
        kept.append(sentence)

    removed = len(sentences) - len(kept)
    if removed:
        logger.debug(f"중복 문장 {removed}개 제거")
    return " ".join(kept)
