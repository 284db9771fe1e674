"""
배치 실행기 단위 테스트

검증 항목:
- 첨부를 발견 순서대로 하나씩 전사
- 빈 API 키는 첨부 처리 전에 ConfigurationError
- 첨부 하나의 실패가 나머지를 멈추지 않음
- 진행률 메시지 (30% ~ 80%)
"""

from __future__ import annotations

import pytest

from wavoice.pipeline import ConfigurationError
from wavoice.pipeline.batch import transcribe_attachments


class _FakeTranscriber:
    """파일 이름별로 정해진 결과(문자열 또는 예외)를 돌려줍니다."""

    def __init__(self, results: dict) -> None:
        self._results = results
        self.calls: list[str] = []

    async def transcribe_audio(self, data, file_name, api_key, progress=None):
        self.calls.append(file_name)
        result = self._results[file_name]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_attachments_transcribed_in_order():
    transcriber = _FakeTranscriber({
        "PTT-0001.opus": "첫 번째",
        "PTT-0002.opus": "두 번째",
        "AUDIO-0003.m4a": "세 번째",
    })
    attachments = [
        ("PTT-0001.opus", b"1"),
        ("PTT-0002.opus", b"2"),
        ("AUDIO-0003.m4a", b"3"),
    ]

    result = await transcribe_attachments(transcriber, attachments, "key")

    assert transcriber.calls == ["PTT-0001.opus", "PTT-0002.opus", "AUDIO-0003.m4a"]
    assert list(result.items()) == [
        ("PTT-0001.opus", "첫 번째"),
        ("PTT-0002.opus", "두 번째"),
        ("AUDIO-0003.m4a", "세 번째"),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("api_key", ["", "   "])
async def test_missing_api_key_raises_before_processing(api_key):
    transcriber = _FakeTranscriber({"a.opus": "x"})

    with pytest.raises(ConfigurationError):
        await transcribe_attachments(transcriber, [("a.opus", b"")], api_key)

    assert transcriber.calls == []


@pytest.mark.asyncio
async def test_unexpected_exception_is_isolated():
    transcriber = _FakeTranscriber({
        "a.opus": RuntimeError("boom"),
        "b.opus": "still works",
    })

    result = await transcribe_attachments(
        transcriber, [("a.opus", b""), ("b.opus", b"")], "key"
    )

    assert result == {
        "a.opus": "[Audio transcription failed: boom]",
        "b.opus": "still works",
    }


@pytest.mark.asyncio
async def test_progress_messages():
    transcriber = _FakeTranscriber({"a.opus": "", "b.opus": ""})
    progress: list[tuple[float, str]] = []

    await transcribe_attachments(
        transcriber,
        [("a.opus", b""), ("b.opus", b"")],
        "key",
        progress=lambda p, m: progress.append((p, m)),
    )

    assert progress == [
        (30.0, "Analyzing audio files (0/2)..."),
        (55.0, "Analyzing audio files (1/2)..."),
        (80.0, "Analyzing audio files (2/2)..."),
    ]


@pytest.mark.asyncio
async def test_no_attachments():
    result = await transcribe_attachments(_FakeTranscriber({}), [], "key")
    assert result == {}


@pytest.mark.asyncio
async def test_generator_is_consumed_one_attachment_at_a_time():
    """다음 첨부는 이전 첨부 전사가 끝난 뒤에야 꺼내야 한다."""
    events: list[str] = []

    class _RecordingTranscriber(_FakeTranscriber):
        async def transcribe_audio(self, data, file_name, api_key, progress=None):
            events.append(f"transcribe {file_name}")
            return await super().transcribe_audio(data, file_name, api_key, progress)

    def _attachments():
        for name in ("a.opus", "b.opus"):
            events.append(f"read {name}")
            yield name, b"bytes"

    progress: list[tuple[float, str]] = []
    result = await transcribe_attachments(
        _RecordingTranscriber({"a.opus": "A", "b.opus": "B"}),
        _attachments(),
        "key",
        progress=lambda p, m: progress.append((p, m)),
        total=2,
    )

    assert events == ["read a.opus", "transcribe a.opus", "read b.opus", "transcribe b.opus"]
    assert result == {"a.opus": "A", "b.opus": "B"}
    assert [m for _, m in progress] == [
        "Analyzing audio files (0/2)...",
        "Analyzing audio files (1/2)...",
        "Analyzing audio files (2/2)...",
    ]


@pytest.mark.asyncio
async def test_generator_without_total_is_counted_first():
    def _attachments():
        yield "a.opus", b""

    progress: list[tuple[float, str]] = []
    await transcribe_attachments(
        _FakeTranscriber({"a.opus": "A"}),
        _attachments(),
        "key",
        progress=lambda p, m: progress.append((p, m)),
    )

    assert progress[0] == (30.0, "Analyzing audio files (0/1)...")
