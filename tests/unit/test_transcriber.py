"""
AudioTranscriber(오케스트레이터) 단위 테스트

디코더와 전사 클라이언트는 테스트 더블로 대체합니다.

검증 항목:
- 직접 경로: 25MiB 이하 비-opus는 디코딩 없이 원본 업로드
- 단일 패스: opus는 디코딩 → 다운샘플 WAV 업로드
- 분할 경로: 청크별 업로드 → 조립, 실패 청크는 인라인 표식
- 단일 패스 결과가 상한 초과 시 원본 버퍼 분할로 전환
- 모든 실패는 '[Audio transcription failed: ...]'로 변환 (예외 없음)
- 진행률 메시지
"""

from __future__ import annotations

import struct
from unittest.mock import patch

import httpx
import numpy as np
import pytest

from wavoice.audio import DecodedBuffer, DecodeError, EncodedPayload
from wavoice.config.schema import AppConfig
from wavoice.pipeline.transcriber import AudioTranscriber, transcribe_audio
from wavoice.stt import TranscriptionError

MIB = 1024 * 1024


# =============================================================================
# 테스트 더블
# =============================================================================

class _FakeDecoder:
    def __init__(self, buffer: DecodedBuffer = None, error: Exception = None) -> None:
        self._buffer = buffer
        self._error = error
        self.calls: list[str] = []

    async def decode(self, data: bytes, file_name: str) -> DecodedBuffer:
        self.calls.append(file_name)
        if self._error is not None:
            raise self._error
        return self._buffer


class _FakeClient:
    """업로드 순번별 응답(문자열 또는 예외)을 돌려주는 전사 클라이언트입니다."""

    def __init__(self, *responses) -> None:
        self._responses = list(responses)
        self.payloads: list[EncodedPayload] = []

    async def transcribe(self, payload: EncodedPayload, api_key: str) -> str:
        self.payloads.append(payload)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _make_config(max_upload_bytes: int = 25 * MIB) -> AppConfig:
    return AppConfig(**{"audio": {"max_upload_bytes": max_upload_bytes}})


def _make_buffer(duration_sec: float, sample_rate: int, channels: int = 2) -> DecodedBuffer:
    t = np.arange(int(duration_sec * sample_rate), dtype=np.float32) / sample_rate
    tone = (0.3 * np.sin(2 * np.pi * 220 * t)).astype(np.float32)
    return DecodedBuffer(channels=np.tile(tone, (channels, 1)), sample_rate=sample_rate)


def _wav_rate(payload: EncodedPayload) -> int:
    return struct.unpack_from("<I", payload.data, 24)[0]


def _wav_bits(payload: EncodedPayload) -> int:
    return struct.unpack_from("<H", payload.data, 34)[0]


# =============================================================================
# 직접 경로
# =============================================================================

@pytest.mark.asyncio
async def test_small_m4a_uses_direct_path():
    """작은 m4a는 디코딩 없이 원본 바이트와 이름 그대로 업로드한다."""
    decoder = _FakeDecoder()
    client = _FakeClient("Transcript verbatim.")
    transcriber = AudioTranscriber(_make_config(), decoder=decoder, client=client)
    data = b"\x00" * (5 * MIB)

    result = await transcriber.transcribe_audio(data, "00000007-AUDIO-2024.m4a", "key")

    assert result == "Transcript verbatim."
    assert decoder.calls == []
    payload = client.payloads[0]
    assert payload.data is data
    assert payload.upload_name == "00000007-AUDIO-2024.m4a"
    assert payload.content_type.startswith("audio/")


@pytest.mark.asyncio
async def test_unknown_extension_falls_back_to_mpeg_mime():
    client = _FakeClient("ok")
    transcriber = AudioTranscriber(_make_config(), decoder=_FakeDecoder(), client=client)

    await transcriber.transcribe_audio(b"\x01\x02", "voice-note-audio.xyz123", "key")

    assert client.payloads[0].content_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_direct_path_failure_becomes_placeholder():
    client = _FakeClient(TranscriptionError("OpenAI API error: 401 - Invalid API key"))
    transcriber = AudioTranscriber(_make_config(), decoder=_FakeDecoder(), client=client)

    result = await transcriber.transcribe_audio(b"abc", "memo.mp3", "bad")

    assert result == "[Audio transcription failed: OpenAI API error: 401 - Invalid API key]"


# =============================================================================
# 단일 패스 경로
# =============================================================================

@pytest.mark.asyncio
async def test_small_opus_is_reencoded_as_wav():
    decoder = _FakeDecoder(_make_buffer(3.0, 48000))
    client = _FakeClient("짧은 음성 메모")
    transcriber = AudioTranscriber(_make_config(), decoder=decoder, client=client)

    result = await transcriber.transcribe_audio(b"OggS" * 100, "00000003-PTT-20240101.OPUS", "key")

    assert result == "짧은 음성 메모"
    assert decoder.calls == ["00000003-PTT-20240101.OPUS"]
    payload = client.payloads[0]
    assert payload.upload_name == "00000003-PTT-20240101.wav"
    assert payload.content_type == "audio/wav"
    assert _wav_rate(payload) == 16000
    assert _wav_bits(payload) == 16
    assert payload.size == 44 + 3 * 16000 * 2


@pytest.mark.asyncio
async def test_oversize_opus_is_downsampled_single_pass():
    """30MB / 8분 opus → 11025Hz 모노 16bit 업로드 한 번."""
    decoder = _FakeDecoder(_make_buffer(480.0, 22050, channels=1))
    client = _FakeClient("eight minute memo")
    progress: list[tuple[float, str]] = []
    transcriber = AudioTranscriber(_make_config(), decoder=decoder, client=client)

    result = await transcriber.transcribe_audio(
        b"\x00" * (30 * MIB), "long.opus", "key",
        progress=lambda p, m: progress.append((p, m)),
    )

    assert result == "eight minute memo"
    assert len(client.payloads) == 1
    payload = client.payloads[0]
    assert _wav_rate(payload) == 11025
    assert _wav_bits(payload) == 16
    assert payload.size == 44 + 480 * 11025 * 2
    assert progress[0] == (50, "Large audio file detected. Processing long.opus...")


@pytest.mark.asyncio
async def test_single_pass_overflow_falls_back_to_partitioning():
    """단일 패스 결과가 상한을 넘으면 원본 버퍼를 분할해야 한다."""
    buffer = _make_buffer(10.0, 8000, channels=1)
    decoder = _FakeDecoder(buffer)
    client = _FakeClient("chunk text.")
    # 상한 100KB: 원본 50KB는 통과, 8kHz/10초 WAV(160KB)는 초과
    transcriber = AudioTranscriber(
        _make_config(max_upload_bytes=100 * 1024), decoder=decoder, client=client
    )

    result = await transcriber.transcribe_audio(b"\x00" * (50 * 1024), "memo.opus", "key")

    assert result == "chunk text."
    payload = client.payloads[0]
    assert payload.upload_name == "chunk_1_memo.wav"
    assert _wav_rate(payload) == 16000
    assert payload.size == 44 + 10 * 16000 * 2


# =============================================================================
# 분할 경로
# =============================================================================

def _partition_transcriber(client: _FakeClient, duration_sec: float = 800.0) -> AudioTranscriber:
    """800초 / 50Hz 버퍼 → 길이 기준으로 청크 3개, 청크 출력도 50Hz로 줄여 빠르게 실행."""
    config = AppConfig(**{"audio": {"partition": {"sample_rate": 50}}})
    decoder = _FakeDecoder(_make_buffer(duration_sec, 50, channels=1))
    return AudioTranscriber(config, decoder=decoder, client=client)


@pytest.mark.asyncio
async def test_partitioned_chunks_are_assembled_in_order():
    client = _FakeClient(
        "Good morning everyone. Today we review the budget.",
        "Today we review the budget. Costs went up.",
        "Costs went up. Thanks all.",
    )
    transcriber = _partition_transcriber(client)

    result = await transcriber.transcribe_audio(b"\x00" * 1000, "meeting.opus", "key")

    assert result == (
        "Good morning everyone. Today we review the budget. Costs went up. Thanks all."
    )
    assert [p.upload_name for p in client.payloads] == [
        "chunk_1_meeting.wav", "chunk_2_meeting.wav", "chunk_3_meeting.wav",
    ]


@pytest.mark.asyncio
async def test_failed_chunk_is_isolated():
    """3개 중 2번째 청크가 실패해도 1, 3번 텍스트와 오류 표식이 남아야 한다."""
    client = _FakeClient(
        "First chunk words.",
        TranscriptionError("OpenAI API error: 500 - Internal Server Error", status_code=500),
        "Third chunk words.",
    )
    transcriber = _partition_transcriber(client)

    result = await transcriber.transcribe_audio(b"\x00" * 1000, "call.opus", "key")

    assert result.startswith("First chunk words.")
    assert "[Error with part 2: OpenAI API error: 500 - Internal Server Error]" in result
    assert result.endswith("Third chunk words.")
    assert len(client.payloads) == 3


@pytest.mark.asyncio
async def test_non_transcription_error_in_chunk_is_isolated():
    """httpx.InvalidURL처럼 TranscriptionError가 아닌 예외도 청크 단위에서 막아야 한다."""
    client = _FakeClient(
        httpx.InvalidURL("Invalid URL 'htp//bad'"),
        "Second chunk words.",
        "Third chunk words.",
    )
    transcriber = _partition_transcriber(client)

    result = await transcriber.transcribe_audio(b"\x00" * 1000, "call.opus", "key")

    assert result.startswith("[Error with part 1: Invalid URL 'htp//bad']")
    assert "Second chunk words." in result
    assert result.endswith("Third chunk words.")
    assert len(client.payloads) == 3


@pytest.mark.asyncio
async def test_partition_progress_messages():
    client = _FakeClient("a one.", "a two.", "a three.")
    transcriber = _partition_transcriber(client)
    progress: list[tuple[float, str]] = []

    await transcriber.transcribe_audio(
        b"\x00" * 1000, "call.opus", "key", progress=lambda p, m: progress.append((p, m))
    )

    messages = [m for _, m in progress]
    assert messages == [
        "Processing audio chunk 1/3...",
        "Processing audio chunk 2/3...",
        "Processing audio chunk 3/3...",
        "Transcribing chunk 1/3...",
        "Transcribing chunk 2/3...",
        "Transcribing chunk 3/3...",
    ]
    assert progress[3][0] == 60
    assert progress[5][0] == pytest.approx(80)


# =============================================================================
# 실패 변환
# =============================================================================

@pytest.mark.asyncio
async def test_decode_error_becomes_placeholder():
    decoder = _FakeDecoder(error=DecodeError("Unable to decode audio data"))
    transcriber = AudioTranscriber(_make_config(), decoder=decoder, client=_FakeClient())

    result = await transcriber.transcribe_audio(b"garbage", "broken.opus", "key")

    assert result == "[Audio transcription failed: Unable to decode audio data]"


@pytest.mark.asyncio
async def test_unexpected_error_becomes_placeholder():
    transcriber = AudioTranscriber(
        _make_config(), decoder=_FakeDecoder(_make_buffer(1.0, 8000)), client=_FakeClient("x")
    )
    with patch(
        "wavoice.pipeline.transcriber.encode_wav", side_effect=MemoryError("out of memory")
    ):
        result = await transcriber.transcribe_audio(b"\x00", "a.opus", "key")

    assert result == "[Audio transcription failed: out of memory]"


@pytest.mark.asyncio
async def test_silent_opus_is_uploaded_without_nan():
    silent = DecodedBuffer(channels=np.zeros((1, 8000), dtype=np.float32), sample_rate=8000)
    client = _FakeClient("")
    transcriber = AudioTranscriber(_make_config(), decoder=_FakeDecoder(silent), client=client)

    result = await transcriber.transcribe_audio(b"\x00", "silence.opus", "key")

    assert result == ""
    pcm = np.frombuffer(client.payloads[0].data[44:], dtype="<i2")
    assert not np.any(pcm)


@pytest.mark.asyncio
async def test_module_level_function_never_raises():
    with patch(
        "wavoice.pipeline.transcriber.AudioDecoder.decode",
        side_effect=DecodeError("bad header"),
    ):
        result = await transcribe_audio(b"xx", "x.opus", "key")

    assert result == "[Audio transcription failed: bad header]"
