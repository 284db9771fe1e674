"""
AudioDecoder 단위 테스트

검증 항목:
- soundfile로 메모리 WAV/OGG 디코딩, (채널, 샘플) 배치
- soundfile 실패 시 ffmpeg fallback (subprocess는 mock)
- 빈 입력 / ffmpeg 실행 불가 / ffmpeg 실패 → DecodeError
- async decode가 같은 결과를 반환
"""

from __future__ import annotations

import io
import subprocess
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
import soundfile as sf

from wavoice.audio import DecodeError
from wavoice.audio.decoder import AudioDecoder


def _make_wav_bytes(samples: np.ndarray, sample_rate: int, fmt: str = "WAV") -> bytes:
    stream = io.BytesIO()
    sf.write(stream, samples, sample_rate, format=fmt, subtype="FLOAT" if fmt == "WAV" else None)
    return stream.getvalue()


def _stereo(length: int = 4800) -> np.ndarray:
    left = np.linspace(-0.5, 0.5, length, dtype=np.float32)
    return np.stack([left, -left], axis=1)  # soundfile 배치: (샘플, 채널)


# =============================================================================
# soundfile 경로
# =============================================================================

def test_decode_wav_keeps_rate_and_channels():
    data = _make_wav_bytes(_stereo(), 48000)
    buffer = AudioDecoder().decode_sync(data, "clip.wav")

    assert buffer.sample_rate == 48000
    assert buffer.channel_count == 2
    assert buffer.length == 4800
    assert buffer.duration == pytest.approx(0.1)
    np.testing.assert_allclose(buffer.channels[1], -buffer.channels[0])


def test_decode_ogg_vorbis():
    tone = (0.3 * np.sin(np.arange(8000) / 5)).astype(np.float32)
    data = _make_wav_bytes(tone, 8000, fmt="OGG")
    buffer = AudioDecoder().decode_sync(data, "voice.ogg")
    assert buffer.sample_rate == 8000
    assert buffer.channel_count == 1
    assert buffer.length > 0


@pytest.mark.asyncio
async def test_async_decode():
    data = _make_wav_bytes(_stereo(), 16000)
    buffer = await AudioDecoder().decode(data, "clip.wav")
    assert buffer.length == 4800


def test_empty_input_raises():
    with pytest.raises(DecodeError):
        AudioDecoder().decode_sync(b"", "empty.opus")


# =============================================================================
# ffmpeg fallback
# =============================================================================

def test_ffmpeg_fallback_success():
    """soundfile이 못 여는 입력은 ffmpeg 결과 WAV를 읽어야 한다."""
    expected = _stereo(1600)

    def fake_run(cmd, stdout=None, stderr=None):
        assert cmd[0] == "/opt/ffmpeg"
        assert Path(cmd[3]).suffix == ".m4a"
        sf.write(cmd[-1], expected, 16000, subtype="FLOAT")
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    with patch("wavoice.audio.decoder.subprocess.run", side_effect=fake_run):
        buffer = AudioDecoder(ffmpeg_path="/opt/ffmpeg").decode_sync(b"not-a-riff-file", "memo.m4a")

    assert buffer.sample_rate == 16000
    assert buffer.channel_count == 2
    np.testing.assert_allclose(buffer.channels, expected.T, atol=1e-6)


def test_ffmpeg_missing_raises_decode_error():
    with patch(
        "wavoice.audio.decoder.subprocess.run",
        side_effect=FileNotFoundError("ffmpeg"),
    ):
        with pytest.raises(DecodeError, match="ffmpeg"):
            AudioDecoder().decode_sync(b"garbage bytes", "broken.opus")


def test_ffmpeg_failure_raises_decode_error():
    failed = subprocess.CompletedProcess(
        ["ffmpeg"], 1, b"", b"...\ninput.opus: Invalid data found when processing input\n"
    )
    with patch("wavoice.audio.decoder.subprocess.run", return_value=failed):
        with pytest.raises(DecodeError, match="Invalid data found"):
            AudioDecoder().decode_sync(b"garbage bytes", "broken.opus")
