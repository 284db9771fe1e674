"""
오디오 디코더 모듈입니다.

역할:
- 압축 오디오 바이트(opus/ogg/mp3/m4a/wav)를 float32 멀티채널 버퍼로 디코딩
- 1차: soundfile(libsndfile)로 메모리에서 직접 디코딩
- 2차: libsndfile이 열지 못하는 컨테이너(m4a 등)는 ffmpeg로 임시 WAV 변환 후 읽기
- 디코딩은 CPU 작업이므로 async 호출 시 worker 스레드에서 실행

원본 샘플링레이트와 채널 수를 그대로 유지합니다 (리샘플링은 resampler 담당).

사용 예시:
    >>> decoder = AudioDecoder(ffmpeg_path="ffmpeg")
    >>> buffer = await decoder.decode(data, "PTT-0001.opus")
"""

from __future__ import annotations

import asyncio
import io
import logging
import subprocess
import tempfile
from pathlib import Path, PurePath

import numpy as np
import soundfile as sf

from wavoice.audio import DecodedBuffer, DecodeError

logger = logging.getLogger(__name__)


class AudioDecoder:
    """
    오디오 바이트 디코더입니다.

    파라미터:
        ffmpeg_path: ffmpeg 실행 파일 경로 (fallback 디코딩용)
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self._ffmpeg_path = ffmpeg_path

    async def decode(self, data: bytes, file_name: str) -> DecodedBuffer:
        """
        이벤트 루프를 막지 않도록 worker 스레드에서 디코딩합니다.

        에러:
            DecodeError: 어떤 방법으로도 디코딩할 수 없을 때
        """
        return await asyncio.to_thread(self.decode_sync, data, file_name)

    def decode_sync(self, data: bytes, file_name: str) -> DecodedBuffer:
        """
        오디오 바이트를 DecodedBuffer로 디코딩합니다.

        파라미터:
            data: 압축 오디오 바이트
            file_name: 원본 파일 이름 (ffmpeg 입력 확장자 결정용)

        반환값:
            DecodedBuffer: 원본 샘플링레이트 / 채널 수를 유지한 버퍼

        에러:
            DecodeError: 빈 입력이거나 디코딩 실패
        """
        if not data:
            raise DecodeError(f"빈 오디오 데이터: {file_name}")

        try:
            buffer = self._decode_with_soundfile(data)
            logger.debug(f"soundfile 디코딩 성공: {file_name}")
            return buffer
        except (RuntimeError, sf.SoundFileError) as exc:
            logger.info(f"soundfile 디코딩 실패, ffmpeg로 재시도: {file_name} ({exc})")

        return self._decode_with_ffmpeg(data, file_name)

    # =========================================================================
    # 내부 헬퍼 메서드
    # =========================================================================

    @staticmethod
    def _decode_with_soundfile(data: bytes) -> DecodedBuffer:
        """libsndfile로 메모리 버퍼를 디코딩합니다."""
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        # soundfile은 (샘플, 채널) 순서
        return DecodedBuffer(
            channels=np.ascontiguousarray(samples.T),
            sample_rate=int(sample_rate),
        )

    def _decode_with_ffmpeg(self, data: bytes, file_name: str) -> DecodedBuffer:
        """
        ffmpeg로 float32 PCM WAV로 변환한 뒤 soundfile로 읽습니다.

        파라미터:
            data: 압축 오디오 바이트
            file_name: 원본 파일 이름

        반환값:
            DecodedBuffer

        에러:
            DecodeError: ffmpeg 실행 불가 또는 변환 실패
        """
        suffix = PurePath(file_name).suffix or ".bin"

        with tempfile.TemporaryDirectory(prefix="wavoice_") as tmp_dir:
            src_path = Path(tmp_dir) / f"input{suffix}"
            dst_path = Path(tmp_dir) / "decoded.wav"
            src_path.write_bytes(data)

            cmd = [
                self._ffmpeg_path, "-y",
                "-i", str(src_path),
                "-vn",                   # 비디오/커버 이미지 스트림 제외
                "-acodec", "pcm_f32le",  # 원본 rate/채널 유지, float32
                str(dst_path),
            ]

            logger.debug(f"ffmpeg 디코딩 시작: {file_name}")
            try:
                result = subprocess.run(
                    cmd,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                )
            except OSError as exc:
                raise DecodeError(
                    f"Unable to decode audio data: ffmpeg 실행 실패 ({exc})"
                ) from exc

            if result.returncode != 0:
                err = result.stderr.decode(errors="replace").strip().splitlines()
                detail = err[-1] if err else f"returncode={result.returncode}"
                raise DecodeError(f"Unable to decode audio data: {detail}")

            try:
                samples, sample_rate = sf.read(
                    str(dst_path), dtype="float32", always_2d=True
                )
            except (RuntimeError, sf.SoundFileError) as exc:
                raise DecodeError(f"Unable to decode audio data: {exc}") from exc

        if samples.shape[0] == 0:
            raise DecodeError(f"Unable to decode audio data: 오디오 샘플 없음 ({file_name})")

        logger.debug(f"ffmpeg 디코딩 성공: {file_name}, {sample_rate}Hz, {samples.shape[1]}ch")
        return DecodedBuffer(
            channels=np.ascontiguousarray(samples.T),
            sample_rate=int(sample_rate),
        )
