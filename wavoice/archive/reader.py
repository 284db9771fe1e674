"""
WhatsApp 채팅 내보내기(zip) 읽기 모듈입니다.

역할:
- 음성 첨부 판별 (확장자 또는 파일 이름 표식)
- zip 안의 음성 첨부를 (이름, 바이트)로 순서대로 꺼냄

사용 예시:
    >>> with ChatArchive("WhatsApp Chat.zip") as archive:
    ...     for name, data in archive.audio_attachments():
    ...         print(name, len(data))
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional, Sequence

from wavoice.archive import ArchiveError

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_EXTENSIONS = ("opus", "mp3", "m4a", "wav", "ogg")
DEFAULT_NAME_MARKERS = ("PTT-", "audio")


def is_audio_file(
    file_name: str,
    extensions: Sequence[str] = DEFAULT_AUDIO_EXTENSIONS,
    name_markers: Sequence[str] = DEFAULT_NAME_MARKERS,
) -> bool:
    """
    파일 이름으로 음성 첨부인지 판별합니다.

    확장자 비교는 대소문자를 구분하지 않고, 이름 표식은 구분합니다.

    >>> is_audio_file("00000012-PTT-20240101.opus")
    True
    >>> is_audio_file("IMG-0001.jpg")
    False
    """
    suffix = PurePosixPath(file_name).suffix.lower().lstrip(".")
    if suffix and suffix in {ext.lower() for ext in extensions}:
        return True
    return any(marker in file_name for marker in name_markers)


class ChatArchive:
    """
    채팅 내보내기 zip 파일 리더입니다.

    with 문으로 사용하며, 블록을 벗어나면 zip 파일을 닫습니다.

    파라미터:
        path: zip 파일 경로
        extensions: 음성으로 간주할 확장자 목록
        name_markers: 음성으로 간주할 파일 이름 표식 목록

    에러:
        ArchiveError: 파일이 없거나 올바른 zip이 아닐 때
    """

    def __init__(
        self,
        path: str | Path,
        extensions: Sequence[str] = DEFAULT_AUDIO_EXTENSIONS,
        name_markers: Sequence[str] = DEFAULT_NAME_MARKERS,
    ) -> None:
        self._path = Path(path)
        self._extensions = tuple(extensions)
        self._name_markers = tuple(name_markers)
        self._zip: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> "ChatArchive":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        try:
            self._zip = zipfile.ZipFile(self._path)
        except FileNotFoundError as exc:
            raise ArchiveError(f"압축 파일을 찾을 수 없습니다: {self._path}") from exc
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveError(f"압축 파일을 열 수 없습니다: {self._path} ({exc})") from exc
        logger.info(f"압축 파일 열기: {self._path} ({len(self._zip.namelist())}개 항목)")

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def audio_names(self) -> list[str]:
        """음성 첨부 항목 이름을 압축 파일 순서대로 반환합니다 (디렉토리 제외)."""
        return [
            info.filename
            for info in self._require_zip().infolist()
            if not info.is_dir()
            and is_audio_file(info.filename, self._extensions, self._name_markers)
        ]

    def audio_attachments(self) -> Iterator[tuple[str, bytes]]:
        """
        음성 첨부를 (항목 이름, 바이트)로 하나씩 읽어 반환합니다.

        항목은 요청될 때 압축 해제하므로 한 번에 첨부 하나만 메모리에 올라갑니다.

        에러:
            ArchiveError: 항목 압축 해제 실패
        """
        archive = self._require_zip()
        for name in self.audio_names():
            try:
                data = archive.read(name)
            except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
                raise ArchiveError(f"항목을 읽을 수 없습니다: {name} ({exc})") from exc
            logger.debug(f"음성 첨부 읽기: {name} ({len(data)}bytes)")
            yield name, data
            del data

    def _require_zip(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise ArchiveError("압축 파일이 열려있지 않습니다. with 문 안에서 사용하세요")
        return self._zip
