"""
채팅 내보내기 압축 파일 모듈 패키지

- reader: zip 안의 음성 첨부 목록/바이트 읽기

공통 에러:
- ArchiveError: 압축 파일을 열거나 읽을 수 없음
"""


class ArchiveError(Exception):
    """채팅 내보내기 압축 파일을 읽을 수 없을 때 발생하는 에러입니다."""
    pass
