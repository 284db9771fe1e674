"""
wavoice: WhatsApp 채팅 내보내기의 음성 메시지를 전사하는 파이프라인 패키지입니다.

주요 진입점:
- wavoice.pipeline.transcriber.transcribe_audio: (오디오 bytes, 파일 이름, API 키) → 전사 문자열
- wavoice.pipeline.batch.transcribe_attachments: 첨부 목록 → {파일 이름: 전사} 매핑
"""

__version__ = "0.1.0"
