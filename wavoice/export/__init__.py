"""
전사 결과 내보내기 모듈 패키지

- transcript_exporter: {파일 이름: 전사} 매핑을 JSON / 텍스트 파일로 저장
"""
