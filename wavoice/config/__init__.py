"""
설정 모듈 패키지

- AppConfig: config.yaml 전체 구조를 표현하는 Pydantic 모델
- ConfigManager: YAML 로드, 환경변수 오버라이드, 검증
"""
