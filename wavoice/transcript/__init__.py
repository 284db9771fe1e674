"""
전사 결과 후처리 모듈 패키지

- assembler: 청크별 전사 조각을 이어붙이고 경계에서 중복된 문장 제거
"""
