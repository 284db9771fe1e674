"""
로깅 설정 패키지

main.py 시작 시 setup_logging()을 한 번 호출합니다.
"""

from wavoice.logging.structured_logger import mask_secrets, setup_logging

__all__ = ["mask_secrets", "setup_logging"]
