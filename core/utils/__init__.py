"""
유틸리티 패키지

moment 저장 형식 변환 등 공통 유틸리티
"""

from core.utils.moment import (
    format_day,
    format_moment,
    normalize_moment,
    parse_moment,
)

__all__ = [
    "format_day",
    "format_moment",
    "normalize_moment",
    "parse_moment",
]
