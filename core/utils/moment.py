"""
Moment 변환 유틸리티

Operation/Account의 moment는 타임존 없는 ISO 텍스트로 저장한다.
aware datetime은 UTC로 변환 후 tzinfo를 제거한다 (내부 저장: UTC).
"""

from datetime import date, datetime, timezone

from core.constants import Formats


def normalize_moment(value: datetime | date) -> datetime:
    """date/datetime을 naive UTC datetime으로 정규화

    Args:
        value: date (자정으로 간주) 또는 datetime

    Returns:
        초 단위로 절삭된 naive datetime
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0)


def format_moment(value: datetime | date) -> str:
    """저장용 moment 문자열 (YYYY-MM-DD HH:MM:SS)"""
    return normalize_moment(value).strftime(Formats.MOMENT)


def format_day(value: datetime | date) -> str:
    """일 단위 비교용 문자열 (YYYY-MM-DD)

    시각 이하 정밀도는 무시된다.
    """
    return normalize_moment(value).strftime(Formats.DAY)


def parse_moment(text: str) -> datetime:
    """저장된 moment 문자열을 datetime으로 변환

    초 이하 정밀도나 타임존 접미사가 붙은 값도 앞 19자리만 사용.
    """
    return datetime.strptime(text[:19], Formats.MOMENT)
