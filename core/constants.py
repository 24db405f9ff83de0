"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → shadowbuddy/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    BUSY_TIMEOUT_MS: int = 30000
    LOG_LEVEL: str = "INFO"

    # 금액 저장 단위: 10^-AMOUNT_SCALE (DB에는 정수로 저장)
    AMOUNT_SCALE: int = 8


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    CONFIG_FILE: Path = CONFIG_DIR / "ledger.yaml"


class Formats:
    """저장 포맷"""

    # Moment 저장 형식 (초 단위까지, 타임존 없음)
    MOMENT: str = "%Y-%m-%d %H:%M:%S"
    # 일 단위 비교용
    DAY: str = "%Y-%m-%d"
