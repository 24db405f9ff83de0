"""
설정 로더

ledger.yaml 로드 및 DB 연결 설정 생성
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from core.constants import Defaults, Paths


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger 설정 (ledger.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    connection_string: str
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS
    console_log_level: int = logging.INFO
    file_log_level: int = logging.INFO


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _parse_log_level(value: str | int | None, field: str) -> int:
    """로그 레벨 문자열("INFO") 또는 숫자를 logging 상수로 변환"""
    if value is None:
        return logging.getLevelName(Defaults.LOG_LEVEL)
    if isinstance(value, int):
        return value

    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ConfigLoadError(f"유효하지 않은 로그 레벨입니다: {field}={value!r}")
    return level


def _section(data: dict, name: str) -> dict:
    """최상위 섹션 조회 (없으면 빈 dict)"""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigLoadError(f"'{name}' 섹션은 매핑이어야 합니다")
    return section


def load_config(path: Path | None = None) -> LedgerConfig:
    """ledger.yaml 파일 로드

    예시:
    ```yaml
    database:
      connection_string: "Data Source=data/shadowbuddy.db"
      busy_timeout_ms: 30000
    logging:
      console_level: INFO
      file_level: DEBUG
    ```

    Args:
        path: ledger.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        LedgerConfig 인스턴스

    Raises:
        ConfigLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.CONFIG_FILE

    if not path.exists():
        raise ConfigLoadError(f"설정 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"설정 파일 파싱 실패: {e}") from e

    if data is None:
        raise ConfigLoadError("설정 파일이 비어 있습니다")
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"설정 파일 최상위는 매핑이어야 합니다: {type(data).__name__}"
        )

    database = _section(data, "database")
    connection_string = database.get("connection_string")
    if not connection_string:
        raise ConfigLoadError(
            "설정 파일의 database 섹션에 'connection_string'이 없습니다"
        )

    busy_timeout_ms = database.get("busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS)
    if not isinstance(busy_timeout_ms, int) or busy_timeout_ms < 0:
        raise ConfigLoadError(
            f"busy_timeout_ms는 0 이상의 정수여야 합니다: {busy_timeout_ms!r}"
        )

    log_config = _section(data, "logging")

    return LedgerConfig(
        connection_string=str(connection_string),
        busy_timeout_ms=busy_timeout_ms,
        console_log_level=_parse_log_level(
            log_config.get("console_level"), "console_level"
        ),
        file_log_level=_parse_log_level(log_config.get("file_level"), "file_level"),
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    ledger.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: LedgerConfig | None = None

    def __new__(cls, config_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_config(config_path)

    @property
    def config(self) -> LedgerConfig:
        """로드된 설정 전체"""
        assert self._config is not None
        return self._config

    @property
    def connection_string(self) -> str:
        """DB 연결 문자열"""
        assert self._config is not None
        return self._config.connection_string

    @property
    def busy_timeout_ms(self) -> int:
        """SQLite 잠금 대기 시간"""
        assert self._config is not None
        return self._config.busy_timeout_ms

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(config_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        config_path: ledger.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(config_path)
