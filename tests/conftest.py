"""
pytest 공통 fixture 정의

임시 디렉토리, 설정 파일, Ledger DB fixture
"""

import logging
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import ConnectionProvider
from core.config.loader import Settings
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """테스트용 ledger.yaml 파일 생성"""
    config_content = f"""# 테스트용 ledger.yaml
database:
  connection_string: "Data Source={(temp_dir / 'ledger.db').as_posix()}"
  busy_timeout_ms: 5000

logging:
  console_level: WARNING
  file_level: DEBUG
"""
    config_path = temp_dir / "ledger.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


@pytest_asyncio.fixture
async def provider(temp_dir: Path) -> ConnectionProvider:
    """스키마가 초기화된 임시 DB의 연결 공급자"""
    provider = ConnectionProvider(str(temp_dir / "test_ledger.db"))
    async with provider.acquire() as db:
        await init_ledger_schema(db)
    return provider


@pytest.fixture
def ledger_store(provider: ConnectionProvider) -> LedgerStore:
    """LedgerStore 인스턴스"""
    return LedgerStore(provider)


@pytest.fixture
def restore_root_logger():
    """setup_logging 호출 후 루트 로거 상태 복원"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
