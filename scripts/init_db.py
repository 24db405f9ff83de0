"""
Ledger 스키마 초기화

사용법:
    python -m scripts.init_db
    python -m scripts.init_db --config config/ledger.yaml
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import ConnectionProvider
from core.config.loader import get_settings
from core.ledger.schema import init_ledger_schema
from core.logging import setup_logging

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ["account", "operation"]


async def main(config_path: Path | None) -> None:
    """스키마 생성 및 검증

    Args:
        config_path: ledger.yaml 경로 (None이면 기본 경로)
    """
    config = get_settings(config_path).config
    setup_logging("init_db", config.console_log_level, config.file_log_level)

    provider = ConnectionProvider(config.connection_string, config.busy_timeout_ms)
    logger.info(f"스키마 초기화 시작: {provider.db_path}")

    async with provider.acquire() as db:
        await init_ledger_schema(db)

        for table in REQUIRED_TABLES:
            if not await db.table_exists(table):
                raise RuntimeError(f"테이블 누락: {table}")
            logger.info(f"테이블 확인: {table} ✓")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger 스키마 초기화")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="설정 파일 경로 (기본: config/ledger.yaml)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.config))
