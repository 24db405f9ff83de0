"""
계좌 잔액 정합성 검사

account.balance와 operation 합계가 다른 계좌를 출력한다.
--fix를 주면 해당 계좌 잔액을 operation 합계로 재계산한다.

사용법:
    python -m scripts.check_balances
    python -m scripts.check_balances --fix
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
from core.ledger.store import LedgerStore
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def check_balances(store: LedgerStore, fix: bool = False) -> int:
    """불일치 계좌 검사

    Args:
        store: LedgerStore
        fix: True면 불일치 계좌 잔액 재계산

    Returns:
        발견된 불일치 계좌 수
    """
    mismatches = await store.find_balance_mismatches()

    for mismatch in mismatches:
        logger.warning(
            f"잔액 불일치: account={mismatch.account_id}, "
            f"stored={mismatch.stored_balance}, "
            f"operations={mismatch.operations_sum}, "
            f"diff={mismatch.difference}"
        )
        if fix:
            balance = await store.recompute_balance(mismatch.account_id)
            logger.info(f"재계산 완료: account={mismatch.account_id}, balance={balance}")

    if not mismatches:
        logger.info("모든 계좌 잔액 일치 ✓")

    return len(mismatches)


async def main(config_path: Path | None, fix: bool) -> int:
    config = get_settings(config_path).config
    setup_logging("check_balances", config.console_log_level, config.file_log_level)

    store = LedgerStore(
        ConnectionProvider(config.connection_string, config.busy_timeout_ms)
    )
    return await check_balances(store, fix)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="계좌 잔액 정합성 검사")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="설정 파일 경로 (기본: config/ledger.yaml)",
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="불일치 계좌 잔액을 operation 합계로 재계산",
    )
    args = parser.parse_args()

    found = asyncio.run(main(args.config, args.fix))
    sys.exit(1 if found and not args.fix else 0)
