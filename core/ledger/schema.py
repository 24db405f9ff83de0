"""
Ledger 스키마 초기화

account / operation 테이블과 인덱스 생성.
CREATE IF NOT EXISTS 패턴으로 여러 번 호출해도 안전하게 동작.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스)

    단일 트랜잭션 안에서 생성하므로 중간 실패 시 아무것도 남지 않는다.

    Args:
        db: 연결된 SQLiteAdapter
    """
    async with db.transaction():
        await _create_ledger_tables(db)
        await _create_ledger_indexes(db)
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # account 테이블 (balance = operation.amount 합계)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS account (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id          INTEGER NOT NULL,
            currency_id      INTEGER NOT NULL,
            balance          INTEGER NOT NULL DEFAULT 0,
            name             TEXT NOT NULL,
            moment           TEXT NOT NULL
        )
    """)

    # operation 테이블 (계좌 삭제 시 함께 삭제)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS operation (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            account_id        INTEGER NOT NULL,
            operation_type_id INTEGER NOT NULL,
            amount            INTEGER NOT NULL,
            category_id       INTEGER NOT NULL,
            comment           TEXT,
            moment            TEXT NOT NULL,
            FOREIGN KEY (account_id) REFERENCES account(id) ON DELETE CASCADE
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성"""

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_account_user
        ON account(user_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_operation_account_moment
        ON operation(account_id, moment)
    """)
