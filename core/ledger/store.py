"""
Ledger 저장소

Account / Operation 저장 및 조회.
account.balance는 operation.amount 합계와 항상 같도록 유지한다.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, AsyncIterator

from core.ledger.errors import (
    NotFoundError,
    PersistenceError,
    TransactionAbortedError,
)
from core.ledger.types import Account, BalanceMismatch, Operation, from_units, to_units
from core.utils.moment import format_day, format_moment

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import ConnectionProvider, SQLiteAdapter

logger = logging.getLogger(__name__)

ACCOUNT = "account"
OPERATION = "operation"

ACCOUNT_COLUMNS = "id, user_id, currency_id, name, balance, moment"
OPERATION_COLUMNS = (
    "id, account_id, operation_type_id, category_id, amount, comment, moment"
)

# 합계 계산과 잔액 기록을 한 문장으로 처리 (동시 쓰기 시 lost update 방지)
# 금액은 정수 단위로 저장되므로 SUM 결과가 그대로 정확한 잔액이다
RECOMPUTE_BALANCE_SQL = """
    UPDATE account
    SET balance = (
        SELECT COALESCE(SUM(amount), 0)
        FROM operation
        WHERE account_id = ?
    )
    WHERE id = ?
"""


class LedgerStore:
    """Ledger 저장소

    모든 호출은 자신만의 연결을 열고 닫는다.
    Operation을 변경하는 호출은 같은 트랜잭션 안에서 계좌 잔액을 재계산한다.

    Args:
        provider: 연결 공급자

    사용 예시:
    ```python
    store = LedgerStore(ConnectionProvider("data/shadowbuddy.db"))

    account_id = await store.create_account(1, "Wallet", Decimal("0"), date(2024, 1, 1), 1)
    await store.create_operation(account_id, 1, Decimal("100"), 1, None, date(2024, 1, 2))
    balance = await store.get_account_balance(account_id)
    ```
    """

    def __init__(self, provider: ConnectionProvider):
        self.provider = provider

    # -------------------------------------------------------------------------
    # 연결 / 트랜잭션
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _connect(
        self,
        entity: str,
        entity_id: int | None = None,
    ) -> AsyncIterator[SQLiteAdapter]:
        """단일 문장용 연결 (autocommit)

        sqlite3 오류는 PersistenceError로 감싼다.
        """
        async with self.provider.acquire() as db:
            try:
                yield db
            except sqlite3.Error as e:
                logger.error(f"{entity} {entity_id} 처리 실패: {e}")
                raise PersistenceError(
                    f"{entity} {entity_id}: {e}", entity, entity_id
                ) from e

    @asynccontextmanager
    async def _transaction(
        self,
        entity: str,
        entity_id: int | None = None,
    ) -> AsyncIterator[SQLiteAdapter]:
        """다중 문장용 트랜잭션

        롤백이 끝난 뒤 sqlite3 오류를 TransactionAbortedError로 감싼다.
        NotFoundError 등 Ledger 예외는 롤백 후 그대로 전파된다.
        """
        async with self.provider.acquire() as db:
            try:
                async with db.transaction():
                    yield db
            except sqlite3.Error as e:
                logger.error(f"{entity} {entity_id} 트랜잭션 롤백: {e}")
                raise TransactionAbortedError(
                    f"{entity} {entity_id}: transaction aborted: {e}",
                    entity,
                    entity_id,
                ) from e

    async def _recompute_balance(self, db: SQLiteAdapter, account_id: int) -> None:
        """계좌 잔액을 operation 합계로 재계산 (호출자의 트랜잭션 안에서 실행)

        Raises:
            NotFoundError: 계좌가 없는 경우
            RuntimeError: 트랜잭션 밖에서 호출된 경우
        """
        if not db.in_transaction:
            raise RuntimeError("잔액 재계산은 트랜잭션 안에서만 실행할 수 있습니다")

        cursor = await db.execute(RECOMPUTE_BALANCE_SQL, (account_id, account_id))
        if cursor.rowcount == 0:
            raise NotFoundError(ACCOUNT, account_id)

    async def _require_account(self, db: SQLiteAdapter, account_id: int) -> None:
        row = await db.fetchone("SELECT 1 FROM account WHERE id = ?", (account_id,))
        if row is None:
            raise NotFoundError(ACCOUNT, account_id)

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def list_operations(
        self,
        account_id: int,
        since: datetime | date,
    ) -> list[Operation]:
        """계좌의 operation 목록 조회

        moment는 일 단위로 비교한다 (시각 무시).
        정렬: moment 오름차순, 같으면 id 오름차순.

        Args:
            account_id: 계좌 ID
            since: 이 날짜(포함) 이후의 operation만 반환

        Returns:
            Operation 목록 (없으면 빈 리스트)
        """
        async with self._connect(OPERATION, account_id) as db:
            rows = await db.fetchall(
                f"""
                SELECT {OPERATION_COLUMNS}
                FROM operation
                WHERE account_id = ?
                  AND substr(moment, 1, 10) >= ?
                ORDER BY moment, id
                """,
                (account_id, format_day(since)),
            )
        return [Operation.from_row(row) for row in rows]

    async def get_account_balance(self, account_id: int) -> Decimal:
        """operation 합계 조회

        Returns:
            amount 합계 (operation이 없으면 0)
        """
        async with self._connect(ACCOUNT, account_id) as db:
            row = await db.fetchone(
                """
                SELECT COALESCE(SUM(amount), 0)
                FROM operation
                WHERE account_id = ?
                """,
                (account_id,),
            )
        return from_units(row[0] if row else 0)

    async def get_account(self, account_id: int) -> Account | None:
        """계좌 단건 조회"""
        async with self._connect(ACCOUNT, account_id) as db:
            row = await db.fetchone(
                f"SELECT {ACCOUNT_COLUMNS} FROM account WHERE id = ?",
                (account_id,),
            )
        return Account.from_row(row) if row else None

    async def list_accounts(self, user_id: int) -> list[Account]:
        """사용자의 계좌 목록 (id 오름차순)"""
        async with self._connect(ACCOUNT) as db:
            rows = await db.fetchall(
                f"SELECT {ACCOUNT_COLUMNS} FROM account WHERE user_id = ? ORDER BY id",
                (user_id,),
            )
        return [Account.from_row(row) for row in rows]

    async def get_operation(self, operation_id: int) -> Operation | None:
        """operation 단건 조회"""
        async with self._connect(OPERATION, operation_id) as db:
            row = await db.fetchone(
                f"SELECT {OPERATION_COLUMNS} FROM operation WHERE id = ?",
                (operation_id,),
            )
        return Operation.from_row(row) if row else None

    async def find_balance_mismatches(self) -> list[BalanceMismatch]:
        """저장된 잔액이 operation 합계와 다른 계좌 검색

        set_balance_direct / update_account로 잔액을 직접 덮어쓴 경우 발생.
        """
        async with self._connect(ACCOUNT) as db:
            rows = await db.fetchall(
                """
                SELECT
                    a.id,
                    a.balance,
                    COALESCE(SUM(o.amount), 0) AS ops_sum
                FROM account a
                LEFT JOIN operation o ON o.account_id = a.id
                GROUP BY a.id, a.balance
                HAVING a.balance != COALESCE(SUM(o.amount), 0)
                ORDER BY a.id
                """
            )
        return [
            BalanceMismatch(
                account_id=row[0],
                stored_balance=from_units(row[1]),
                operations_sum=from_units(row[2]),
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Account 변경
    # -------------------------------------------------------------------------

    async def create_account(
        self,
        user_id: int,
        name: str,
        balance: Decimal,
        initial_moment: datetime | date,
        currency_id: int,
    ) -> int:
        """계좌 생성

        balance는 호출자가 준 값을 그대로 저장한다 (검증하지 않음).

        Returns:
            생성된 계좌 ID

        Raises:
            PersistenceError: 쓰기 실패 (제약 조건 위반 등)
        """
        async with self._connect(ACCOUNT) as db:
            cursor = await db.execute(
                """
                INSERT INTO account (user_id, currency_id, balance, name, moment)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    currency_id,
                    to_units(balance),
                    name,
                    format_moment(initial_moment),
                ),
            )
            account_id = cursor.lastrowid

        logger.debug(f"Created account: {account_id} (user={user_id})")
        return account_id

    async def update_account(
        self,
        account_id: int,
        name: str,
        balance: Decimal,
        moment: datetime | date,
        currency_id: int,
    ) -> None:
        """계좌 정보 덮어쓰기

        balance도 그대로 덮어쓴다 (관리자 보정용).
        operation 합계와 달라질 수 있으며 find_balance_mismatches로 확인 가능.

        Raises:
            NotFoundError: 계좌가 없는 경우
            PersistenceError: 쓰기 실패
        """
        async with self._connect(ACCOUNT, account_id) as db:
            cursor = await db.execute(
                """
                UPDATE account
                SET currency_id = ?,
                    balance = ?,
                    name = ?,
                    moment = ?
                WHERE id = ?
                """,
                (
                    currency_id,
                    to_units(balance),
                    name,
                    format_moment(moment),
                    account_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(ACCOUNT, account_id)

        logger.debug(f"Updated account: {account_id}")

    async def delete_account(self, account_id: int) -> bool:
        """계좌 삭제

        소속 operation은 외래 키 ON DELETE CASCADE로 함께 삭제된다.
        없는 ID는 오류 없이 무시한다.

        Returns:
            삭제된 행이 있으면 True
        """
        async with self._connect(ACCOUNT, account_id) as db:
            cursor = await db.execute(
                "DELETE FROM account WHERE id = ?",
                (account_id,),
            )
            deleted = cursor.rowcount > 0

        logger.debug(f"Delete account {account_id}: deleted={deleted}")
        return deleted

    async def set_balance_direct(self, account_id: int, amount: Decimal) -> None:
        """잔액을 주어진 값으로 직접 덮어쓰기 (operation 합계 무시)

        Raises:
            NotFoundError: 계좌가 없는 경우
        """
        async with self._connect(ACCOUNT, account_id) as db:
            cursor = await db.execute(
                "UPDATE account SET balance = ? WHERE id = ?",
                (to_units(amount), account_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(ACCOUNT, account_id)

        logger.info(f"Balance overwritten: account={account_id}, balance={amount}")

    async def recompute_balance(self, account_id: int) -> Decimal:
        """잔액을 operation 합계로 재계산하여 저장

        Returns:
            재계산된 잔액

        Raises:
            NotFoundError: 계좌가 없는 경우
        """
        async with self._transaction(ACCOUNT, account_id) as db:
            await self._recompute_balance(db, account_id)
            row = await db.fetchone(
                "SELECT balance FROM account WHERE id = ?",
                (account_id,),
            )
        return from_units(row[0])

    # -------------------------------------------------------------------------
    # Operation 변경 (모두 잔액 재계산 포함)
    # -------------------------------------------------------------------------

    async def create_operation(
        self,
        account_id: int,
        operation_type_id: int,
        amount: Decimal,
        category_id: int,
        comment: str | None,
        moment: datetime | date,
    ) -> int:
        """operation 생성 + 잔액 재계산 (단일 트랜잭션)

        Returns:
            생성된 operation ID

        Raises:
            NotFoundError: 계좌가 없는 경우
            TransactionAbortedError: 쓰기 실패 (롤백 완료)
            ValueError: 금액이 숫자가 아니거나 저장 범위를 넘는 경우
        """
        units = to_units(amount)
        async with self._transaction(OPERATION) as db:
            await self._require_account(db, account_id)
            cursor = await db.execute(
                """
                INSERT INTO operation (
                    account_id, operation_type_id, amount, category_id, comment, moment
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    account_id,
                    operation_type_id,
                    units,
                    category_id,
                    comment,
                    format_moment(moment),
                ),
            )
            operation_id = cursor.lastrowid
            await self._recompute_balance(db, account_id)

        logger.debug(f"Created operation: {operation_id} (account={account_id})")
        return operation_id

    async def update_operation(
        self,
        account_id: int,
        operation_id: int,
        operation_type_id: int,
        amount: Decimal,
        category_id: int,
        comment: str | None,
        moment: datetime | date,
    ) -> None:
        """operation 수정 + 잔액 재계산 (단일 트랜잭션)

        두 단계가 함께 커밋되거나 함께 롤백된다.

        Raises:
            NotFoundError: 해당 계좌에 operation이 없는 경우
            TransactionAbortedError: 어느 단계든 실패 (롤백 완료)
        """
        async with self._transaction(OPERATION, operation_id) as db:
            cursor = await db.execute(
                """
                UPDATE operation
                SET operation_type_id = ?,
                    amount = ?,
                    category_id = ?,
                    comment = ?,
                    moment = ?
                WHERE id = ? AND account_id = ?
                """,
                (
                    operation_type_id,
                    to_units(amount),
                    category_id,
                    comment,
                    format_moment(moment),
                    operation_id,
                    account_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(OPERATION, operation_id)

            await self._recompute_balance(db, account_id)

        logger.debug(f"Updated operation: {operation_id} (account={account_id})")

    async def delete_operation(self, operation_id: int) -> bool:
        """operation 삭제 + 잔액 재계산 (단일 트랜잭션)

        없는 ID는 오류 없이 무시한다.

        Returns:
            삭제된 행이 있으면 True

        Raises:
            TransactionAbortedError: 쓰기 실패 (롤백 완료)
        """
        async with self._transaction(OPERATION, operation_id) as db:
            row = await db.fetchone(
                "SELECT account_id FROM operation WHERE id = ?",
                (operation_id,),
            )
            if row is None:
                deleted = False
            else:
                await db.execute(
                    "DELETE FROM operation WHERE id = ?",
                    (operation_id,),
                )
                await self._recompute_balance(db, row[0])
                deleted = True

        logger.debug(f"Delete operation {operation_id}: deleted={deleted}")
        return deleted
