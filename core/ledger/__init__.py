"""
개인 가계부 Ledger

계좌(Account)와 입출금 내역(Operation)을 저장하고,
계좌 잔액이 항상 내역 합계와 같도록 유지한다.

사용 예시:
```python
from adapters.db import ConnectionProvider
from core.ledger import LedgerStore, init_ledger_schema

provider = ConnectionProvider("Data Source=data/shadowbuddy.db")

# 스키마 초기화
async with provider.acquire() as db:
    await init_ledger_schema(db)

store = LedgerStore(provider)

# 계좌 생성 및 내역 추가 (잔액 자동 재계산)
account_id = await store.create_account(1, "Wallet", Decimal("0"), date(2024, 1, 1), 1)
await store.create_operation(account_id, 1, Decimal("100"), 1, None, date(2024, 1, 2))

# 잔액 조회
balance = await store.get_account_balance(account_id)
```
"""

from core.ledger.errors import (
    LedgerError,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
    TransactionAbortedError,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.ledger.types import Account, BalanceMismatch, Operation

__all__ = [
    # 핵심 클래스
    "LedgerStore",
    "init_ledger_schema",
    # 타입
    "Account",
    "Operation",
    "BalanceMismatch",
    # 예외
    "LedgerError",
    "StoreConnectionError",
    "PersistenceError",
    "NotFoundError",
    "TransactionAbortedError",
]
