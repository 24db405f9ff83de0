"""
Ledger 타입 정의

Account / Operation 레코드와 잔액 검증 결과.
모든 금액은 Decimal로 다루고, DB에는 10^-AMOUNT_SCALE 단위 정수로 저장한다.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any

from core.constants import Defaults
from core.utils.moment import parse_moment

# SQLite INTEGER (64비트) 범위
MAX_UNITS = 2**63 - 1
MIN_UNITS = -(2**63)


def to_units(value: Decimal | int | float | str) -> int:
    """금액을 저장용 정수(10^-AMOUNT_SCALE 단위)로 변환

    AMOUNT_SCALE보다 아래 자릿수는 ROUND_HALF_EVEN으로 반올림한다.
    float은 repr 문자열을 거쳐 이진 오차가 그대로 넘어오지 않게 한다.

    Raises:
        ValueError: 숫자가 아니거나 SQLite INTEGER 범위를 넘는 경우
    """
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")

    units = int(
        amount.scaleb(Defaults.AMOUNT_SCALE).to_integral_value(rounding=ROUND_HALF_EVEN)
    )
    if not MIN_UNITS <= units <= MAX_UNITS:
        raise ValueError(f"Amount out of range: {value!r}")
    return units


def from_units(value: Any) -> Decimal:
    """저장된 정수 금액을 Decimal로 변환 (None은 0)"""
    if value is None:
        return Decimal("0")
    return Decimal(int(value)).scaleb(-Defaults.AMOUNT_SCALE)


@dataclass(frozen=True)
class Account:
    """계좌

    balance는 파생 값: 해당 계좌 Operation amount 합계와 같아야 한다.
    """

    id: int
    user_id: int
    currency_id: int
    name: str
    balance: Decimal
    moment: datetime  # 개설일

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "Account":
        """SELECT id, user_id, currency_id, name, balance, moment 결과 변환"""
        return cls(
            id=row[0],
            user_id=row[1],
            currency_id=row[2],
            name=row[3],
            balance=from_units(row[4]),
            moment=parse_moment(row[5]),
        )


@dataclass(frozen=True)
class Operation:
    """입출금 내역

    amount 부호: 양수 = 입금(credit), 음수 = 출금(debit)
    """

    id: int
    account_id: int
    operation_type_id: int
    category_id: int
    amount: Decimal
    comment: str | None
    moment: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> "Operation":
        """SELECT id, account_id, operation_type_id, category_id, amount, comment, moment 결과 변환"""
        return cls(
            id=row[0],
            account_id=row[1],
            operation_type_id=row[2],
            category_id=row[3],
            amount=from_units(row[4]),
            comment=row[5],
            moment=parse_moment(row[6]),
        )


@dataclass(frozen=True)
class BalanceMismatch:
    """저장된 잔액과 Operation 합계가 다른 계좌"""

    account_id: int
    stored_balance: Decimal
    operations_sum: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.operations_sum
