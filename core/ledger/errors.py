"""
Ledger 예외 정의

저장소 계층에서 발생하는 실패 유형.
모든 예외는 LedgerError를 상속하며, 원인 예외는 __cause__로 연결된다.
"""


class LedgerError(Exception):
    """Ledger 예외 기본 클래스"""

    pass


class StoreConnectionError(LedgerError, ConnectionError):
    """DB 연결 생성 실패"""

    pass


class PersistenceError(LedgerError):
    """읽기/쓰기 실패 (제약 조건 위반, 쿼리 오류 등)

    Args:
        message: 오류 메시지
        entity: 대상 엔티티 ("account" / "operation")
        entity_id: 대상 ID (생성 중이면 None)
    """

    def __init__(
        self,
        message: str,
        entity: str | None = None,
        entity_id: int | None = None,
    ):
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class TransactionAbortedError(PersistenceError):
    """다중 문장 트랜잭션이 중간에 실패하여 롤백됨"""

    pass


class NotFoundError(LedgerError):
    """대상 행이 존재하지 않음"""

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id
