"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
연결은 autocommit 모드(isolation_level=None)로 열고,
트랜잭션은 transaction()에서 BEGIN IMMEDIATE로 명시적으로 시작한다.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import Defaults
from core.ledger.errors import StoreConnectionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def parse_connection_string(connection_string: str) -> Path | str:
    """연결 문자열에서 DB 경로 추출

    지원 형식:
    - "data/ledger.db" (경로 그대로)
    - ":memory:"
    - "Data Source=data/ledger.db;Cache=Shared" (ADO 스타일)

    Args:
        connection_string: 설정 파일의 연결 문자열

    Returns:
        DB 파일 경로 (in-memory면 ":memory:" 문자열)

    Raises:
        StoreConnectionError: 경로를 찾을 수 없는 경우
    """
    value = connection_string.strip()
    if "=" in value:
        parts = {}
        for item in value.split(";"):
            if not item.strip():
                continue
            key, _, val = item.partition("=")
            parts[key.strip().lower()] = val.strip()
        value = parts.get("data source") or parts.get("datasource") or ""

    if not value:
        raise StoreConnectionError(
            f"Invalid connection string: {connection_string!r}"
        )

    if value == MEMORY_DB:
        return MEMORY_DB
    return Path(value)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드, autocommit)

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    Returns:
        aiosqlite 연결 객체

    Raises:
        StoreConnectionError: 연결을 열 수 없는 경우
    """
    db_path_str = str(db_path)

    try:
        if db_path_str != MEMORY_DB and not readonly:
            # 디렉토리가 없으면 생성
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        if readonly:
            conn = await aiosqlite.connect(
                f"file:{db_path_str}?mode=ro", uri=True, isolation_level=None
            )
        else:
            conn = await aiosqlite.connect(db_path_str, isolation_level=None)
    except (sqlite3.Error, OSError) as e:
        raise StoreConnectionError(
            f"Cannot open database {db_path_str}: {e}"
        ) from e

    try:
        if not readonly and db_path_str != MEMORY_DB:
            await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        await conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.Error as e:
        await conn.close()
        raise StoreConnectionError(
            f"Cannot configure database {db_path_str}: {e}"
        ) from e

    logger.debug(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    연결 하나를 감싸는 얇은 래퍼.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        async with db.transaction():
            await db.execute("INSERT INTO ...")
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """트랜잭션 진행 중 여부"""
        return self._conn is not None and self._conn.in_transaction

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(
            self.db_path, self.readonly, self.busy_timeout_ms
        )

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug("SQLite 연결 종료")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        if self._conn is None:
            raise StoreConnectionError("Not connected to database")

        if parameters:
            return await self._conn.execute(sql, parameters)
        return await self._conn.execute(sql)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLiteAdapter"]:
        """트랜잭션 컨텍스트 매니저

        BEGIN IMMEDIATE로 시작하여 쓰기 잠금을 먼저 확보한다.
        성공 시 자동 커밋, 예외(취소 포함) 시 자동 롤백.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("UPDATE ...")
            await adapter.execute("UPDATE ...")
            # 성공 시 자동 커밋
        ```
        """
        if self._conn is None:
            raise StoreConnectionError("Not connected to database")

        await self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self
            await self._conn.commit()
        except BaseException:
            # asyncio.CancelledError도 롤백 대상
            try:
                await self._conn.rollback()
            except sqlite3.Error as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def get_table_info(self, table_name: str) -> list[dict[str, Any]]:
        """테이블 정보 조회"""
        rows = await self.fetchall(f"PRAGMA table_info({table_name})")

        columns = []
        for row in rows:
            columns.append({
                "cid": row[0],
                "name": row[1],
                "type": row[2],
                "notnull": bool(row[3]),
                "default_value": row[4],
                "pk": bool(row[5]),
            })

        return columns

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class ConnectionProvider:
    """연결 공급자

    호출마다 새 연결을 열고, 사용 후 반드시 닫는다.
    풀링은 하지 않는다.

    Args:
        connection_string: DB 연결 문자열 (parse_connection_string 참고)
        busy_timeout_ms: 잠금 대기 시간 (밀리초)

    사용 예시:
    ```python
    provider = ConnectionProvider("Data Source=data/shadowbuddy.db")

    async with provider.acquire() as db:
        row = await db.fetchone("SELECT 1")
    ```
    """

    def __init__(
        self,
        connection_string: str,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.connection_string = connection_string
        self.db_path = parse_connection_string(connection_string)
        self.busy_timeout_ms = busy_timeout_ms

    @asynccontextmanager
    async def acquire(self, readonly: bool = False) -> AsyncIterator[SQLiteAdapter]:
        """연결 획득 (종료 시 자동 해제)

        Raises:
            StoreConnectionError: 연결을 열 수 없는 경우
        """
        adapter = SQLiteAdapter(self.db_path, readonly, self.busy_timeout_ms)
        await adapter.connect()
        try:
            yield adapter
        finally:
            await adapter.close()
