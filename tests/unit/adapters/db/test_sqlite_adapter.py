"""
SQLite 어댑터 테스트

SQLiteAdapter, ConnectionProvider 및 관련 함수 테스트.
"""

import asyncio
import sqlite3
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import (
    ConnectionProvider,
    SQLiteAdapter,
    create_connection,
    parse_connection_string,
)
from core.ledger.errors import StoreConnectionError


class TestParseConnectionString:
    """parse_connection_string 테스트"""

    def test_plain_path(self) -> None:
        """경로 그대로"""
        assert parse_connection_string("data/ledger.db") == Path("data/ledger.db")

    def test_data_source(self) -> None:
        """ADO 스타일"""
        path = parse_connection_string("Data Source=data/ledger.db;Cache=Shared")

        assert path == Path("data/ledger.db")

    def test_data_source_case_insensitive(self) -> None:
        """키 대소문자 무시"""
        assert parse_connection_string("data source=x.db") == Path("x.db")

    def test_memory(self) -> None:
        """인메모리"""
        assert parse_connection_string(":memory:") == ":memory:"
        assert parse_connection_string("Data Source=:memory:") == ":memory:"

    def test_missing_data_source(self) -> None:
        """Data Source 누락"""
        with pytest.raises(StoreConnectionError):
            parse_connection_string("Cache=Shared")

    def test_empty(self) -> None:
        """빈 문자열"""
        with pytest.raises(StoreConnectionError):
            parse_connection_string("   ")


class TestCreateConnection:
    """create_connection 테스트"""

    @pytest.mark.asyncio
    async def test_create_connection(self, tmp_path: Path) -> None:
        """연결 생성 (WAL, 외래 키)"""
        db_path = tmp_path / "test.db"

        conn = await create_connection(db_path)

        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].upper() == "WAL"

        cursor = await conn.execute("PRAGMA foreign_keys")
        row = await cursor.fetchone()
        assert row[0] == 1

        await conn.close()

    @pytest.mark.asyncio
    async def test_busy_timeout(self, tmp_path: Path) -> None:
        """busy_timeout 설정"""
        conn = await create_connection(tmp_path / "test.db", busy_timeout_ms=1234)

        cursor = await conn.execute("PRAGMA busy_timeout")
        row = await cursor.fetchone()
        assert row[0] == 1234

        await conn.close()

    @pytest.mark.asyncio
    async def test_autocommit(self, tmp_path: Path) -> None:
        """트랜잭션 밖의 문장은 바로 커밋"""
        conn = await create_connection(tmp_path / "test.db")

        await conn.execute("CREATE TABLE t (id INTEGER)")
        await conn.execute("INSERT INTO t (id) VALUES (1)")

        assert conn.in_transaction is False

        await conn.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """부모 디렉토리 생성"""
        db_path = tmp_path / "subdir" / "test.db"

        conn = await create_connection(db_path)

        assert db_path.parent.exists()

        await conn.close()

    @pytest.mark.asyncio
    async def test_parent_is_a_file(self, tmp_path: Path) -> None:
        """부모 경로가 파일이면 디렉토리를 만들 수 없음"""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(StoreConnectionError) as exc_info:
            await create_connection(blocker / "sub" / "ledger.db")

        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_unopenable_path(self, tmp_path: Path) -> None:
        """디렉토리 경로는 열 수 없음"""
        with pytest.raises(StoreConnectionError):
            await create_connection(tmp_path)

    @pytest.mark.asyncio
    async def test_readonly_missing_file(self, tmp_path: Path) -> None:
        """존재하지 않는 파일을 읽기 전용으로 열기"""
        with pytest.raises(StoreConnectionError):
            await create_connection(tmp_path / "missing.db", readonly=True)

    @pytest.mark.asyncio
    async def test_connection_error_is_builtin_connection_error(
        self, tmp_path: Path
    ) -> None:
        """내장 ConnectionError로도 잡힘"""
        with pytest.raises(ConnectionError):
            await create_connection(tmp_path)


class TestSQLiteAdapter:
    """SQLiteAdapter 테스트"""

    @pytest_asyncio.fixture
    async def adapter(self, tmp_path: Path) -> SQLiteAdapter:
        """어댑터 픽스처"""
        db_path = tmp_path / "test.db"
        adapter = SQLiteAdapter(db_path)
        await adapter.connect()
        yield adapter
        await adapter.close()

    @pytest.mark.asyncio
    async def test_connect_and_close(self, tmp_path: Path) -> None:
        """연결 및 종료"""
        adapter = SQLiteAdapter(tmp_path / "test.db")

        assert adapter.is_connected is False

        await adapter.connect()
        assert adapter.is_connected is True

        await adapter.close()
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_execute_without_connection(self, tmp_path: Path) -> None:
        """연결 전 실행"""
        adapter = SQLiteAdapter(tmp_path / "test.db")

        with pytest.raises(StoreConnectionError):
            await adapter.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_execute(self, adapter: SQLiteAdapter) -> None:
        """SQL 실행"""
        await adapter.execute(
            "CREATE TABLE test (id INTEGER PRIMARY KEY, name TEXT)"
        )
        await adapter.execute(
            "INSERT INTO test (name) VALUES (?)",
            ("테스트",),
        )

        row = await adapter.fetchone("SELECT name FROM test WHERE id = 1")
        assert row[0] == "테스트"

    @pytest.mark.asyncio
    async def test_fetchall(self, adapter: SQLiteAdapter) -> None:
        """전체 조회"""
        await adapter.execute("CREATE TABLE items (value TEXT)")
        for value in ("C", "A", "B"):
            await adapter.execute("INSERT INTO items (value) VALUES (?)", (value,))

        rows = await adapter.fetchall("SELECT value FROM items ORDER BY value")

        assert [row[0] for row in rows] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_transaction_commit(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 커밋"""
        await adapter.execute("CREATE TABLE tx_test (id INTEGER)")

        async with adapter.transaction() as db:
            assert adapter.in_transaction is True
            await db.execute("INSERT INTO tx_test (id) VALUES (1)")
            await db.execute("INSERT INTO tx_test (id) VALUES (2)")

        assert adapter.in_transaction is False
        rows = await adapter.fetchall("SELECT id FROM tx_test")
        assert len(rows) == 2

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, adapter: SQLiteAdapter) -> None:
        """트랜잭션 롤백"""
        await adapter.execute("CREATE TABLE tx_test2 (id INTEGER)")

        with pytest.raises(ValueError):
            async with adapter.transaction() as db:
                await db.execute("INSERT INTO tx_test2 (id) VALUES (1)")
                raise ValueError("의도적 에러")

        assert adapter.in_transaction is False
        rows = await adapter.fetchall("SELECT id FROM tx_test2")
        assert len(rows) == 0

    @pytest.mark.asyncio
    async def test_transaction_rollback_on_cancel(
        self, adapter: SQLiteAdapter
    ) -> None:
        """취소 시에도 롤백"""
        await adapter.execute("CREATE TABLE tx_cancel (id INTEGER)")

        with pytest.raises(asyncio.CancelledError):
            async with adapter.transaction() as db:
                await db.execute("INSERT INTO tx_cancel (id) VALUES (1)")
                raise asyncio.CancelledError()

        rows = await adapter.fetchall("SELECT id FROM tx_cancel")
        assert rows == []

    @pytest.mark.asyncio
    async def test_transaction_holds_write_lock(self, tmp_path: Path) -> None:
        """BEGIN IMMEDIATE: 트랜잭션 중 다른 연결의 쓰기 차단"""
        db_path = tmp_path / "lock.db"

        async with SQLiteAdapter(db_path) as first, SQLiteAdapter(
            db_path, busy_timeout_ms=0
        ) as second:
            await first.execute("CREATE TABLE t (id INTEGER)")

            async with first.transaction():
                with pytest.raises(sqlite3.OperationalError):
                    await second.execute("INSERT INTO t (id) VALUES (1)")

    @pytest.mark.asyncio
    async def test_table_exists(self, adapter: SQLiteAdapter) -> None:
        """테이블 존재 확인"""
        assert await adapter.table_exists("nonexistent") is False

        await adapter.execute("CREATE TABLE existing (id INTEGER)")

        assert await adapter.table_exists("existing") is True

    @pytest.mark.asyncio
    async def test_get_table_info(self, adapter: SQLiteAdapter) -> None:
        """테이블 컬럼 정보"""
        await adapter.execute(
            "CREATE TABLE info (id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
        )

        columns = await adapter.get_table_info("info")

        assert [c["name"] for c in columns] == ["id", "name"]
        assert columns[0]["pk"] is True
        assert columns[1]["notnull"] is True

    @pytest.mark.asyncio
    async def test_context_manager(self, tmp_path: Path) -> None:
        """컨텍스트 매니저"""
        async with SQLiteAdapter(tmp_path / "ctx_test.db") as adapter:
            assert adapter.is_connected is True
            await adapter.execute("CREATE TABLE ctx (id INTEGER)")

        assert adapter.is_connected is False


class TestConnectionProvider:
    """ConnectionProvider 테스트"""

    def test_parses_connection_string(self, tmp_path: Path) -> None:
        """연결 문자열 해석"""
        provider = ConnectionProvider(f"Data Source={tmp_path / 'a.db'}")

        assert provider.db_path == tmp_path / "a.db"

    @pytest.mark.asyncio
    async def test_acquire_returns_fresh_connection(self, tmp_path: Path) -> None:
        """호출마다 새 연결"""
        provider = ConnectionProvider(str(tmp_path / "p.db"))

        async with provider.acquire() as first:
            async with provider.acquire() as second:
                assert first is not second
                assert first.is_connected and second.is_connected

    @pytest.mark.asyncio
    async def test_acquire_releases_on_exit(self, tmp_path: Path) -> None:
        """정상 종료 시 연결 해제"""
        provider = ConnectionProvider(str(tmp_path / "p.db"))

        async with provider.acquire() as db:
            await db.execute("SELECT 1")

        assert db.is_connected is False

    @pytest.mark.asyncio
    async def test_acquire_releases_on_error(self, tmp_path: Path) -> None:
        """예외 발생 시에도 연결 해제"""
        provider = ConnectionProvider(str(tmp_path / "p.db"))

        with pytest.raises(RuntimeError):
            async with provider.acquire() as db:
                raise RuntimeError("boom")

        assert db.is_connected is False

    @pytest.mark.asyncio
    async def test_acquire_uses_busy_timeout(self, tmp_path: Path) -> None:
        """설정된 busy_timeout 적용"""
        provider = ConnectionProvider(str(tmp_path / "p.db"), busy_timeout_ms=777)

        async with provider.acquire() as db:
            row = await db.fetchone("PRAGMA busy_timeout")

        assert row[0] == 777

    @pytest.mark.asyncio
    async def test_acquire_connection_failure(self, tmp_path: Path) -> None:
        """연결 실패"""
        provider = ConnectionProvider(str(tmp_path))

        with pytest.raises(StoreConnectionError):
            async with provider.acquire():
                pass
