"""
데이터베이스 어댑터

SQLite WAL 모드 연결 관리.
"""

from adapters.db.sqlite_adapter import (
    ConnectionProvider,
    SQLiteAdapter,
    create_connection,
    parse_connection_string,
)

__all__ = [
    "ConnectionProvider",
    "SQLiteAdapter",
    "create_connection",
    "parse_connection_string",
]
