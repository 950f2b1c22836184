"""
Database and clock doubles.

Fake aioodbc pool/connection/cursor objects driven by a scripted
`FakeDatabase`, a manually advanced clock, and `QueryResult` shorthands.
"""

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from invport.core.config.settings import Settings
from invport.infrastructure.database.query_executor import QueryResult

TEST_CONNECTION_STRING = (
    "Server=tcp:inventory-test.database.windows.net,1433;Initial Catalog=inventory;"
    "User ID=app;Password=hunter2;Encrypt=True;"
)


# ============================================================================
# Settings
# ============================================================================


def make_settings(**overrides) -> Settings:
    values = {
        "SQL_CONN_STRING": TEST_CONNECTION_STRING,
        "DB_CONNECT_ATTEMPTS": 1,
        "DB_CONNECT_RETRY_DELAY": 0.0,
        "DB_QUERY_TIMEOUT": 5.0,
        "CB_FAILURE_THRESHOLD": 5,
        "CB_RECOVERY_TIMEOUT": 60.0,
        "RATE_LIMIT_ENABLED": False,
        "OUTBOUND_THROTTLE_ENABLED": False,
        "LOG_LEVEL": "WARNING",
        "LOG_FORMAT": "console",
        "ENVIRONMENT": "production",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Manually advanced clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ============================================================================
# Fake aioodbc objects
# ============================================================================


@dataclass
class ResultSet:
    """One statement's outcome: rows with columns, or an affected-row count."""

    columns: list[str] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)
    rowcount: int = -1

    @classmethod
    def of(cls, *records: dict[str, Any]) -> "ResultSet":
        columns = list(records[0]) if records else ["value"]
        return cls(columns=columns, rows=[tuple(r[c] for c in columns) for r in records])

    @classmethod
    def affected(cls, count: int) -> "ResultSet":
        return cls(rowcount=count)


Response = list[ResultSet] | Exception | Callable[[str, tuple], Any]


class FakeDatabase:
    """
    Scripted database: the first rule whose pattern matches the SQL decides
    the response. Every executed statement is recorded. ``execute_delay``
    makes every statement take that many seconds.
    """

    def __init__(self):
        self.rules: list[tuple[re.Pattern, Response]] = []
        self.executed: list[tuple[str, tuple]] = []
        self.execute_delay = 0.0

    def on(self, pattern: str, response: Response) -> "FakeDatabase":
        self.rules.append((re.compile(pattern, re.IGNORECASE | re.DOTALL), response))
        return self

    def respond(self, sql: str, values: tuple) -> list[ResultSet]:
        self.executed.append((sql, values))
        for pattern, response in self.rules:
            if pattern.search(sql):
                if callable(response) and not isinstance(response, Exception):
                    response = response(sql, values)
                if isinstance(response, Exception):
                    raise response
                return response
        return [ResultSet.affected(0)]

    def statements(self, pattern: str) -> list[tuple[str, tuple]]:
        regex = re.compile(pattern, re.IGNORECASE | re.DOTALL)
        return [entry for entry in self.executed if regex.search(entry[0])]


class FakeCursor:
    def __init__(self, database: FakeDatabase):
        self._database = database
        self._results: list[ResultSet] = []
        self._index = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql: str, *values):
        if self._database.execute_delay:
            await asyncio.sleep(self._database.execute_delay)
        self._results = self._database.respond(sql, values) or [ResultSet.affected(0)]
        self._index = 0

    @property
    def _current(self) -> ResultSet:
        return self._results[self._index]

    @property
    def description(self):
        current = self._current
        if not current.columns:
            return None
        return [(name, None, None, None, None, None, None) for name in current.columns]

    @property
    def rowcount(self) -> int:
        return self._current.rowcount

    async def fetchall(self):
        return list(self._current.rows)

    async def nextset(self) -> bool:
        if self._index + 1 < len(self._results):
            self._index += 1
            return True
        return False


class FakeConnection:
    def __init__(self, database: FakeDatabase):
        self._database = database

    def cursor(self) -> FakeCursor:
        return FakeCursor(self._database)


class _Acquire:
    def __init__(self, pool: "FakePool"):
        self._pool = pool

    async def __aenter__(self) -> FakeConnection:
        self._pool.acquired += 1
        return FakeConnection(self._pool.database)

    async def __aexit__(self, *exc):
        return False


class FakePool:
    def __init__(self, database: FakeDatabase):
        self.database = database
        self.closed = False
        self.acquired = 0

    def acquire(self) -> _Acquire:
        return _Acquire(self)

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


# ============================================================================
# Executor doubles
# ============================================================================


def ok(*rows: dict[str, Any], row_count: int = 0) -> QueryResult:
    return QueryResult(success=True, data=list(rows), row_count=row_count)


def scalar(value: Any) -> QueryResult:
    return QueryResult(success=True, data=[value])


def failed(message: str = "Connection refused") -> QueryResult:
    return QueryResult(success=False, error=message, error_type="DatabaseConnectionError")

