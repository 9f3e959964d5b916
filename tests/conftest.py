"""
Pytest configuration and shared fixtures for dsync tests.

The fake pool here stands in for aiomysql: it counts acquisitions and
releases, records every statement, and answers information_schema queries
from an in-memory table catalog that CREATE/ALTER statements update.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

import pytest
import yaml
from pymysql.err import OperationalError, ProgrammingError

from dsync.config import DSyncConfig
from dsync.database.connection import ConnectionConfig
from dsync.database.executor import QueryExecutor
from dsync.database.introspection import SchemaInspector
from dsync.schema.reconciler import SchemaReconciler
from dsync.schema.specs import ColumnSpec, KeySpec, TableSpec


DATABASE = "app_db"


def deadlock_error() -> OperationalError:
    return OperationalError(1213, "Deadlock found when trying to get lock; try restarting transaction")


# ============================================================================
# Fake pool
# ============================================================================

class FakeConnection:
    """Pooled connection stand-in that delegates to its FakePool."""

    def __init__(self, pool: "FakePool"):
        self.pool = pool

    async def execute(self, query: str, params: Optional[Sequence[Any]] = None):
        return await self.pool.handle(query, params)

    async def ping(self) -> None:
        self.pool.pings += 1
        if self.pool.ping_failures:
            self.pool.ping_failures -= 1
            raise OperationalError(2003, "Can't connect to MySQL server")


class FakePool:
    """
    In-memory pool with a tiny information_schema.

    ``failures`` is a queue of exceptions raised by the next statements, one
    per statement, before the catalog is consulted; ``None`` lets a
    statement through. ``fail_on`` maps a SQL prefix to an exception raised
    every time a matching statement runs.
    """

    def __init__(self, tables: Optional[Dict[str, List[str]]] = None):
        self.tables: Dict[str, List[str]] = {
            name: list(columns) for name, columns in (tables or {}).items()
        }
        self.acquired = 0
        self.released = 0
        self.pings = 0
        self.ping_failures = 0
        self.acquire_failures = 0
        self.failures: List[Optional[Exception]] = []
        self.fail_on: Dict[str, Exception] = {}
        self.executed: List[tuple] = []
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False

    @property
    def ddl(self) -> List[str]:
        return [q for q, _ in self.executed if q.startswith(("CREATE", "ALTER"))]

    async def acquire(self) -> FakeConnection:
        if self.acquire_failures:
            self.acquire_failures -= 1
            raise OperationalError(2003, "Can't connect to MySQL server")
        self.acquired += 1
        return FakeConnection(self)

    async def release(self, connection: FakeConnection) -> None:
        self.released += 1

    async def ping(self, connection: FakeConnection) -> None:
        await connection.ping()

    async def handle(self, query: str, params: Optional[Sequence[Any]]):
        query = " ".join(query.split())
        self.executed.append((query, params))

        if self.failures:
            error = self.failures.pop(0)
            if error is not None:
                raise error
        for prefix, error in self.fail_on.items():
            if query.startswith(prefix):
                raise error

        if "information_schema.tables" in query:
            _, table = params
            return [{"table_count": 1 if table in self.tables else 0}]
        if "information_schema.columns" in query:
            _, table = params
            return [
                {
                    "column_name": name,
                    "is_nullable": "YES",
                    "column_type": "varchar(255)",
                    "column_default": None,
                }
                for name in self.tables.get(table, [])
            ]
        if query.startswith("CREATE TABLE"):
            table = re.match(r"CREATE TABLE `([^`]+)`", query).group(1)
            if table in self.tables:
                raise OperationalError(1050, f"Table '{table}' already exists")
            body = query[query.index("(") + 1:query.rindex(")")]
            self.tables[table] = re.findall(r"`([^`]+)`", body)
            return []
        if query.startswith("ALTER TABLE"):
            table = re.match(r"ALTER TABLE `([^`]+)`", query).group(1)
            if table not in self.tables:
                raise ProgrammingError(1146, f"Table '{DATABASE}.{table}' doesn't exist")
            self.tables[table].extend(re.findall(r"ADD COLUMN `([^`]+)`", query))
            return []
        return [{"value": 1}]


# ============================================================================
# Component fixtures
# ============================================================================

@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def sleeps() -> List[float]:
    """Delays requested by the executor, in order."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def sleep(delay: float) -> None:
        sleeps.append(delay)
    return sleep


@pytest.fixture
def executor(fake_pool, fake_sleep) -> QueryExecutor:
    return QueryExecutor(fake_pool, sleep=fake_sleep)


@pytest.fixture
def inspector(executor) -> SchemaInspector:
    return SchemaInspector(executor, DATABASE)


@pytest.fixture
def reconciler(executor, inspector) -> SchemaReconciler:
    return SchemaReconciler(executor, inspector)


# ============================================================================
# Spec fixtures
# ============================================================================

@pytest.fixture
def users_spec() -> TableSpec:
    return TableSpec(
        name="users",
        columns=[
            ColumnSpec(name="id", type="INT"),
            ColumnSpec(name="name", type="VARCHAR(255)"),
        ],
        auto_increment="id INT AUTO_INCREMENT",
    )


@pytest.fixture
def orders_spec() -> TableSpec:
    return TableSpec(
        name="orders",
        columns=[
            ColumnSpec(name="id", type="INT NOT NULL"),
            ColumnSpec(name="user_id", type="INT NOT NULL"),
            ColumnSpec(name="paid", type="TINYINT(1) NOT NULL DEFAULT 0"),
        ],
        keys=[
            KeySpec(name="PRIMARY KEY", type="(id)"),
            KeySpec(name="KEY idx_user", type="(user_id)"),
        ],
        auto_increment="id INT NOT NULL AUTO_INCREMENT",
    )


# ============================================================================
# Configuration fixtures
# ============================================================================

@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        host="localhost",
        user="app",
        password="secret",
        database=DATABASE,
    )


@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    return {
        "database": {
            "host": "localhost",
            "port": 3306,
            "user": "app",
            "password": "secret",
            "database": DATABASE,
            "connection_limit": 5,
        },
        "tables": [
            {
                "name": "users",
                "columns": [
                    {"name": "id", "type": "INT NOT NULL"},
                    {"name": "email", "type": "VARCHAR(255) NOT NULL"},
                ],
                "keys": [{"name": "PRIMARY KEY", "type": "(id)"}],
                "auto_increment": "id INT NOT NULL AUTO_INCREMENT",
            }
        ],
        "retry": {"max_retries": 2, "retry_delay": 0.05},
    }


@pytest.fixture
def sample_config(sample_config_data) -> DSyncConfig:
    return DSyncConfig(**sample_config_data)


@pytest.fixture
def config_file(tmp_path, sample_config_data) -> str:
    path = tmp_path / "dsync.yaml"
    path.write_text(yaml.safe_dump(sample_config_data))
    return str(path)
