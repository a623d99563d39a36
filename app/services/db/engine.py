import itertools
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from asyncpg import exceptions as asyncpg_exceptions
from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import URL, Result
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import text
from sqlalchemy.sql.elements import TextClause

from .errors import ConstraintViolation, StorageError, StorageUnavailable
from .settings import DbSettings, settings

logger = logging.getLogger("database")

# A quoted literal is matched first so a "?" inside it is never treated as a
# placeholder.
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\?")

# sqlite reports syntax errors and missing tables as OperationalError too
_SQLITE_STATEMENT_ERRORS = {"SQLITE_ERROR", "SQLITE_RANGE", "SQLITE_MISMATCH"}


@dataclass(frozen=True)
class ExecuteResult:
    affected_count: int
    inserted_id: int | None = None


def translate_placeholders(
    sql: str, params: Sequence[Any] = ()
) -> tuple[TextClause, dict[str, Any]]:
    """
    Rewrites ordinal "?" placeholders into SQLAlchemy named binds
    (:p1, :p2, ...). Each dialect then compiles the binds into its own
    paramstyle, "?" for sqlite and "$1" for asyncpg.

        translate_placeholders("SELECT * FROM t WHERE a = ? AND b = ?", ("x", 1))
        -> text("SELECT * FROM t WHERE a = :p1 AND b = :p2"), {"p1": "x", "p2": 1}
    """
    counter = itertools.count(1)

    def substitute(match: re.Match) -> str:
        token = match.group(0)
        if token != "?":
            # keep colons inside literals away from the bind parser
            return token.replace(":", "\\:")
        return f":p{next(counter)}"

    rendered = _PLACEHOLDER_RE.sub(substitute, sql)
    placeholders = next(counter) - 1
    if placeholders != len(params):
        raise StorageError(
            f"Statement expects {placeholders} parameters, got {len(params)}"
        )

    binds = {f"p{index}": value for index, value in enumerate(params, start=1)}
    return text(rendered), binds


def to_storage_error(exc: BaseException) -> StorageError:
    """Maps a driver-level exception onto the storage error taxonomy."""
    orig = getattr(exc, "orig", None)
    message = str(orig if orig is not None else exc)

    if isinstance(exc, IntegrityError):
        return ConstraintViolation(message)

    if isinstance(exc, OperationalError):
        if getattr(orig, "sqlite_errorname", None) in _SQLITE_STATEMENT_ERRORS:
            return StorageError(message)
        return StorageUnavailable(message)

    if isinstance(exc, (InterfaceError, DisconnectionError, OSError)):
        return StorageUnavailable(message)

    if isinstance(
        exc, (asyncpg_exceptions.PostgresError, asyncpg_exceptions.InterfaceError)
    ):
        # raised untranslated when the pool opens a new connection
        return StorageUnavailable(message)

    if getattr(exc, "connection_invalidated", False):
        return StorageUnavailable(message)

    return StorageError(message)


def _all_rows(result: Result) -> list[dict[str, Any]]:
    return [dict(row) for row in result.mappings().all()]


def _first_row(result: Result) -> dict[str, Any] | None:
    row = result.mappings().first()
    return dict(row) if row is not None else None


def _summary(result: Result, use_lastrowid: bool) -> ExecuteResult:
    inserted_id = None
    if result.returns_rows:
        row = result.mappings().first()
        if row is not None:
            inserted_id = row.get("id")
    elif use_lastrowid:
        inserted_id = result.lastrowid or None

    return ExecuteResult(
        affected_count=max(result.rowcount, 0), inserted_id=inserted_id
    )


class StorageDriver(ABC):
    """
    Parameterized SQL against one configured engine.

    Statements always use ordinal "?" placeholders; rows come back as plain
    dicts. Every driver-level failure is re-raised as a StorageError subclass
    and nothing is logged here.
    """

    dialect_name: str
    engine: Any

    @property
    def location(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    @abstractmethod
    async def query_many(
        self, sql: str, params: Sequence[Any] = ()
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def query_one(
        self, sql: str, params: Sequence[Any] = ()
    ) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        ...

    @abstractmethod
    async def create_all(self, metadata: MetaData) -> None:
        """Creates missing tables and indexes of `metadata`; existing ones are kept."""

    @abstractmethod
    async def ping(self) -> str:
        """Returns the engine version string."""

    @abstractmethod
    async def dispose(self) -> None:
        ...


class EmbeddedDriver(StorageDriver):
    """
    File-backed sqlite. The statements run synchronously on the calling
    thread, so every await blocks the event loop for the statement duration.
    """

    dialect_name = "sqlite"

    def __init__(self, path: str = ":memory:", timeout: float = 5.0, echo=False):
        self.path = path
        engine_kwargs: dict[str, Any] = {}
        if path == ":memory:":
            # a second pooled connection would open a second, empty database
            engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(
            URL.create("sqlite", database=path),
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": timeout},
            **engine_kwargs,
        )
        event.listen(self.engine, "connect", self._apply_pragmas)

        self._session_factory = sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
        )

    def _apply_pragmas(self, dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        if self.path != ":memory:":
            cursor.execute("PRAGMA journal_mode = WAL")
        cursor.close()

    def _run(self, sql: str, params: Sequence[Any], consume: Callable[[Result], Any]):
        statement, binds = translate_placeholders(sql, params)
        try:
            with self._session_factory() as session:
                with session.begin():
                    return consume(session.execute(statement, binds))
        except (SQLAlchemyError, OSError) as e:
            raise to_storage_error(e) from e

    async def query_many(self, sql, params=()):
        return self._run(sql, params, _all_rows)

    async def query_one(self, sql, params=()):
        return self._run(sql, params, _first_row)

    async def execute(self, sql, params=()):
        return self._run(sql, params, lambda result: _summary(result, True))

    async def create_all(self, metadata):
        try:
            metadata.create_all(self.engine)
        except (SQLAlchemyError, OSError) as e:
            raise to_storage_error(e) from e

    async def ping(self):
        row = await self.query_one("SELECT sqlite_version() AS version")
        return f"SQLite {row['version']}"

    async def dispose(self):
        self.engine.dispose()


class NetworkedDriver(StorageDriver):
    """PostgreSQL over asyncpg with a connection pool shared by the process."""

    dialect_name = "postgresql"

    def __init__(
        self,
        url: str | URL,
        pool_size: int = 5,
        timeout: float = 5.0,
        echo=False,
    ):
        self.engine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=pool_size,
            pool_timeout=timeout,
            connect_args={"timeout": timeout, "command_timeout": timeout},
        )

        self._session_factory = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def create_session(self) -> AsyncSession:
        """
        Returns a new AsyncSession (no transaction is opened).
            async with driver.create_session() as session:
                ... await session.execute(...) ...
        """
        return self._session_factory()

    async def _run(self, sql: str, params: Sequence[Any], consume: Callable[[Result], Any]):
        statement, binds = translate_placeholders(sql, params)
        try:
            async with self.create_session() as session:
                async with session.begin():
                    result = await session.execute(statement, binds)
                    return consume(result)
        except (
            SQLAlchemyError,
            OSError,
            asyncpg_exceptions.PostgresError,
            asyncpg_exceptions.InterfaceError,
        ) as e:
            raise to_storage_error(e) from e

    async def query_many(self, sql, params=()):
        return await self._run(sql, params, _all_rows)

    async def query_one(self, sql, params=()):
        return await self._run(sql, params, _first_row)

    async def execute(self, sql, params=()):
        return await self._run(sql, params, lambda result: _summary(result, False))

    async def create_all(self, metadata):
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (
            SQLAlchemyError,
            OSError,
            asyncpg_exceptions.PostgresError,
            asyncpg_exceptions.InterfaceError,
        ) as e:
            raise to_storage_error(e) from e

    async def ping(self):
        row = await self.query_one("SELECT version() AS version")
        return row["version"]

    async def dispose(self):
        await self.engine.dispose()


def build_postgres_url(db_settings: DbSettings) -> URL:
    return URL.create(
        "postgresql+asyncpg",
        username=db_settings.DB_USER,
        password=db_settings.DB_PASSWORD,
        host=db_settings.DB_HOST,
        port=db_settings.DB_PORT,
        database=db_settings.DB_NAME,
    )


def create_storage_driver(db_settings: DbSettings = settings) -> StorageDriver:
    if db_settings.DB_BACKEND == "postgres":
        return NetworkedDriver(
            build_postgres_url(db_settings),
            pool_size=db_settings.DB_POOL_SIZE,
            timeout=db_settings.DB_STATEMENT_TIMEOUT,
            echo=db_settings.DB_ECHO,
        )

    return EmbeddedDriver(
        db_settings.DB_PATH,
        timeout=db_settings.DB_STATEMENT_TIMEOUT,
        echo=db_settings.DB_ECHO,
    )


async def db_engine_check(driver: StorageDriver) -> str:
    """
    Connectivity check: asks the engine for its version.
    """
    logger.info(f"Connecting to database {driver.location}")
    try:
        version = await driver.ping()
    except StorageError as e:
        logger.error(f"Error connecting to database: {e}")
        raise
    logger.info(f"Database version: {version}")
    return version
