"""DuckDB connection shared by the code and card repositories.

DuckDB calls block, so every repository operation goes through
``HubDB.run``, which executes it in the default executor while holding an
``asyncio.Lock``. The lock is what serializes writes; callers never lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, TypeVar

import duckdb

from rf_home_hub.core.exceptions import StoreError

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Path to schema.sql relative to this file
SCHEMA_PATH = Path(__file__).parent / "schema.sql"


class HubDB:
    """DuckDB database holding RF codes and cards.

    Example:
        >>> with HubDB(":memory:") as db:
        ...     codes = CodeStore(db)
    """

    def __init__(self, db_path: Path | str = "data/hub.duckdb") -> None:
        """Initialize database handle.

        Args:
            db_path: Path to DuckDB file. Use ":memory:" for in-memory DB.
        """
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else ":memory:"
        self._conn: DuckDBPyConnection | None = None
        self._lock = asyncio.Lock()

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def __enter__(self) -> HubDB:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit."""
        self.close()

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        db_path_str = str(self.db_path)
        try:
            self._conn = duckdb.connect(db_path_str)
        except duckdb.Error as e:
            raise StoreError(f"Cannot open database {db_path_str}", str(e)) from e
        self.initialize_schema()
        logger.info("Connected to database: %s", db_path_str)

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> DuckDBPyConnection:
        """Get active connection, raising if not connected."""
        if self._conn is None:
            raise RuntimeError("Database not connected. Use context manager or call connect().")
        return self._conn

    def initialize_schema(self) -> None:
        """Create tables from schema.sql if not exists."""
        self.conn.execute(SCHEMA_PATH.read_text())
        logger.debug("Schema initialized from %s", SCHEMA_PATH)

    async def run(self, operation: Callable[[DuckDBPyConnection], T]) -> T:
        """Run a blocking operation against the connection.

        Args:
            operation: Callable receiving the connection.

        Returns:
            Whatever ``operation`` returns.

        Raises:
            StoreError: If the database is closed or the operation fails.
        """
        if self._conn is None:
            raise StoreError("Database not connected")

        async with self._lock:
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(None, operation, self._conn)
            except duckdb.Error as e:
                raise StoreError("Database operation failed", str(e)) from e

    async def checkpoint(self) -> None:
        """Flush the write-ahead log into the database file."""
        await self.run(lambda conn: conn.execute("CHECKPOINT"))
        logger.debug("Database checkpoint complete")
