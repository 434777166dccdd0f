"""Repository of observed RF codes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from rf_home_hub.storage.database import HubDB
from rf_home_hub.storage.models import RFCode, normalize_code

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

logger = logging.getLogger(__name__)

_COLUMNS = "code, first_seen_at, last_seen_at, ignored"


def _row_to_code(row: tuple[Any, ...]) -> RFCode:
    code, first_seen_at, last_seen_at, ignored = row
    return RFCode(
        code=code,
        first_seen_at=first_seen_at,
        last_seen_at=last_seen_at,
        ignored=bool(ignored),
    )


class CodeStore:
    """RF code records keyed by code value.

    Example:
        >>> store = CodeStore(db)
        >>> record = await store.upsert(1234)
        >>> record.code
        '1234'
    """

    def __init__(self, db: HubDB) -> None:
        self.db = db

    async def upsert(self, code: Any, seen_at: datetime | None = None) -> RFCode:
        """Insert a code or refresh its last-seen time.

        Repeated calls with the same code never create a second record and
        never move ``first_seen_at``.

        Args:
            code: Code value (numbers are normalized to strings).
            seen_at: Observation time (default: now).

        Returns:
            The stored record after the write.
        """
        value = normalize_code(code)
        when = seen_at or datetime.now()

        def _op(conn: DuckDBPyConnection) -> tuple[Any, ...]:
            conn.execute(
                f"""
                INSERT INTO rf_codes ({_COLUMNS}) VALUES (?, ?, ?, FALSE)
                ON CONFLICT (code) DO UPDATE SET last_seen_at = excluded.last_seen_at
                """,  # noqa: S608
                [value, when, when],
            )
            return conn.execute(
                f"SELECT {_COLUMNS} FROM rf_codes WHERE code = ?",  # noqa: S608
                [value],
            ).fetchone()

        record = _row_to_code(await self.db.run(_op))
        logger.debug("Upserted code %s (first seen %s)", value, record.first_seen_at)
        return record

    async def get(self, code: Any) -> RFCode | None:
        """Get a code record, or None if it was never observed."""
        value = normalize_code(code)
        row = await self.db.run(
            lambda conn: conn.execute(
                f"SELECT {_COLUMNS} FROM rf_codes WHERE code = ?",  # noqa: S608
                [value],
            ).fetchone()
        )
        return _row_to_code(row) if row is not None else None

    async def list_codes(self, include_ignored: bool = True) -> list[RFCode]:
        """List code records, most recently seen first."""
        where = "" if include_ignored else "WHERE NOT ignored"
        rows = await self.db.run(
            lambda conn: conn.execute(
                f"SELECT {_COLUMNS} FROM rf_codes {where} ORDER BY last_seen_at DESC"  # noqa: S608
            ).fetchall()
        )
        return [_row_to_code(row) for row in rows]

    async def set_ignored(self, code: Any, ignored: bool = True) -> bool:
        """Set or clear the ignore flag.

        Returns:
            True if a record was updated, False if the code is unknown.
        """
        value = normalize_code(code)

        def _op(conn: DuckDBPyConnection) -> int:
            updated = conn.execute(
                "UPDATE rf_codes SET ignored = ? WHERE code = ? RETURNING code",
                [ignored, value],
            ).fetchall()
            return len(updated)

        updated = await self.db.run(_op)
        if updated:
            logger.info("Code %s ignored=%s", value, ignored)
        return updated > 0

    async def remove_where(self, codes: Iterable[Any], multi: bool = True) -> int:
        """Remove records whose code is in ``codes``.

        Args:
            codes: Code values to match.
            multi: Remove every match; when False at most one record goes.

        Returns:
            Number of records removed. Zero is a valid outcome.
        """
        values = sorted({normalize_code(c) for c in codes})
        if not values:
            return 0

        placeholders = ", ".join("?" for _ in values)
        match = f"SELECT code FROM rf_codes WHERE code IN ({placeholders})"  # noqa: S608
        if not multi:
            match += " ORDER BY code LIMIT 1"

        def _op(conn: DuckDBPyConnection) -> int:
            removed = conn.execute(
                f"DELETE FROM rf_codes WHERE code IN ({match}) RETURNING code",  # noqa: S608
                values,
            ).fetchall()
            return len(removed)

        count = await self.db.run(_op)
        logger.debug("Removed %d code(s) matching %s", count, values)
        return count

    async def remove(self, code: Any) -> bool:
        """Remove a single code record."""
        return await self.remove_where([code], multi=False) > 0
