"""SQLite state store implementation.

This module provides the SQLiteStateStore class for persisting portfolio
state in a SQLite database, including connection management, table creation
and transactional writes.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from portfolio_engine.portfolio.base import (
    DEFAULT_ADMIN,
    DEFAULT_PROTOCOL_FEE_BPS,
    AssetAllocation,
    Portfolio,
)
from portfolio_engine.storage.base import StateStore
from portfolio_engine.utils.exceptions import StorageError
from portfolio_engine.utils.logging import get_logger

logger = get_logger(__name__)

COUNTER_KEY = "next_portfolio_id"
FEE_KEY = "protocol_fee_bps"
ADMIN_KEY = "admin"


class SQLiteStateStore(StateStore):
    """Persists portfolio state in SQLite.

    Writes outside ``transaction()`` are committed immediately. The admin
    and protocol fee given here only seed a new database; an existing
    database keeps its stored values.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(
        self,
        db_path: str,
        admin: str = DEFAULT_ADMIN,
        protocol_fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS,
    ):
        """Initialize the store and create tables if needed.

        Args:
            db_path: Path to the SQLite database file.
            admin: Administrator account for a new database.
            protocol_fee_bps: Initial protocol fee for a new database.
        """
        self.db_path = str(db_path)
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self.create_tables(admin, protocol_fee_bps)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a thread-local database connection."""
        if not hasattr(self._local, "connection"):
            self._local.connection = sqlite3.connect(self.db_path)
            self._local.connection.row_factory = sqlite3.Row
            self._local.depth = 0
        return self._local.connection

    def create_tables(self, admin: str, protocol_fee_bps: int) -> None:
        """Create tables and seed engine scalars if they don't exist."""
        schema_path = Path(__file__).parent / "schema.sql"
        try:
            with open(schema_path, "r") as f:
                schema = f.read()

            conn = self._get_connection()
            conn.executescript(schema)
            seed = [
                (COUNTER_KEY, "0"),
                (FEE_KEY, str(protocol_fee_bps)),
                (ADMIN_KEY, admin),
            ]
            conn.executemany(
                "INSERT OR IGNORE INTO engine_state (key, value) VALUES (?, ?)", seed
            )
            conn.commit()
            logger.info(f"State store initialized at {self.db_path}")
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to create tables: {e}")
            raise StorageError(f"State store initialization failed: {e}") from e

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = self._get_connection()
        try:
            cursor = conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.error(f"Statement failed: {e}")
            raise StorageError(f"Database error: {e}") from e
        return cursor

    def _write(self, sql: str, params: tuple = ()) -> None:
        """Execute a write, committing unless a transaction is open."""
        self._execute(sql, params)
        if self._local.depth == 0:
            try:
                self._get_connection().commit()
            except sqlite3.Error as e:
                logger.error(f"Commit failed: {e}")
                raise StorageError(f"Failed to commit: {e}") from e

    def _get_state(self, key: str) -> str:
        row = self._execute(
            "SELECT value FROM engine_state WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            raise StorageError(f"Missing engine state key: {key}")
        return row["value"]

    def _set_state(self, key: str, value: str) -> None:
        self._write(
            "INSERT INTO engine_state (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )

    def get_portfolio(self, portfolio_id: int) -> Optional[Portfolio]:
        row = self._execute(
            """
            SELECT owner, created_at, last_rebalanced, total_value, active, slot_count
            FROM portfolios WHERE portfolio_id = ?
            """,
            (portfolio_id,),
        ).fetchone()
        if row is None:
            return None
        return Portfolio(
            owner=row["owner"],
            created_at=row["created_at"],
            last_rebalanced=row["last_rebalanced"],
            total_value=row["total_value"],
            active=bool(row["active"]),
            slot_count=row["slot_count"],
        )

    def put_portfolio(self, portfolio_id: int, portfolio: Portfolio) -> None:
        self._write(
            """
            INSERT INTO portfolios
            (portfolio_id, owner, created_at, last_rebalanced, total_value, active, slot_count)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(portfolio_id) DO UPDATE SET
            owner=excluded.owner,
            created_at=excluded.created_at,
            last_rebalanced=excluded.last_rebalanced,
            total_value=excluded.total_value,
            active=excluded.active,
            slot_count=excluded.slot_count
            """,
            (
                portfolio_id,
                portfolio.owner,
                portfolio.created_at,
                portfolio.last_rebalanced,
                portfolio.total_value,
                int(portfolio.active),
                portfolio.slot_count,
            ),
        )

    def get_allocation(
        self, portfolio_id: int, slot: int
    ) -> Optional[AssetAllocation]:
        row = self._execute(
            """
            SELECT target_percentage, current_amount, token
            FROM portfolio_assets WHERE portfolio_id = ? AND slot = ?
            """,
            (portfolio_id, slot),
        ).fetchone()
        if row is None:
            return None
        return AssetAllocation(
            target_percentage=row["target_percentage"],
            current_amount=row["current_amount"],
            token=row["token"],
        )

    def put_allocation(
        self, portfolio_id: int, slot: int, allocation: AssetAllocation
    ) -> None:
        self._write(
            """
            INSERT INTO portfolio_assets
            (portfolio_id, slot, target_percentage, current_amount, token)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(portfolio_id, slot) DO UPDATE SET
            target_percentage=excluded.target_percentage,
            current_amount=excluded.current_amount,
            token=excluded.token
            """,
            (
                portfolio_id,
                slot,
                allocation.target_percentage,
                allocation.current_amount,
                allocation.token,
            ),
        )

    def get_user_portfolios(self, account: str) -> List[int]:
        rows = self._execute(
            """
            SELECT portfolio_id FROM user_portfolios
            WHERE account = ? ORDER BY position ASC
            """,
            (account,),
        ).fetchall()
        return [row["portfolio_id"] for row in rows]

    def put_user_portfolios(self, account: str, portfolio_ids: List[int]) -> None:
        with self.transaction():
            self._write("DELETE FROM user_portfolios WHERE account = ?", (account,))
            for position, portfolio_id in enumerate(portfolio_ids):
                self._write(
                    """
                    INSERT INTO user_portfolios (account, position, portfolio_id)
                    VALUES (?, ?, ?)
                    """,
                    (account, position, portfolio_id),
                )

    def get_portfolio_counter(self) -> int:
        return int(self._get_state(COUNTER_KEY))

    def set_portfolio_counter(self, value: int) -> None:
        self._set_state(COUNTER_KEY, str(value))

    def get_protocol_fee(self) -> int:
        return int(self._get_state(FEE_KEY))

    def set_protocol_fee(self, fee_bps: int) -> None:
        self._set_state(FEE_KEY, str(fee_bps))

    def get_admin(self) -> str:
        return self._get_state(ADMIN_KEY)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit the block's writes together, or roll all of them back.

        Nested blocks join the outermost transaction.
        """
        conn = self._get_connection()
        self._local.depth += 1
        try:
            yield
        except BaseException:
            self._local.depth -= 1
            if self._local.depth == 0:
                conn.rollback()
                logger.debug("Transaction rolled back")
            raise
        else:
            self._local.depth -= 1
            if self._local.depth == 0:
                try:
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    logger.error(f"Commit failed: {e}")
                    raise StorageError(f"Failed to commit transaction: {e}") from e

    def close(self):
        """Close the thread-local connection."""
        if hasattr(self._local, "connection"):
            self._local.connection.close()
            del self._local.connection
