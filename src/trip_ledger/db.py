"""SQLite database operations for trip-ledger."""

import sqlite3
from datetime import date, datetime
from pathlib import Path

from .models import FxRate


class Database:
    """SQLite database manager for the FX rate cache."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Historical FX rates, one row per (base, target, date)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS fx_rates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                base_currency TEXT NOT NULL,
                target_currency TEXT NOT NULL,
                date DATE NOT NULL,
                rate REAL NOT NULL,
                fetched_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (base_currency, target_currency, date)
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def get_last_rates_sync(self) -> date | None:
        """Get the date of the most recent on-demand FX fetch."""
        value = self.get_config("last_rates_sync")
        return date.fromisoformat(value) if value else None

    def set_last_rates_sync(self, sync_date: date):
        """Record the date of an on-demand FX fetch."""
        self.set_config("last_rates_sync", sync_date.isoformat())

    # ========================================================================
    # FX rate operations
    # ========================================================================

    def get_fx_rate(
        self, base_currency: str, target_currency: str, rate_date: date
    ) -> FxRate | None:
        """Get a cached rate for a currency pair on a date."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, base_currency, target_currency, date, rate, fetched_at
            FROM fx_rates
            WHERE base_currency = ? AND target_currency = ? AND date = ?
            """,
            (base_currency, target_currency, rate_date.isoformat()),
        )
        row = cursor.fetchone()
        if not row:
            return None

        return FxRate(
            id=row["id"],
            base_currency=row["base_currency"],
            target_currency=row["target_currency"],
            date=date.fromisoformat(row["date"]),
            rate=row["rate"],
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
        )

    def save_fx_rates(self, rates: list[FxRate]) -> int:
        """Upsert a batch of rates. Returns the number of rows written."""
        cursor = self.conn.cursor()
        cursor.executemany(
            """
            INSERT INTO fx_rates (
                base_currency, target_currency, date, rate, fetched_at
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(base_currency, target_currency, date) DO UPDATE SET
                rate = excluded.rate,
                fetched_at = excluded.fetched_at
            """,
            [
                (
                    rate.base_currency,
                    rate.target_currency,
                    rate.date.isoformat(),
                    rate.rate,
                    rate.fetched_at.isoformat(),
                )
                for rate in rates
            ],
        )
        self.conn.commit()
        return len(rates)
