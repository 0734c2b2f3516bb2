# sqlStore/migrations.py
from __future__ import annotations

import sqlite3
from typing import Callable


def _table_exists(con: sqlite3.Connection, name: str) -> bool:
    r = con.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name=? LIMIT 1",
        (name,),
    ).fetchone()
    return r is not None


def mig_1(con: sqlite3.Connection) -> None:
    return


def mig_2(con: sqlite3.Connection) -> None:
    """
    v2: metal rate history
    - Creates metal_rates_history
    - Index by metal and time
    - Backfill: current rate becomes the first history row if none exists
    """
    con.execute(
        """
        CREATE TABLE IF NOT EXISTS metal_rates_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            metal TEXT NOT NULL,
            rate_per_gram REAL NOT NULL,
            recorded_at TEXT NOT NULL
        )
        """
    )

    con.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_metal_rates_history_metal_time
        ON metal_rates_history(metal, recorded_at)
        """
    )

    if _table_exists(con, "metal_rates"):
        con.execute(
            """
            INSERT INTO metal_rates_history(metal, rate_per_gram, recorded_at)
            SELECT mr.metal, mr.rate_per_gram,
                   COALESCE(mr.updated_at, datetime('now'))
            FROM metal_rates mr
            WHERE NOT EXISTS (
                SELECT 1
                FROM metal_rates_history h
                WHERE h.metal = mr.metal
            )
            """
        )


# target version -> migration
MIGRATIONS: dict[int, Callable[[sqlite3.Connection], None]] = {
    1: mig_1,
    2: mig_2,
}
