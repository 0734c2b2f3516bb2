from __future__ import annotations

import datetime
import os
import sqlite3
from contextlib import contextmanager

from .schema import DDL, SCHEMA_VERSION
from .migrations import MIGRATIONS


def now_iso() -> str:
    return datetime.datetime.now().isoformat(timespec="seconds")


def connect(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)

    # autocommit mode; writes are grouped with tx()
    con = sqlite3.connect(db_path, isolation_level=None)
    con.row_factory = sqlite3.Row

    con.execute("PRAGMA foreign_keys = ON")
    if db_path != ":memory:":
        con.execute("PRAGMA journal_mode = WAL")
    con.execute("PRAGMA synchronous = NORMAL")
    con.execute("PRAGMA busy_timeout = 5000")
    return con


@contextmanager
def tx(con: sqlite3.Connection):
    try:
        con.execute("BEGIN")
        yield
        con.execute("COMMIT")
    except Exception:
        con.execute("ROLLBACK")
        raise


def _get_meta(con: sqlite3.Connection, key: str) -> str | None:
    try:
        r = con.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return str(r["value"]) if r and r["value"] is not None else None
    except sqlite3.OperationalError:
        return None


def _set_meta(con: sqlite3.Connection, key: str, value: str) -> None:
    con.execute(
        """
        INSERT INTO meta(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, str(value)),
    )


def _table_exists(con: sqlite3.Connection, name: str) -> bool:
    r = con.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name=? LIMIT 1",
        (name,),
    ).fetchone()
    return r is not None


def _infer_schema_version(con: sqlite3.Connection) -> int:
    """
    Databases without meta.schema_version: guess from the tables present.
    """
    if _table_exists(con, "metal_rates_history"):
        return 2
    if _table_exists(con, "metal_rates") or _table_exists(con, "products"):
        return 1
    return 0


def ensure_schema(con: sqlite3.Connection) -> None:
    """
    - Applies idempotent DDL
    - Runs incremental migrations when needed
    - Leaves meta.schema_version = SCHEMA_VERSION
    """
    with tx(con):
        for stmt in DDL:
            con.execute(stmt)

        cur_v_s = _get_meta(con, "schema_version")
        if cur_v_s is None:
            cur_v = _infer_schema_version(con)
        else:
            try:
                cur_v = int(cur_v_s)
            except ValueError:
                cur_v = _infer_schema_version(con)

        if cur_v < SCHEMA_VERSION:
            for target_v in range(cur_v + 1, SCHEMA_VERSION + 1):
                mig = MIGRATIONS.get(target_v)
                if mig:
                    mig(con)

        _set_meta(con, "schema_version", str(SCHEMA_VERSION))


def open_store(db_path: str) -> sqlite3.Connection:
    con = connect(db_path)
    ensure_schema(con)
    return con
