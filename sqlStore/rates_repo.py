# sqlStore/rates_repo.py
from __future__ import annotations

import sqlite3
from .db import now_iso


def _norm_metal(metal: str) -> str:
    return (metal or "").strip().upper()


def load_rate(con: sqlite3.Connection, metal: str) -> tuple[float, str] | None:
    """(rate_per_gram, updated_at) or None if the metal has no rate yet."""
    row = con.execute(
        "SELECT rate_per_gram, updated_at FROM metal_rates WHERE metal = ?",
        (_norm_metal(metal),),
    ).fetchone()
    if not row:
        return None
    return float(row["rate_per_gram"]), str(row["updated_at"])


def _insert_rate_history(con: sqlite3.Connection, metal: str, r: float, at: str) -> None:
    con.execute(
        """
        INSERT INTO metal_rates_history(metal, rate_per_gram, recorded_at)
        VALUES(?,?,?)
        """,
        (metal, float(r), at),
    )


def set_rate(con: sqlite3.Connection, metal: str, rate: float) -> bool:
    """
    Upserts the current rate. History gets a row only when the value changed.
    Returns True if it changed.
    """
    m = _norm_metal(metal)
    if not m:
        raise ValueError("metal is required")
    r = float(rate)
    if not r > 0:
        raise ValueError(f"rate must be > 0, got {rate!r}")

    old = load_rate(con, m)
    at = now_iso()

    con.execute(
        """
        INSERT INTO metal_rates(metal, rate_per_gram, updated_at)
        VALUES(?,?,?)
        ON CONFLICT(metal) DO UPDATE SET
            rate_per_gram=excluded.rate_per_gram,
            updated_at=excluded.updated_at
        """,
        (m, r, at),
    )

    changed = (old is None) or (abs(old[0] - r) > 1e-12)
    if changed:
        _insert_rate_history(con, m, r, at)
    return changed


def list_rate_history(con: sqlite3.Connection, metal: str, limit: int = 10) -> list[dict]:
    m = _norm_metal(metal)
    lim = int(limit) if limit and int(limit) > 0 else 10

    rows = con.execute(
        """
        SELECT id, metal, rate_per_gram, recorded_at
        FROM metal_rates_history
        WHERE metal = ?
        ORDER BY recorded_at DESC, id DESC
        LIMIT ?
        """,
        (m, lim),
    ).fetchall()

    return [
        {
            "id": int(r["id"]),
            "metal": r["metal"],
            "rate_per_gram": float(r["rate_per_gram"]),
            "recorded_at": r["recorded_at"],
        }
        for r in rows
    ]
