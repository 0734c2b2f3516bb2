# sqlStore/products_repo.py
from __future__ import annotations

import sqlite3
import math
import pandas as pd

from .db import now_iso


def _to_float(v, default: float = 0.0) -> float:
    """
    Safe float conversion:
    - None / "" / NaN / inf => default
    """
    try:
        if v is None:
            return float(default)
        try:
            if pd.isna(v):
                return float(default)
        except (TypeError, ValueError):
            pass

        if isinstance(v, str):
            s = v.strip()
            if not s:
                return float(default)
            s = s.replace(",", "")
            v = s

        x = float(v)
        if math.isnan(x) or math.isinf(x):
            return float(default)
        return x
    except (TypeError, ValueError):
        return float(default)


def _to_text(v) -> str:
    if v is None:
        return ""
    try:
        if pd.isna(v):
            return ""
    except (TypeError, ValueError):
        pass
    return str(v).strip()


def get_or_create_category(con: sqlite3.Connection, name: str) -> int | None:
    n = (name or "").strip()
    if not n:
        return None
    con.execute("INSERT OR IGNORE INTO categories(name) VALUES(?)", (n,))
    row = con.execute("SELECT id FROM categories WHERE name = ?", (n,)).fetchone()
    return int(row["id"]) if row else None


def upsert_products(con: sqlite3.Connection, df: pd.DataFrame, default_gst: float = 3.0) -> int:
    """
    Expects a df like:
      sku, name, category (name), weight_grams, quantity,
      pricing_mode, making_charges, making_charge_mode,
      selling_price, mrp, gst_percentage, id (optional, defaults to sku)
    Blank gst_percentage is stored as default_gst.
    Returns how many rows were written.
    """
    if df is None or df.empty:
        return 0

    now = now_iso()
    rows: list[tuple] = []

    for _, r in df.iterrows():
        sku = _to_text(r.get("sku"))
        name = _to_text(r.get("name"))
        if not sku or not name:
            continue
        pid = _to_text(r.get("id")) or sku

        cat_id = get_or_create_category(con, _to_text(r.get("category")))

        rows.append((
            pid, sku, name, cat_id,
            _to_float(r.get("weight_grams"), 0.0),
            int(_to_float(r.get("quantity"), 0.0)),
            _to_text(r.get("pricing_mode")).lower() or "weight_based",
            _to_float(r.get("making_charges"), 0.0),
            _to_text(r.get("making_charge_mode")).lower() or "per_gram",
            _to_float(r.get("selling_price"), 0.0),
            _to_float(r.get("mrp"), 0.0),
            _to_float(r.get("gst_percentage"), default_gst),
            now,
        ))

    con.executemany(
        """
        INSERT INTO products(
            id, sku, name, category_id,
            weight_grams, quantity,
            pricing_mode, making_charges, making_charge_mode,
            selling_price, mrp, gst_percentage,
            updated_at
        )
        VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?)
        ON CONFLICT(id) DO UPDATE SET
            sku=excluded.sku,
            name=excluded.name,
            category_id=excluded.category_id,
            weight_grams=excluded.weight_grams,
            quantity=excluded.quantity,
            pricing_mode=excluded.pricing_mode,
            making_charges=excluded.making_charges,
            making_charge_mode=excluded.making_charge_mode,
            selling_price=excluded.selling_price,
            mrp=excluded.mrp,
            gst_percentage=excluded.gst_percentage,
            updated_at=excluded.updated_at
        """,
        rows,
    )
    return len(rows)


def load_products_current(con: sqlite3.Connection) -> pd.DataFrame:
    return pd.read_sql_query(
        """
        SELECT p.*, c.name AS category_name
        FROM products p
        LEFT JOIN categories c ON c.id = p.category_id
        ORDER BY p.sku
        """,
        con,
    )
