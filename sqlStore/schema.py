# sqlStore/schema.py
from __future__ import annotations

SCHEMA_VERSION = 2

DDL = [
    # =========================
    # Meta
    # =========================
    """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,

    # =========================
    # Live metal rates (one row per metal)
    # =========================
    """
    CREATE TABLE IF NOT EXISTS metal_rates (
        metal TEXT PRIMARY KEY,             -- 'SILVER' | 'GOLD'
        rate_per_gram REAL NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,

    # =========================
    # Catalog
    # =========================
    """
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,
        sku TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        category_id INTEGER,

        weight_grams REAL NOT NULL DEFAULT 0,
        quantity INTEGER NOT NULL DEFAULT 0,

        pricing_mode TEXT NOT NULL DEFAULT 'weight_based',      -- 'weight_based' | 'flat_price'
        making_charges REAL NOT NULL DEFAULT 0,
        making_charge_mode TEXT NOT NULL DEFAULT 'per_gram',    -- 'per_gram' | 'per_item'
        selling_price REAL NOT NULL DEFAULT 0,
        mrp REAL NOT NULL DEFAULT 0,
        gst_percentage REAL NOT NULL DEFAULT 3,

        updated_at TEXT NOT NULL,
        FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_products_category
    ON products(category_id)
    """,
]
