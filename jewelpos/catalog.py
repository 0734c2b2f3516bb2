# jewelpos/catalog.py
from __future__ import annotations

import os
import sqlite3

import pandas as pd

import sqlStore.products_repo as products_repo
from sqlStore.db import tx

from .config import DEFAULT_TAX_PERCENTAGE
from .domain import MakingChargeMode, PricingMode, ProductSnapshot
from .logging_setup import get_logger
from .utils import nz, to_decimal

log = get_logger(__name__)

TEMPLATE_COLUMNS = [
    "sku", "name", "category",
    "weight_grams", "quantity",
    "making_charges", "making_charge_mode", "pricing_mode",
    "selling_price", "mrp", "gst_percentage",
]


def _text(v) -> str:
    if v is None:
        return ""
    try:
        if pd.isna(v):
            return ""
    except (TypeError, ValueError):
        pass
    return str(v).strip()


def _category_id(v) -> str | None:
    s = _text(v)
    if not s:
        return None
    # sqlite ints come back as floats when the column has NULLs
    if s.endswith(".0") and s[:-2].isdigit():
        s = s[:-2]
    return s


def snapshots_from_frame(df: pd.DataFrame) -> list[ProductSnapshot]:
    """
    Store/import rows -> ProductSnapshot.
    Blank or broken numbers become 0; missing tax uses the configured default.
    """
    if df is None or df.empty:
        return []

    default_tax = to_decimal(DEFAULT_TAX_PERCENTAGE)
    out: list[ProductSnapshot] = []
    for _, r in df.iterrows():
        sku = _text(r.get("sku"))
        name = _text(r.get("name"))
        if not sku and not name:
            continue

        tax_raw = r.get("gst_percentage")
        tax = nz(tax_raw, default_tax) if _text(tax_raw) else default_tax

        out.append(ProductSnapshot(
            id=_text(r.get("id")) or sku,
            sku=sku,
            name=name,
            weight_grams=nz(r.get("weight_grams")),
            quantity=int(nz(r.get("quantity"))),
            making_charges=nz(r.get("making_charges")),
            tax_percentage=tax,
            pricing_mode=PricingMode.parse(r.get("pricing_mode"), default=PricingMode.WEIGHT_BASED),
            making_charge_mode=MakingChargeMode.parse(r.get("making_charge_mode"), default=MakingChargeMode.PER_GRAM),
            selling_price=nz(r.get("selling_price")),
            mrp=nz(r.get("mrp")),
            category_id=_category_id(r.get("category_id")),
            category_name=_text(r.get("category_name")) or None,
        ))
    return out


def load_catalog(con: sqlite3.Connection) -> list[ProductSnapshot]:
    return snapshots_from_frame(products_repo.load_products_current(con))


def read_inventory_file(path: str) -> pd.DataFrame:
    """
    Bulk import file (.csv or .xlsx) -> DataFrame with TEMPLATE_COLUMNS.
    Header matching is case-insensitive; rows need both sku and name.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        df = pd.read_csv(path, dtype=str)
    elif ext in (".xlsx", ".xlsm"):
        df = pd.read_excel(path, sheet_name=0, engine="openpyxl")
    else:
        raise ValueError(f"Unsupported inventory file: {os.path.basename(path)}")

    df = df.dropna(how="all")
    cols_lower = {str(c).strip().lower(): c for c in df.columns}

    def col(*cands):
        for cnd in cands:
            if cnd in cols_lower:
                return cols_lower[cnd]
        return None

    sources = {
        "sku": col("sku", "code"),
        "name": col("name", "product", "description"),
        "category": col("category", "category_name"),
        "weight_grams": col("weight_grams", "weight", "weight (g)"),
        "quantity": col("quantity", "qty", "stock"),
        "making_charges": col("making_charges", "making charge", "mc"),
        "making_charge_mode": col("making_charge_mode"),
        "pricing_mode": col("pricing_mode"),
        "selling_price": col("selling_price", "flat_price", "price"),
        "mrp": col("mrp"),
        "gst_percentage": col("gst_percentage", "gst", "tax_percentage"),
    }

    records = []
    for _, row in df.iterrows():
        rec = {k: (row.get(src) if src is not None else None) for k, src in sources.items()}
        if not _text(rec["sku"]) or not _text(rec["name"]):
            continue
        rec["sku"] = _text(rec["sku"])
        rec["name"] = _text(rec["name"])
        rec["category"] = _text(rec["category"])
        records.append(rec)

    return pd.DataFrame(records, columns=TEMPLATE_COLUMNS)


def import_inventory_file(con: sqlite3.Connection, path: str) -> int:
    if not path or not os.path.exists(path):
        raise FileNotFoundError(f"Inventory file not found: {path}")

    df = read_inventory_file(path)
    with tx(con):
        n = products_repo.upsert_products(con, df, default_gst=float(DEFAULT_TAX_PERCENTAGE))
    log.info("Inventory import %s: %d products", os.path.basename(path), n)
    return n
