# jewelpos/valuation.py
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

import pandas as pd

from .domain import (
    UNCATEGORIZED,
    CategoryStockValuation,
    ProductSnapshot,
    RateSnapshot,
    StockValuationTotals,
)
from .errors import InvalidPricingInput
from .logging_setup import get_logger
from .utils import ZERO, round_money, to_decimal

log = get_logger(__name__)

FRAME_COLUMNS = [
    "category_id", "category_name",
    "total_items", "total_quantity", "total_weight", "stock_value",
]


def _bucket(product: ProductSnapshot) -> tuple[bool, str, str]:
    """(uncategorized, category_id, category_name). A real category may use any id."""
    cid = (str(product.category_id).strip() if product.category_id is not None else "")
    if not cid:
        return True, UNCATEGORIZED, "Uncategorized"
    return False, cid, (product.category_name or cid)


def _in_stock(product: ProductSnapshot) -> bool:
    return int(product.quantity or 0) > 0


def _rate_value(rate) -> Decimal:
    value = rate.rate_per_gram if isinstance(rate, RateSnapshot) else rate
    try:
        d = to_decimal(value)
    except ValueError:
        raise InvalidPricingInput(f"rate_per_gram is not a number: {value!r}", field="rate_per_gram") from None
    if d <= 0:
        raise InvalidPricingInput(f"rate_per_gram must be > 0, got {d}", field="rate_per_gram")
    return d


def aggregate_stock_valuation(
    products: Iterable[ProductSnapshot],
    rate: RateSnapshot,
) -> tuple[tuple[CategoryStockValuation, ...], StockValuationTotals]:
    """
    Values in-stock products at one rate and rolls them up by category.

    Every product is valued with the same rate value taken from ``rate``.
    Rollups come back sorted by stock value, highest first; equal values
    keep the order in which their category was first seen.
    Arithmetic is exact (Decimal), rounding is left to display.
    """
    rate_value = _rate_value(rate)

    acc: dict[tuple[bool, str], dict] = {}
    for p in products:
        if not _in_stock(p):
            continue
        try:
            weight = to_decimal(p.weight_grams)
        except ValueError:
            raise InvalidPricingInput(f"weight_grams is not a number: {p.weight_grams!r}", field="weight_grams") from None
        if weight < 0:
            raise InvalidPricingInput(f"weight_grams must be >= 0, got {weight}", field="weight_grams")

        qty = int(p.quantity)
        uncategorized, cid, cname = _bucket(p)
        row = acc.get((uncategorized, cid))
        if row is None:
            row = acc[(uncategorized, cid)] = {
                "category_id": cid,
                "category_name": cname,
                "uncategorized": uncategorized,
                "total_items": 0,
                "total_quantity": 0,
                "total_weight": ZERO,
                "stock_value": ZERO,
            }

        item_weight = weight * qty
        row["total_items"] += 1
        row["total_quantity"] += qty
        row["total_weight"] += item_weight
        row["stock_value"] += item_weight * rate_value

    rollups = tuple(
        CategoryStockValuation(**row)
        for row in sorted(acc.values(), key=lambda r: r["stock_value"], reverse=True)
    )

    totals = StockValuationTotals(
        total_items=sum(r.total_items for r in rollups),
        total_quantity=sum(r.total_quantity for r in rollups),
        total_weight=sum((r.total_weight for r in rollups), ZERO),
        total_stock_value=sum((r.stock_value for r in rollups), ZERO),
        rate=rate if isinstance(rate, RateSnapshot) else None,
    )
    log.debug("Stock valuation: %d categories, value %s at %s/g", len(rollups), totals.total_stock_value, rate_value)
    return rollups, totals


def products_by_category(
    products: Iterable[ProductSnapshot],
    category: CategoryStockValuation | str,
) -> list[ProductSnapshot]:
    """
    In-stock products of one rollup bucket.

    Pass the rollup itself to tell the no-category bucket apart from a real
    category whose id is also "uncategorized". A plain id string always
    names a real category, except UNCATEGORIZED which selects products
    without one.
    """
    if isinstance(category, CategoryStockValuation):
        key = (category.uncategorized, category.category_id)
    else:
        cid = str(category).strip()
        key = (cid == UNCATEGORIZED, cid)
    return [p for p in products if _in_stock(p) and _bucket(p)[:2] == key]


def valuation_frame(rollups: Sequence[CategoryStockValuation]) -> pd.DataFrame:
    """Rollups as a table for report layers, money rounded to cents."""
    rows = [
        {
            "category_id": r.category_id,
            "category_name": r.category_name,
            "total_items": r.total_items,
            "total_quantity": r.total_quantity,
            "total_weight": float(r.total_weight),
            "stock_value": float(round_money(r.stock_value)),
        }
        for r in rollups
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
