# jewelpos/engine.py
"""
Entry points used by the invoice screens and the reports.

The module-level functions are pure. PricingEngine binds them to a live
RateSource and reads the rate exactly once per pass, so a refresh that
lands in the middle of pricing an invoice or valuing the stock is not
seen until the next pass.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from .config import DB_PATH, METAL, RATE_REFRESH_SECONDS
from .domain import (
    CategoryStockValuation,
    DiscountSpec,
    InvoiceItem,
    InvoiceTotals,
    ProductSnapshot,
    RateSnapshot,
    StockValuationTotals,
)
from .invoice import aggregate_invoice
from .logging_setup import get_logger
from .pricing import price_line_item
from .rates import RateRefresher, RateSource, db_rate_feed, needs_rate_override_confirmation
from .valuation import aggregate_stock_valuation

log = get_logger(__name__)

__all__ = [
    "price_line_item",
    "aggregate_invoice",
    "aggregate_stock_valuation",
    "needs_rate_override_confirmation",
    "InvoiceLine",
    "PricingEngine",
]


@dataclass(frozen=True)
class InvoiceLine:
    product: ProductSnapshot
    quantity: int = 1
    discount: Optional[DiscountSpec] = None
    # already confirmed by the user
    manual_rate: Optional[Decimal] = None


class PricingEngine:
    def __init__(self, rates: RateSource):
        self.rates = rates

    @classmethod
    def from_store(cls, db_path: str = DB_PATH, metal: str = METAL) -> "PricingEngine":
        return cls(RateSource(db_rate_feed(db_path, metal)))

    def start_refresher(self, interval: float = RATE_REFRESH_SECONDS) -> RateRefresher:
        refresher = RateRefresher(self.rates, interval)
        refresher.start()
        return refresher

    def current_rate(self) -> RateSnapshot:
        return self.rates.snapshot()

    def price_invoice(
        self, lines: Iterable[InvoiceLine]
    ) -> tuple[tuple[InvoiceItem, ...], InvoiceTotals]:
        snap = self.rates.snapshot()
        items = tuple(
            price_line_item(
                ln.product,
                ln.quantity,
                ln.manual_rate if ln.manual_rate is not None else snap,
                ln.discount,
            )
            for ln in lines
        )
        totals = aggregate_invoice(items)
        log.debug("Invoice priced: %d lines at %s/g, total %s", len(items), snap.rate_per_gram, totals.grand_total)
        return items, totals

    def stock_valuation(
        self, products: Iterable[ProductSnapshot]
    ) -> tuple[tuple[CategoryStockValuation, ...], StockValuationTotals]:
        return aggregate_stock_valuation(products, self.rates.snapshot())
