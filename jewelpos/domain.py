# jewelpos/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

UNCATEGORIZED = "uncategorized"


class PricingMode(Enum):
    WEIGHT_BASED = "weight_based"
    FLAT_PRICE = "flat_price"

    @classmethod
    def parse(cls, value, default: "PricingMode | None" = None) -> "PricingMode":
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().lower().replace(" ", "_").replace("-", "_")
        for m in cls:
            if m.value == s:
                return m
        if default is not None:
            return default
        raise ValueError(f"unknown pricing mode: {value!r}")


class MakingChargeMode(Enum):
    PER_GRAM = "per_gram"
    PER_ITEM = "per_item"

    @classmethod
    def parse(cls, value, default: "MakingChargeMode | None" = None) -> "MakingChargeMode":
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().lower().replace(" ", "_").replace("-", "_")
        for m in cls:
            if m.value == s:
                return m
        if default is not None:
            return default
        raise ValueError(f"unknown making charge mode: {value!r}")


class DiscountType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of a catalog item at pricing time."""
    id: str
    sku: str
    name: str
    weight_grams: Decimal
    quantity: int
    making_charges: Decimal
    tax_percentage: Decimal
    pricing_mode: PricingMode = PricingMode.WEIGHT_BASED
    making_charge_mode: MakingChargeMode = MakingChargeMode.PER_GRAM
    selling_price: Decimal = Decimal("0")
    mrp: Decimal = Decimal("0")
    category_id: Optional[str] = None
    category_name: Optional[str] = None


@dataclass(frozen=True)
class RateSnapshot:
    rate_per_gram: Decimal
    captured_at: datetime
    source: str = "feed"  # feed | fallback | manual


@dataclass(frozen=True)
class DiscountSpec:
    type: DiscountType
    value: Decimal

    @classmethod
    def fixed(cls, value) -> "DiscountSpec":
        return cls(DiscountType.FIXED, value)

    @classmethod
    def percentage(cls, value) -> "DiscountSpec":
        return cls(DiscountType.PERCENTAGE, value)

    @classmethod
    def none(cls) -> "DiscountSpec":
        return cls(DiscountType.FIXED, Decimal("0"))


@dataclass(frozen=True)
class InvoiceItem:
    product: ProductSnapshot
    quantity: int
    # None for flat-price lines
    rate_per_gram: Optional[Decimal]
    rate_overridden: bool
    discount: DiscountSpec
    base_price: Decimal
    making_charge: Decimal
    discounted_making: Decimal
    line_total: Decimal
    tax_percentage: Decimal
    tax_amount: Decimal

    @property
    def pricing_mode(self) -> PricingMode:
        return PricingMode.parse(self.product.pricing_mode)

    @property
    def discount_amount(self) -> Decimal:
        return self.making_charge - self.discounted_making


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class CategoryStockValuation:
    category_id: str
    category_name: str
    total_items: int
    total_quantity: int
    total_weight: Decimal
    stock_value: Decimal
    # True only for the bucket of products without a category
    uncategorized: bool = False


@dataclass(frozen=True)
class StockValuationTotals:
    total_items: int = 0
    total_quantity: int = 0
    total_weight: Decimal = Decimal("0")
    total_stock_value: Decimal = Decimal("0")
    rate: Optional[RateSnapshot] = field(default=None, compare=False)
