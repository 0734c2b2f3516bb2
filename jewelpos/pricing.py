# jewelpos/pricing.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Union

from .discounts import apply_discount
from .domain import (
    DiscountSpec,
    InvoiceItem,
    MakingChargeMode,
    PricingMode,
    ProductSnapshot,
    RateSnapshot,
)
from .errors import InvalidPricingInput
from .logging_setup import get_logger
from .utils import ZERO, round_money, to_decimal

log = get_logger(__name__)

RateInput = Union[RateSnapshot, Decimal, float, int, str, None]

HUNDRED = Decimal("100")


def _number(value, field: str, *, allow_zero: bool = True) -> Decimal:
    try:
        d = to_decimal(value)
    except ValueError:
        log.debug("Rejected %s=%r (not a number)", field, value)
        raise InvalidPricingInput(f"{field} is not a number: {value!r}", field=field) from None
    if d < 0 or (d == 0 and not allow_zero):
        log.debug("Rejected %s=%s", field, d)
        bound = ">= 0" if allow_zero else "> 0"
        raise InvalidPricingInput(f"{field} must be {bound}, got {d}", field=field)
    return d


def _quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidPricingInput(f"quantity must be an integer, got {quantity!r}", field="quantity")
    if quantity < 1:
        log.debug("Rejected quantity=%s", quantity)
        raise InvalidPricingInput(f"quantity must be >= 1, got {quantity}", field="quantity")
    return quantity


def _resolve_rate(rate: RateInput) -> tuple[Optional[Decimal], bool]:
    """(rate_per_gram, overridden). A bare number is a manual rate."""
    if rate is None:
        return None, False
    if isinstance(rate, RateSnapshot):
        return rate.rate_per_gram, rate.source == "manual"
    return rate, True


def _modes(product: ProductSnapshot) -> tuple[PricingMode, MakingChargeMode]:
    try:
        return (
            PricingMode.parse(product.pricing_mode),
            MakingChargeMode.parse(product.making_charge_mode),
        )
    except ValueError as e:
        raise InvalidPricingInput(str(e), field="pricing_mode") from None


def _making_charge(product: ProductSnapshot, weight: Decimal, qty: int) -> Decimal:
    mc = _number(product.making_charges, "making_charges")
    mode, mc_mode = _modes(product)

    if mode is PricingMode.FLAT_PRICE:
        # fixed product-level amount only, never weight-derived
        return mc * qty if mc_mode is MakingChargeMode.PER_ITEM else ZERO

    if mc_mode is MakingChargeMode.PER_ITEM:
        return mc * qty
    return mc * weight * qty


def _price(
    product: ProductSnapshot,
    quantity,
    rate_value,
    overridden: bool,
    discount: DiscountSpec | None,
) -> InvoiceItem:
    qty = _quantity(quantity)
    weight = _number(product.weight_grams, "weight_grams")
    tax_pct = _number(product.tax_percentage, "tax_percentage")
    mode, _ = _modes(product)

    if mode is PricingMode.WEIGHT_BASED:
        if rate_value is None:
            raise InvalidPricingInput("rate_per_gram is required for weight-based pricing", field="rate_per_gram")
        rate = _number(rate_value, "rate_per_gram", allow_zero=False)
        base = weight * qty * rate
    elif mode is PricingMode.FLAT_PRICE:
        rate = None
        overridden = False
        base = _number(product.selling_price, "selling_price") * qty
    else:
        raise InvalidPricingInput(f"Unsupported pricing mode: {mode!r}", field="pricing_mode")

    making = _making_charge(product, weight, qty)
    discounted = apply_discount(making, discount)

    base_r = round_money(base)
    discounted_r = round_money(discounted)
    line_total = base_r + discounted_r

    return InvoiceItem(
        product=product,
        quantity=qty,
        rate_per_gram=rate,
        rate_overridden=overridden,
        discount=discount or DiscountSpec.none(),
        base_price=base_r,
        making_charge=round_money(making),
        discounted_making=discounted_r,
        line_total=line_total,
        tax_percentage=tax_pct,
        tax_amount=round_money(line_total * tax_pct / HUNDRED),
    )


def price_line_item(
    product: ProductSnapshot,
    quantity: int,
    rate: RateInput,
    discount: DiscountSpec | None = None,
) -> InvoiceItem:
    """
    Prices one invoice line.

    ``rate`` is either the pass's RateSnapshot or a manually entered rate
    (plain number) already confirmed by the user. Flat-price products ignore
    it. Pure: the same inputs always give the same InvoiceItem.
    """
    rate_value, overridden = _resolve_rate(rate)
    return _price(product, quantity, rate_value, overridden, discount)


_KEEP = object()


def reprice(item: InvoiceItem, *, quantity=_KEEP, rate=_KEEP, discount=_KEEP) -> InvoiceItem:
    """New InvoiceItem for the same product with some inputs replaced."""
    qty = item.quantity if quantity is _KEEP else quantity
    disc = item.discount if discount is _KEEP else discount
    if rate is _KEEP:
        rate_value, overridden = item.rate_per_gram, item.rate_overridden
    else:
        rate_value, overridden = _resolve_rate(rate)
    return _price(item.product, qty, rate_value, overridden, disc)


def list_price(product: ProductSnapshot, rate: RateInput) -> Decimal:
    """
    Price shown in the catalog listing for one unit (no discount, no tax).

    - weight_based: weight x rate + making charge of one unit
    - flat_price:   selling price
    """
    mode, _ = _modes(product)
    if mode is PricingMode.FLAT_PRICE:
        return round_money(_number(product.selling_price, "selling_price"))

    rate_value, _ = _resolve_rate(rate)
    if rate_value is None:
        raise InvalidPricingInput("rate_per_gram is required for weight-based pricing", field="rate_per_gram")
    weight = _number(product.weight_grams, "weight_grams")
    rate_d = _number(rate_value, "rate_per_gram", allow_zero=False)
    return round_money(weight * rate_d + _making_charge(product, weight, 1))
