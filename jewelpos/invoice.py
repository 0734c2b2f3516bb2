# jewelpos/invoice.py
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from .domain import DiscountSpec, InvoiceItem, InvoiceTotals, PricingMode, ProductSnapshot
from .errors import InvalidPricingInput, RateConfirmationRequired
from .logging_setup import get_logger
from .pricing import RateInput, price_line_item, reprice
from .rates import needs_rate_override_confirmation
from .utils import to_decimal

log = get_logger(__name__)

Items = tuple[InvoiceItem, ...]


def aggregate_invoice(items: Iterable[InvoiceItem]) -> InvoiceTotals:
    """
    Folds priced lines into invoice totals.

    subtotal = sum of line totals (after making-charge discount, before tax)
    discount = sum of (making charge - discounted making), already inside subtotal
    tax      = sum of per-line tax
    grand    = subtotal + tax

    Item fields are already rounded to cents, so these sums are exact and
    do not depend on the order of the lines.
    """
    subtotal = Decimal("0.00")
    discount = Decimal("0.00")
    tax = Decimal("0.00")
    for it in items:
        subtotal += it.line_total
        discount += it.making_charge - it.discounted_making
        tax += it.tax_amount
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        grand_total=subtotal + tax,
    )


# --------------------------
# Draft operations (each returns a new tuple)
# --------------------------
def _check_index(items: Sequence[InvoiceItem], index: int) -> None:
    if not (0 <= index < len(items)):
        raise InvalidPricingInput(f"No invoice line at position {index}", field="index")


def _replace(items: Sequence[InvoiceItem], index: int, new_item: InvoiceItem) -> Items:
    out = list(items)
    out[index] = new_item
    return tuple(out)


def find_product(items: Sequence[InvoiceItem], product_id: str) -> int:
    for i, it in enumerate(items):
        if it.product.id == product_id:
            return i
    return -1


def add_product(
    items: Sequence[InvoiceItem],
    product: ProductSnapshot,
    rate: RateInput,
    discount: DiscountSpec | None = None,
) -> Items:
    """
    Adds one unit of ``product``. A product already on the invoice gets its
    quantity bumped instead of a second line; a ``discount`` given then
    replaces that line's discount, None keeps it.
    """
    if int(product.quantity or 0) < 1:
        raise InvalidPricingInput(f"{product.name} is out of stock", field="quantity")

    idx = find_product(items, product.id)
    if idx >= 0:
        current = items[idx]
        bumped = reprice(
            current,
            quantity=current.quantity + 1,
            discount=current.discount if discount is None else discount,
        )
        return _replace(items, idx, bumped)

    new_item = price_line_item(product, 1, rate, discount)
    log.debug("Line added: %s", product.sku)
    return tuple(items) + (new_item,)


def set_quantity(items: Sequence[InvoiceItem], index: int, quantity: int) -> Items:
    _check_index(items, index)
    return _replace(items, index, reprice(items[index], quantity=quantity))


def set_discount(items: Sequence[InvoiceItem], index: int, discount: DiscountSpec | None) -> Items:
    _check_index(items, index)
    return _replace(items, index, reprice(items[index], discount=discount))


def set_rate(items: Sequence[InvoiceItem], index: int, proposed, *, confirmed: bool = False) -> Items:
    """
    Changes the rate of one weight-based line. Any change from the line's
    current rate needs ``confirmed=True``; the shared rate snapshot used by
    other lines is not touched.
    """
    _check_index(items, index)
    item = items[index]
    if item.pricing_mode is PricingMode.FLAT_PRICE:
        return tuple(items)

    try:
        new_rate = to_decimal(proposed)
    except ValueError:
        raise InvalidPricingInput(f"rate_per_gram is not a number: {proposed!r}", field="rate_per_gram") from None

    original = item.rate_per_gram
    if not needs_rate_override_confirmation(original, new_rate):
        return tuple(items)
    if not confirmed:
        raise RateConfirmationRequired(original, new_rate, item.product.name)

    log.info("Manual rate for %s: %s -> %s", item.product.sku, original, new_rate)
    return _replace(items, index, reprice(item, rate=new_rate))


def remove_item(items: Sequence[InvoiceItem], index: int) -> Items:
    _check_index(items, index)
    return tuple(it for i, it in enumerate(items) if i != index)
