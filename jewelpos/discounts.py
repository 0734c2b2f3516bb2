# jewelpos/discounts.py
from __future__ import annotations

from decimal import Decimal

from .domain import DiscountSpec, DiscountType
from .errors import InvalidDiscount
from .logging_setup import get_logger
from .utils import ZERO, to_decimal

log = get_logger(__name__)

HUNDRED = Decimal("100")


def _discount_value(spec: DiscountSpec) -> Decimal:
    try:
        return to_decimal(spec.value)
    except ValueError:
        raise InvalidDiscount(f"Discount value is not a number: {spec.value!r}", field="discount_value") from None


def apply_discount(amount, spec: DiscountSpec | None) -> Decimal:
    """
    Applies a discount to the making charge and returns what is left to pay,
    always inside [0, amount]. Not rounded: the caller rounds at output.

    - fixed:      max(0, amount - value)
    - percentage: amount * (1 - value/100), value must be in [0, 100]
    """
    try:
        amt = to_decimal(amount)
    except ValueError:
        raise InvalidDiscount(f"Amount to discount is not a number: {amount!r}", field="making_charges") from None
    if amt < 0:
        log.debug("Rejected discount on negative amount %s", amt)
        raise InvalidDiscount(f"Amount to discount must be >= 0, got {amt}", field="making_charges")

    if spec is None:
        return amt

    value = _discount_value(spec)

    if spec.type is DiscountType.FIXED:
        if value < 0:
            log.debug("Rejected negative fixed discount %s", value)
            raise InvalidDiscount(f"Fixed discount must be >= 0, got {value}", field="discount_value")
        return max(ZERO, amt - value)

    if spec.type is DiscountType.PERCENTAGE:
        if value < 0 or value > HUNDRED:
            log.debug("Rejected discount percentage %s", value)
            raise InvalidDiscount(f"Discount percentage must be within [0, 100], got {value}", field="discount_value")
        out = amt * (1 - value / HUNDRED)
        # only guards rounding noise at 0% / 100%
        return min(max(out, ZERO), amt)

    raise InvalidDiscount(f"Unknown discount type: {spec.type!r}", field="discount_type")
