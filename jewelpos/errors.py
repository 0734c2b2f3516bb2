# jewelpos/errors.py
"""
Validation errors raised by the pricing engine.

Each error carries a machine-readable ``code`` and, where it applies, the
name of the offending ``field`` so a form can highlight it.

    JewelPosError
    +-- InvalidPricingInput      INVALID_PRICING_INPUT
    +-- InvalidDiscount          INVALID_DISCOUNT
    +-- RateUnavailable          RATE_UNAVAILABLE
    +-- RateConfirmationRequired RATE_CONFIRMATION_REQUIRED
"""
from __future__ import annotations

from decimal import Decimal


class JewelPosError(Exception):
    code: str = "JEWELPOS_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)


class InvalidPricingInput(JewelPosError, ValueError):
    code = "INVALID_PRICING_INPUT"


class InvalidDiscount(JewelPosError, ValueError):
    code = "INVALID_DISCOUNT"


class RateUnavailable(JewelPosError):
    code = "RATE_UNAVAILABLE"

    def __init__(self, message: str = "No metal rate available yet and no fallback configured"):
        super().__init__(message, field="rate_per_gram")


class RateConfirmationRequired(JewelPosError):
    code = "RATE_CONFIRMATION_REQUIRED"

    def __init__(self, original: Decimal, proposed: Decimal, product_name: str = ""):
        self.original = original
        self.proposed = proposed
        self.product_name = product_name
        super().__init__(
            f"Rate change {original} -> {proposed} for {product_name or 'item'} overrides the live rate",
            field="rate_per_gram",
        )
