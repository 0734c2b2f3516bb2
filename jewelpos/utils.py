# jewelpos/utils.py
import math
import numbers
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .config import APP_CURRENCY

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(val) -> Decimal:
    """
    Strict conversion for pricing inputs. Floats go through str() so that
    95.1 stays 95.1 and not its binary expansion.
    Raises ValueError on None / blank / NaN / inf / garbage.
    """
    if isinstance(val, bool):
        raise ValueError(f"not a number: {val!r}")
    if isinstance(val, Decimal):
        d = val
    elif isinstance(val, int):
        d = Decimal(val)
    elif isinstance(val, float):
        d = Decimal(str(val))
    elif isinstance(val, str):
        txt = val.strip().replace(",", "").replace(" ", "")
        try:
            d = Decimal(txt)
        except InvalidOperation:
            raise ValueError(f"not a number: {val!r}") from None
    elif isinstance(val, numbers.Integral):
        # numpy ints coming out of pandas frames
        d = Decimal(int(val))
    elif isinstance(val, numbers.Real):
        d = Decimal(str(float(val)))
    else:
        raise ValueError(f"not a number: {val!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite number: {val!r}")
    return d


def nz(x, default=ZERO) -> Decimal:
    """Lenient variant for catalog rows: anything unusable becomes default."""
    try:
        if x is None:
            return default
        if isinstance(x, float) and (math.isnan(x) or math.isinf(x)):
            return default
        return to_decimal(x)
    except ValueError:
        return default


def round_money(x: Decimal) -> Decimal:
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


def _symbol_ui(cur: str) -> str:
    c = (cur or "").upper()
    if c == "INR":
        return "₹"
    if c == "USD":
        return "$"
    if c == "EUR":
        return "€"
    return c


def fmt_money_ui(n) -> str:
    """
    "₹ 1,076.35" using the configured currency.
    """
    d = round_money(nz(n))
    return f"{_symbol_ui(APP_CURRENCY)} {d:,.2f}"


def format_grams(g) -> str:
    d = nz(g)
    if d == d.to_integral_value():
        return f"{int(d)} g"
    return f"{d.normalize()} g"
