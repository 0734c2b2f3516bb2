import threading
from datetime import datetime
from decimal import Decimal

import pytest

import sqlStore.rates_repo as rates_repo
from sqlStore.db import open_store
from jewelpos.domain import RateSnapshot
from jewelpos.engine import InvoiceLine, PricingEngine
from jewelpos.errors import InvalidPricingInput, RateUnavailable
from jewelpos.rates import RateRefresher, RateSource, db_rate_feed, needs_rate_override_confirmation

T0 = datetime(2026, 1, 1, 10, 0)


class FakeFeed:
    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        v = self.values.pop(0) if len(self.values) > 1 else self.values[0]
        if isinstance(v, Exception):
            raise v
        return v


def test_needs_rate_override_confirmation():
    assert needs_rate_override_confirmation(95, 95) is False
    assert needs_rate_override_confirmation(95, 100) is True
    assert needs_rate_override_confirmation(Decimal("95"), "95.00") is False
    assert needs_rate_override_confirmation(95, 95.0001) is True
    assert needs_rate_override_confirmation(None, 95) is True


@pytest.mark.parametrize("original, proposed", [(95, "abc"), (95, None), ("", 95)])
def test_override_check_rejects_non_numbers(original, proposed):
    with pytest.raises(InvalidPricingInput) as exc:
        needs_rate_override_confirmation(original, proposed)
    assert exc.value.field == "rate_per_gram"


def test_cold_start_uses_fallback():
    src = RateSource(FakeFeed(ConnectionError("down")), fallback_rate=95, clock=lambda: T0)
    snap = src.snapshot()
    assert snap.rate_per_gram == Decimal("95")
    assert snap.source == "fallback"
    assert src.has_live_rate is False


def test_no_fallback_and_no_fetch_raises():
    src = RateSource(FakeFeed(ConnectionError("down")), fallback_rate=None)
    with pytest.raises(RateUnavailable) as exc:
        src.snapshot()
    assert exc.value.code == "RATE_UNAVAILABLE"
    assert src.refresh() is False
    with pytest.raises(RateUnavailable):
        src.snapshot()


def test_refresh_then_failure_keeps_last_good():
    feed = FakeFeed((101.5, "2026-01-01T09:00:00"), ConnectionError("down"), 0, "garbage")
    src = RateSource(feed, fallback_rate=95)

    assert src.refresh() is True
    snap = src.snapshot()
    assert snap.rate_per_gram == Decimal("101.5")
    assert snap.captured_at == datetime(2026, 1, 1, 9, 0)
    assert snap.source == "feed"

    assert src.refresh() is False   # exception
    assert src.refresh() is False   # non-positive
    assert src.refresh() is False   # not a number
    assert src.snapshot() is snap


def test_listeners_only_on_change():
    feed = FakeFeed(95, 95, 96)
    src = RateSource(feed)
    seen = []
    unsubscribe = src.subscribe(lambda s: seen.append(s.rate_per_gram))

    src.refresh(); src.refresh(); src.refresh()
    assert seen == [Decimal("95"), Decimal("96")]

    unsubscribe()
    feed.values = [97]
    src.refresh()
    assert seen == [Decimal("95"), Decimal("96")]


def test_listener_error_does_not_break_refresh():
    src = RateSource(FakeFeed(95))

    def boom(_):
        raise RuntimeError("listener bug")

    src.subscribe(boom)
    assert src.refresh() is True
    assert src.snapshot().rate_per_gram == Decimal("95")


def test_invoice_pass_uses_one_snapshot(make_product):
    feed = FakeFeed(95, 200)
    src = RateSource(feed)
    src.refresh()
    engine = PricingEngine(src)

    def lines():
        yield InvoiceLine(make_product("A"), 1)
        # refresh lands mid-pass
        src.refresh()
        yield InvoiceLine(make_product("B"), 1)
        yield InvoiceLine(make_product("C"), 1, manual_rate=Decimal("120"))

    items, totals = engine.price_invoice(lines())
    assert src.snapshot().rate_per_gram == Decimal("200")
    assert items[0].rate_per_gram == items[1].rate_per_gram == Decimal("95")
    assert items[2].rate_per_gram == Decimal("120")
    assert items[2].rate_overridden is True
    assert totals.subtotal == sum(it.line_total for it in items)


def test_valuation_pass_uses_one_snapshot(make_product):
    feed = FakeFeed(95, 1000)
    src = RateSource(feed)
    src.refresh()
    engine = PricingEngine(src)

    def products():
        yield make_product("A", weight="10", stock=1, category_id="A")
        src.refresh()
        yield make_product("B", weight="20", stock=1, category_id="B")

    rollups, totals = engine.stock_valuation(products())
    assert totals.total_stock_value == Decimal("2850")
    assert totals.rate.rate_per_gram == Decimal("95")


def test_refresher_runs_until_stopped():
    done = threading.Event()
    calls = []

    def fetch():
        calls.append(1)
        if len(calls) >= 3:
            done.set()
        return 95

    src = RateSource(fetch)
    refresher = RateRefresher(src, interval=0.01)
    refresher.start()
    assert done.wait(timeout=5)
    refresher.stop(timeout=5)
    assert not refresher.is_alive()
    assert src.snapshot().rate_per_gram == Decimal("95")


def test_refresher_rejects_bad_interval():
    with pytest.raises(ValueError):
        RateRefresher(RateSource(FakeFeed(95)), interval=0)


def test_db_rate_feed(tmp_path):
    db_path = str(tmp_path / "store.db")
    con = open_store(db_path)
    feed = db_rate_feed(db_path, "silver")

    src = RateSource(feed, fallback_rate=95)
    assert src.refresh() is False          # nothing stored yet
    assert src.snapshot().source == "fallback"

    rates_repo.set_rate(con, "SILVER", 98.25)
    con.close()

    assert src.refresh() is True
    assert src.snapshot().rate_per_gram == Decimal("98.25")


def test_engine_from_store(tmp_path):
    db_path = str(tmp_path / "store.db")
    con = open_store(db_path)
    rates_repo.set_rate(con, "GOLD", 6500)
    con.close()

    engine = PricingEngine.from_store(db_path, "GOLD")
    engine.rates.refresh()
    assert engine.current_rate().rate_per_gram == Decimal("6500.0")
    assert isinstance(engine.current_rate(), RateSnapshot)
