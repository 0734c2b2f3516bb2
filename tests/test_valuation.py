import random
from datetime import datetime
from decimal import Decimal

import pytest

import jewelpos.valuation as val
from jewelpos.domain import UNCATEGORIZED, RateSnapshot
from jewelpos.errors import InvalidPricingInput

RATE = RateSnapshot(Decimal("95"), datetime(2026, 1, 1, 10, 0))


def test_two_categories_scenario(make_product):
    products = [
        make_product("A1", weight="5", stock=2, category_id="A", category_name="Rings"),
        make_product("B1", weight="10", stock=2, category_id="B", category_name="Chains"),
    ]
    rollups, totals = val.aggregate_stock_valuation(products, RATE)

    assert [r.category_id for r in rollups] == ["B", "A"]
    assert rollups[0].stock_value == Decimal("1900")
    assert rollups[1].stock_value == Decimal("950")
    assert totals.total_stock_value == Decimal("2850")
    assert totals.total_weight == Decimal("30")
    assert totals.total_items == 2
    assert totals.total_quantity == 4
    assert totals.rate is RATE


def test_out_of_stock_products_are_skipped(make_product):
    products = [
        make_product("A1", stock=0, category_id="A"),
        make_product("A2", stock=1, weight="2", category_id="A"),
    ]
    rollups, totals = val.aggregate_stock_valuation(products, RATE)
    assert len(rollups) == 1
    assert rollups[0].total_items == 1
    assert totals.total_stock_value == Decimal("190")


def test_missing_category_goes_to_uncategorized(make_product):
    products = [
        make_product("X", category_id=None),
        make_product("Y", category_id=""),
    ]
    rollups, _ = val.aggregate_stock_valuation(products, RATE)
    assert len(rollups) == 1
    assert rollups[0].category_id == UNCATEGORIZED
    assert rollups[0].category_name == "Uncategorized"
    assert rollups[0].total_items == 2


def test_category_named_like_the_fallback_bucket_stays_separate(make_product):
    products = [
        make_product("N1", weight="1", stock=1, category_id=None),
        make_product("U1", weight="2", stock=1, category_id=UNCATEGORIZED, category_name="Misc"),
    ]
    rollups, totals = val.aggregate_stock_valuation(products, RATE)

    assert len(rollups) == 2
    real, fallback = rollups
    assert (real.uncategorized, real.category_name, real.stock_value) == (False, "Misc", Decimal("190"))
    assert (fallback.uncategorized, fallback.stock_value) == (True, Decimal("95"))
    assert totals.total_items == 2

    assert [p.sku for p in val.products_by_category(products, real)] == ["U1"]
    assert [p.sku for p in val.products_by_category(products, fallback)] == ["N1"]


def test_ties_keep_first_seen_order(make_product):
    products = [
        make_product("C1", weight="1", stock=1, category_id="C"),
        make_product("A1", weight="1", stock=1, category_id="A"),
        make_product("B1", weight="1", stock=1, category_id="B"),
    ]
    rollups, _ = val.aggregate_stock_valuation(products, RATE)
    assert [r.category_id for r in rollups] == ["C", "A", "B"]


def test_empty_catalog(make_product):
    rollups, totals = val.aggregate_stock_valuation([], RATE)
    assert rollups == ()
    assert totals.total_stock_value == 0
    assert totals.total_items == 0


def test_rollups_sum_to_totals_and_match_direct_pass(make_product):
    rnd = random.Random(20261018)
    cats = [None, "1", "2", "3", "4"]
    for _ in range(25):
        products = [
            make_product(
                f"P{i}",
                weight=f"{rnd.randint(0, 50000) / 1000:.3f}",
                stock=rnd.randint(0, 6),
                category_id=rnd.choice(cats),
            )
            for i in range(rnd.randint(0, 30))
        ]
        rate = RateSnapshot(Decimal(f"{rnd.randint(1, 900000) / 100:.2f}"), datetime(2026, 1, 1))
        rollups, totals = val.aggregate_stock_valuation(products, rate)

        assert sum((r.stock_value for r in rollups), Decimal("0")) == totals.total_stock_value
        assert sum(r.total_items for r in rollups) == totals.total_items

        in_stock = [p for p in products if p.quantity > 0]
        direct_weight = sum((p.weight_grams * p.quantity for p in in_stock), Decimal("0"))
        direct_value = sum((p.weight_grams * p.quantity * rate.rate_per_gram for p in in_stock), Decimal("0"))
        assert totals.total_weight == direct_weight
        assert totals.total_stock_value == direct_value
        assert totals.total_quantity == sum(p.quantity for p in in_stock)

        values = [r.stock_value for r in rollups]
        assert values == sorted(values, reverse=True)


def test_invalid_rate_is_rejected(make_product):
    with pytest.raises(InvalidPricingInput):
        val.aggregate_stock_valuation([make_product()], RateSnapshot(Decimal("0"), datetime(2026, 1, 1)))


def test_negative_weight_is_rejected(make_product):
    with pytest.raises(InvalidPricingInput):
        val.aggregate_stock_valuation([make_product(weight="-3")], RATE)


def test_products_by_category(make_product):
    products = [
        make_product("A1", category_id="A"),
        make_product("A2", category_id="A", stock=0),
        make_product("N1", category_id=None),
    ]
    assert [p.sku for p in val.products_by_category(products, "A")] == ["A1"]
    assert [p.sku for p in val.products_by_category(products, UNCATEGORIZED)] == ["N1"]


def test_valuation_frame(make_product):
    products = [
        make_product("A1", weight="1.333", stock=1, category_id="A", category_name="Rings"),
    ]
    rollups, _ = val.aggregate_stock_valuation(products, RateSnapshot(Decimal("95.5"), datetime(2026, 1, 1)))
    df = val.valuation_frame(rollups)
    assert list(df.columns) == val.FRAME_COLUMNS
    # 1.333 * 95.5 = 127.3015
    assert df.loc[0, "stock_value"] == 127.30
    assert df.loc[0, "category_name"] == "Rings"

    empty = val.valuation_frame(())
    assert list(empty.columns) == val.FRAME_COLUMNS
    assert empty.empty
