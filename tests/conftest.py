import os, shutil, tempfile
from decimal import Decimal

import pytest

# Logs of each run go to a temp dir. Set before the test modules import the package.
_LOG_DIR = tempfile.mkdtemp(prefix="jewelpos-logs-")
os.environ["JEWELPOS_LOG_DIR"] = _LOG_DIR
os.environ["JEWELPOS_LOG_LEVEL"] = "DEBUG"


@pytest.fixture(autouse=True, scope="session")
def _init_logging_for_tests():
    from jewelpos.logging_setup import init_logging
    logger = init_logging(level="DEBUG", log_dir=_LOG_DIR)

    yield
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    shutil.rmtree(_LOG_DIR, ignore_errors=True)


@pytest.fixture
def con():
    from sqlStore.db import open_store
    c = open_store(":memory:")
    yield c
    c.close()


@pytest.fixture
def make_product():
    from jewelpos.domain import MakingChargeMode, PricingMode, ProductSnapshot

    def _make(
        sku="SKU001",
        weight="5",
        stock=10,
        making="10",
        tax="3",
        mode=PricingMode.WEIGHT_BASED,
        mc_mode=MakingChargeMode.PER_GRAM,
        selling_price="0",
        category_id=None,
        category_name=None,
        name=None,
    ):
        return ProductSnapshot(
            id=f"id-{sku}",
            sku=sku,
            name=name or f"Silver item {sku}",
            weight_grams=Decimal(weight),
            quantity=stock,
            making_charges=Decimal(making),
            tax_percentage=Decimal(tax),
            pricing_mode=mode,
            making_charge_mode=mc_mode,
            selling_price=Decimal(selling_price),
            category_id=category_id,
            category_name=category_name,
        )

    return _make
