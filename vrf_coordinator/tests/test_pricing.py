import pytest

from vrf_coordinator.config import PricingParams
from vrf_coordinator.constants import GWEI
from vrf_coordinator.errors import (
    InsufficientGasLimit,
    InvalidGasPriceHistoryWindow,
    InvalidNumWords,
    OverConsumerGasLimit,
)
from vrf_coordinator.pricing import PricingEngine
from vrf_coordinator.store import State


def mk_engine(**overrides) -> PricingEngine:
    return PricingEngine(PricingParams(**overrides), State())


def test_quote_formula():
    eng = mk_engine()
    assert eng.quote(100_000) == (100_000 + 300_000) * GWEI
    assert eng.quote(5_000) == 305_000 * GWEI
    assert eng.quote(6_000_000) == 6_300_000 * GWEI


def test_quote_bounds():
    eng = mk_engine()
    with pytest.raises(InsufficientGasLimit) as ei:
        eng.quote(4_999)
    assert ei.value.context == {"given": 4_999, "minimum": 5_000}
    with pytest.raises(OverConsumerGasLimit) as ei:
        eng.quote(6_000_001)
    assert ei.value.context == {"given": 6_000_001, "maximum": 6_000_000}


def test_quote_is_pure():
    eng = mk_engine()
    before = eng.recent_gas_prices()
    assert eng.quote(10_000) == eng.quote(10_000)
    assert eng.recent_gas_prices() == before


def test_num_words_bounds():
    eng = mk_engine(max_num_words=10)
    eng.check_num_words(1)
    eng.check_num_words(10)
    for bad in (0, 11):
        with pytest.raises(InvalidNumWords) as ei:
            eng.check_num_words(bad)
        assert ei.value.context == {"given": bad, "expected": 10}


def test_set_unit_price_does_not_touch_shared_params():
    params = PricingParams()
    eng = PricingEngine(params)
    eng.set_unit_price(7 * GWEI)
    assert eng.unit_price == 7 * GWEI
    assert eng.quote(100_000) == 400_000 * 7 * GWEI
    assert params.unit_price == GWEI


@pytest.mark.parametrize("bad", [0, -1, 1.5])
def test_set_unit_price_rejects_non_positive(bad):
    with pytest.raises(ValueError):
        mk_engine().set_unit_price(bad)


def test_history_window_and_average():
    eng = mk_engine(gas_price_history_window=3)
    assert eng.average_gas_price() == GWEI  # empty -> current unit price
    for p in (10, 20, 30, 40):
        eng.record_price(p)
    assert eng.recent_gas_prices() == [20, 30, 40]
    assert eng.average_gas_price() == 30

    eng.set_history_window(2)
    assert eng.recent_gas_prices() == [30, 40]
    assert eng.average_gas_price() == 35

    eng.record_price(1)
    assert eng.recent_gas_prices() == [40, 1]
    assert eng.average_gas_price() == 20  # integer mean


@pytest.mark.parametrize("bad", [0, 1025, -5])
def test_history_window_bounds(bad):
    with pytest.raises(InvalidGasPriceHistoryWindow):
        mk_engine().set_history_window(bad)


def test_invalid_params_rejected():
    with pytest.raises(ValueError):
        mk_engine(min_callback_gas=10, max_callback_gas=5)
    with pytest.raises(ValueError):
        mk_engine(unit_price=0)
