"""Tests for the demand phases, the normal sampler and forecast overrides."""

import random

import pytest

from demand import (BoxMuller, DemandModel, custom_demand_params, remaining_demand_potential, standard_demand,
                    validate_demand_forecast)
from state import PolicyConfigurationError
from strategy import Strategy


def test_custom_demand_phases():
    """Stable, transition, stable, then runoff."""
    s = Strategy()
    assert custom_demand_params(100, s) == (25.0, 5.0)
    mean, std = custom_demand_params(195, s)
    assert mean == pytest.approx(28.75)
    assert std == pytest.approx(5.75)
    assert custom_demand_params(300, s) == (32.5, 6.5)
    mean, _ = custom_demand_params(430, s)
    assert mean == pytest.approx(32.5 * 0.95)


def test_runoff_has_a_floor():
    """Far into the runoff the mean never drops below the floor."""
    mean, _ = custom_demand_params(5000, Strategy())
    assert mean == 2.0


def test_standard_demand_is_linear_in_price():
    """Q = 1500 - 5P, never negative."""
    s = Strategy()
    assert standard_demand(225.0, s) == 375
    assert standard_demand(400.0, s) == 0


def test_box_muller_is_reproducible():
    """The same seed yields the same sequence of variates."""
    a = BoxMuller(random.Random(7))
    b = BoxMuller(random.Random(7))
    assert [a.normal(0, 1) for _ in range(5)] == [b.normal(0, 1) for _ in range(5)]


def test_forecast_overrides_sampled_demand():
    """Forecast rows replace the sampled values on their day only."""
    forecast = [{"day": 60, "standard_demand": 0, "custom_demand": 99}]
    model = DemandModel(Strategy(), random.Random(1), forecast)
    assert model.for_day(60, 225.0) == {"standard": 0, "custom": 99}
    assert model.for_day(61, 225.0)["standard"] == 375


def test_forecast_does_not_shift_later_draws():
    """Overriding one day leaves the draws on the following days unchanged."""
    plain = DemandModel(Strategy(), random.Random(5))
    forecast = DemandModel(Strategy(), random.Random(5), [{"day": 51, "custom_demand": 0}])
    plain.for_day(51, 225.0)
    forecast.for_day(51, 225.0)
    assert [plain.for_day(d, 225.0) for d in range(52, 60)] == [forecast.for_day(d, 225.0) for d in range(52, 60)]


@pytest.mark.parametrize("row", [
    {"day": 50, "custom_demand": 1},
    {"day": 501, "custom_demand": 1},
    {"day": "60", "custom_demand": 1},
    {"day": 60, "custom_demand": -1},
    {"day": 60, "standard_demand": None},
])
def test_invalid_forecast_rows(row):
    """Out-of-range days and negative demands are configuration errors."""
    with pytest.raises(PolicyConfigurationError):
        validate_demand_forecast([row])


def test_remaining_demand_potential():
    """Expected custom orders over a stable stretch is mean times days."""
    assert remaining_demand_potential(101, Strategy(), end_day=110) == pytest.approx(250.0)
