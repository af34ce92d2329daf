#STANDARD IMPORTS

import math
import random
from typing import Dict, List, Optional

#LOCAL IMPORTS

from config import DEMAND_CONFIG, SIMULATION_END_DAY
from state import PolicyConfigurationError


class BoxMuller:
    """Normal variates from a uniform source, caching the spare value of each pair."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._spare: Optional[float] = None

    def standard_normal(self) -> float:
        if self._spare is not None:
            z, self._spare = self._spare, None
            return z
        u1 = self.rng.random()
        while u1 <= 0.0:
            u1 = self.rng.random()
        u2 = self.rng.random()
        radius = math.sqrt(-2.0 * math.log(u1))
        theta = 2.0 * math.pi * u2
        self._spare = radius * math.sin(theta)
        return radius * math.cos(theta)

    def normal(self, mean: float, std: float) -> float:
        return mean + std * self.standard_normal()


def custom_demand_params(day: int, strategy, cfg=None):
    """(mean, std) of custom demand on `day` for the four market phases."""
    cfg = cfg or DEMAND_CONFIG
    m1, s1 = strategy.custom_demand_mean1, strategy.custom_demand_std1
    m2, s2 = strategy.custom_demand_mean2, strategy.custom_demand_std2
    p1, p2, p3 = cfg["phase1_end_day"], cfg["phase2_end_day"], cfg["phase3_end_day"]
    if day <= p1:
        return m1, s1
    if day <= p2:
        progress = (day - p1) / (p2 - p1)
        return m1 + (m2 - m1) * progress, s1 + (s2 - s1) * progress
    if day <= p3:
        return m2, s2
    periods = (day - p3) / cfg["runoff_period_days"]
    decay = cfg["runoff_decay"] ** periods
    mean = max(cfg["runoff_floor"], m2 * decay)
    return mean, s2 * decay


def custom_demand(day: int, strategy, normal: BoxMuller, cfg=None) -> int:
    mean, std = custom_demand_params(day, strategy, cfg)
    return max(0, int(round(normal.normal(mean, std))))


def standard_demand(price: float, strategy) -> int:
    return max(0, int(strategy.standard_demand_intercept + strategy.standard_demand_slope * price))


def validate_demand_forecast(forecast: List[Dict], cfg=None) -> Dict[int, Dict]:
    """Check forecast rows and index them by day. Raises PolicyConfigurationError."""
    cfg = cfg or DEMAND_CONFIG
    lo, hi = cfg["forecast_min_day"], cfg["forecast_max_day"]
    by_day = {}
    for i, row in enumerate(forecast):
        day = row.get("day")
        if not isinstance(day, int) or not lo <= day <= hi:
            raise PolicyConfigurationError(f"Forecast row {i}: day must be an integer in {lo}..{hi}, got {day!r}")
        for key in ("standard_demand", "custom_demand"):
            value = row.get(key, 0)
            if value is None or value < 0:
                raise PolicyConfigurationError(f"Forecast row {i}: {key} cannot be negative")
        by_day[day] = row
    return by_day


class DemandModel:
    """Daily demand for both products, optionally overridden by a forecast."""

    def __init__(self, strategy, rng: random.Random, forecast: Optional[List[Dict]] = None, cfg=None):
        self.strategy = strategy
        self.cfg = cfg or DEMAND_CONFIG
        self.normal = BoxMuller(rng)
        self.forecast = validate_demand_forecast(forecast, self.cfg) if forecast else {}

    def for_day(self, day: int, standard_price: float) -> Dict[str, int]:
        row = self.forecast.get(day)
        # the normal draw is taken regardless so a forecast does not shift later days
        custom = custom_demand(day, self.strategy, self.normal, self.cfg)
        standard = standard_demand(standard_price, self.strategy)
        if row is not None:
            if "custom_demand" in row:
                custom = int(row["custom_demand"])
            if "standard_demand" in row:
                standard = int(row["standard_demand"])
        return {"standard": standard, "custom": custom}


def remaining_demand_potential(day: int, strategy, end_day: int = SIMULATION_END_DAY, cfg=None) -> float:
    """Expected custom orders still to arrive from `day` through `end_day`."""
    return sum(custom_demand_params(d, strategy, cfg)[0] for d in range(day, end_day + 1))
