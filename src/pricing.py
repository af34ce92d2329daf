#STANDARD IMPORTS

from dataclasses import dataclass

#LOCAL IMPORTS

from config import PRICING_CONFIG
from finance import record_revenue
from state import SimulationState


@dataclass
class Pricing:
    standard_price: float
    custom_price: float


@dataclass
class SalesResult:
    standard_sold: int
    custom_sold: int
    standard_revenue: float
    custom_revenue: float

    @property
    def total_revenue(self) -> float:
        return self.standard_revenue + self.custom_revenue


def custom_price(strategy, avg_delivery_time: float, cfg=None) -> float:
    """Base price less a per-day penalty for lateness, never below half the base."""
    cfg = cfg or PRICING_CONFIG
    base = strategy.custom_base_price
    late_days = max(0.0, avg_delivery_time - strategy.custom_target_delivery_days)
    return max(base * cfg["custom_price_floor_ratio"], base - late_days * strategy.custom_penalty_per_day)


def current_pricing(strategy, avg_delivery_time: float, cfg=None) -> Pricing:
    return Pricing(strategy.standard_price, custom_price(strategy, avg_delivery_time, cfg))


def process_sales(state: SimulationState, pricing: Pricing, standard_demand: int) -> SalesResult:
    standard_sold = min(state.finished_goods.standard, max(0, standard_demand))
    custom_sold = state.finished_goods.custom
    state.finished_goods.standard -= standard_sold
    state.finished_goods.custom = 0
    result = SalesResult(
        standard_sold=standard_sold,
        custom_sold=custom_sold,
        standard_revenue=standard_sold * pricing.standard_price,
        custom_revenue=custom_sold * pricing.custom_price,
    )
    record_revenue(state, result.total_revenue)
    return result
