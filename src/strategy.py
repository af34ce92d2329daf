#STANDARD IMPORTS

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List

#LOCAL IMPORTS

from actions import Action, action_from_dict, action_to_dict
from config import (DEBT_MANAGEMENT, DEMAND_CONFIG, PRICING_CONFIG, QUIT_RISK)
from state import PolicyConfigurationError


@dataclass
class Strategy:
    """Every lever the Day Simulator reads. No behavior of its own."""

    # Inventory
    reorder_point: int = 400
    order_quantity: int = 500

    # Production
    standard_batch_size: int = 80
    mce_allocation_custom: float = 0.55
    overtime_hours: float = 0.0
    overtime_threshold: float = 0.0  # Custom WIP load (share of ceiling) that switches overtime on

    # Pricing
    standard_price: float = PRICING_CONFIG["standard_market_price"]
    custom_base_price: float = PRICING_CONFIG["custom_base_price"]
    custom_penalty_per_day: float = PRICING_CONFIG["custom_penalty_per_day"]
    custom_target_delivery_days: float = PRICING_CONFIG["custom_target_delivery_days"]

    # Demand model
    custom_demand_mean1: float = DEMAND_CONFIG["custom_mean1"]
    custom_demand_std1: float = DEMAND_CONFIG["custom_std1"]
    custom_demand_mean2: float = DEMAND_CONFIG["custom_mean2"]
    custom_demand_std2: float = DEMAND_CONFIG["custom_std2"]
    standard_demand_intercept: float = DEMAND_CONFIG["standard_intercept"]
    standard_demand_slope: float = DEMAND_CONFIG["standard_slope"]

    # Quit risk
    overtime_trigger_days: int = QUIT_RISK["overtime_trigger_days"]
    daily_quit_probability: float = QUIT_RISK["daily_quit_probability"]

    # Debt management
    auto_debt_paydown: bool = DEBT_MANAGEMENT["auto_debt_paydown"]
    min_cash_reserve_days: int = DEBT_MANAGEMENT["min_cash_reserve_days"]
    debt_paydown_aggressiveness: float = DEBT_MANAGEMENT["debt_paydown_aggressiveness"]
    preemptive_wage_loan_days: int = DEBT_MANAGEMENT["preemptive_wage_loan_days"]
    max_debt_threshold: float = DEBT_MANAGEMENT["max_debt_threshold"]
    emergency_loan_buffer: float = DEBT_MANAGEMENT["emergency_loan_buffer"]

    timed_actions: List[Action] = field(default_factory=list)
    rules: List[Any] = field(default_factory=list)

    def clone(self):
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        # actions are frozen; rules carry no per-run state
        values["timed_actions"] = list(self.timed_actions)
        values["rules"] = list(self.rules)
        return Strategy(**values)

    def demand_context(self) -> Dict[str, float]:
        return {
            "custom_demand_mean1": self.custom_demand_mean1,
            "custom_demand_std1": self.custom_demand_std1,
            "custom_demand_mean2": self.custom_demand_mean2,
            "custom_demand_std2": self.custom_demand_std2,
            "standard_demand_intercept": self.standard_demand_intercept,
            "standard_demand_slope": self.standard_demand_slope,
        }

    def validate(self) -> None:
        if not 0.0 <= self.mce_allocation_custom <= 1.0:
            raise PolicyConfigurationError(
                f"mce_allocation_custom must be within [0, 1], got {self.mce_allocation_custom}")
        if self.overtime_hours < 0:
            raise PolicyConfigurationError("overtime_hours cannot be negative")
        if not 0.0 <= self.daily_quit_probability <= 1.0:
            raise PolicyConfigurationError("daily_quit_probability must be a probability")
        if self.order_quantity < 0 or self.reorder_point < 0:
            raise PolicyConfigurationError("reorder_point and order_quantity cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self) if f.name not in ("timed_actions", "rules")}
        out["timed_actions"] = [action_to_dict(a) for a in self.timed_actions]
        return out


def strategy_from_dict(data: Dict[str, Any]) -> Strategy:
    known = {f.name for f in fields(Strategy)}
    unknown = set(data) - known
    if unknown:
        raise PolicyConfigurationError(f"Unknown strategy fields: {sorted(unknown)}")
    values = dict(data)
    values["timed_actions"] = [action_from_dict(a) for a in data.get("timed_actions", [])]
    return Strategy(**values)
