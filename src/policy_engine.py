"""
Policy/Parameter Engine - 15 policy coefficients in, a day-indexed action stream out.

Optimizing every daily decision directly is hopeless; optimizing the handful
of coefficients that *generate* those decisions is not. A policy is a dict of
the 15 PolicyParam values. Three shapes are accepted:

  * a single policy used for every day,
  * a WeeklyPolicy holding one policy per calendar week,
  * a StateTable holding one policy per cash bucket (LOW / MEDIUM / HIGH).

On each day the running state is classified into cash, inventory and debt
buckets and the base parameters are scaled by the bucket multipliers before
the day's actions are produced. A cheap forward estimate (loans, repayments,
hires, order cost and training only) keeps the buckets moving during
generation. The Day Simulator later executes the real run.
"""
#STANDARD IMPORTS

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

#LOCAL IMPORTS

from actions import AdjustAllocation, AdjustBatchSize, AdjustPrice, HireRookie, OrderMaterials, PayDebt, TakeLoan
from config import (MATERIAL_CONFIG, PARAMETER_SPACE, POLICY_CONFIG, PRICING_CONFIG, SIMULATION_END_DAY,
                    SIMULATION_START_DAY, STATE_MULTIPLIERS, STATE_THRESHOLDS, WORKFORCE_CONFIG)
from inventory import order_cost
from state import PolicyConfigurationError, SimulationState
from strategy import Strategy
from workforce import hire_rookie, process_training


class PolicyParam(str, Enum):
    REORDER_POINT = "reorder_point"
    ORDER_QUANTITY = "order_quantity"
    SAFETY_STOCK = "safety_stock"
    MCE_CUSTOM_ALLOCATION = "mce_custom_allocation"
    STANDARD_BATCH_SIZE = "standard_batch_size"
    BATCH_INTERVAL = "batch_interval"
    TARGET_EXPERTS = "target_experts"
    HIRE_THRESHOLD = "hire_threshold"
    MAX_OVERTIME_HOURS = "max_overtime_hours"
    OVERTIME_THRESHOLD = "overtime_threshold"
    CASH_RESERVE_TARGET = "cash_reserve_target"
    LOAN_AMOUNT = "loan_amount"
    REPAY_THRESHOLD = "repay_threshold"
    STANDARD_PRICE_MULTIPLIER = "standard_price_multiplier"
    CUSTOM_BASE_PRICE = "custom_base_price"


PARAM_NAMES: List[str] = [p.value for p in PolicyParam]


class BucketLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class BusinessState:
    cash: BucketLevel
    inventory: BucketLevel
    debt: BucketLevel


def _bucket(value: float, bounds: Dict[str, float]) -> BucketLevel:
    if value < bounds["low"]:
        return BucketLevel.LOW
    if value >= bounds["high"]:
        return BucketLevel.HIGH
    return BucketLevel.MEDIUM


def classify_state(state: SimulationState, thresholds=None) -> BusinessState:
    t = thresholds or STATE_THRESHOLDS
    return BusinessState(
        cash=_bucket(state.cash, t["cash"]),
        inventory=_bucket(state.raw_material_inventory, t["inventory"]),
        debt=_bucket(state.debt, t["debt"]),
    )


def validate_policy(policy: Dict[str, float], where: str = "policy") -> Dict[str, float]:
    """
    Check a policy dict has exactly the 15 parameters.

    Raises:
        PolicyConfigurationError: on a missing or unknown parameter name.
    """
    missing = [name for name in PARAM_NAMES if name not in policy]
    if missing:
        raise PolicyConfigurationError(f"{where} is missing parameters: {missing}")
    unknown = sorted(set(policy) - set(PARAM_NAMES))
    if unknown:
        raise PolicyConfigurationError(f"{where} has unknown parameters: {unknown}")
    return policy


class StateTable:
    """One full policy per cash bucket, indexed by (BucketLevel, PolicyParam)."""

    def __init__(self, variants: Dict[BucketLevel, Dict[str, float]]):
        self._table: Dict[tuple, float] = {}
        for level in BucketLevel:
            if level not in variants:
                raise PolicyConfigurationError(f"No policy parameters defined for {level.value} cash state")
            policy = validate_policy(variants[level], f"{level.value} cash variant")
            for param in PolicyParam:
                self._table[(level, param)] = policy[param.value]

    @classmethod
    def tripled(cls, policy: Dict[str, float]) -> "StateTable":
        return cls({level: dict(policy) for level in BucketLevel})

    def get(self, level: BucketLevel, param: PolicyParam) -> float:
        return self._table[(level, param)]

    def variant(self, level: BucketLevel) -> Dict[str, float]:
        return {param.value: self._table[(level, param)] for param in PolicyParam}


class WeeklyPolicy:
    """One policy per calendar week, week 1 starting on the first simulated day."""

    def __init__(self, weeks: Dict[int, Dict[str, float]], num_weeks: int = None):
        self.num_weeks = num_weeks or POLICY_CONFIG["weeks"]
        self.weeks = {int(w): dict(p) for w, p in weeks.items()}

    @classmethod
    def uniform(cls, policy: Dict[str, float], num_weeks: int = None) -> "WeeklyPolicy":
        n = num_weeks or POLICY_CONFIG["weeks"]
        return cls({w: dict(policy) for w in range(1, n + 1)}, n)

    def week_number(self, day: int, start_day: int = SIMULATION_START_DAY) -> int:
        return min((day - start_day) // 7 + 1, self.num_weeks)

    def for_week(self, week: int) -> Dict[str, float]:
        policy = self.weeks.get(week)
        if policy is None:
            raise PolicyConfigurationError(f"No policy parameters defined for week {week}")
        return validate_policy(policy, f"week {week}")


PolicyInput = Union[Dict[str, float], WeeklyPolicy, StateTable]


class PolicyEngine:
    """
    Converts a policy into timed actions and a Strategy for the Day Simulator.

    Args:
        policy: a single policy dict, a WeeklyPolicy or a StateTable.
        thresholds: bucket thresholds (defaults to STATE_THRESHOLDS).
        multipliers: bucket multipliers (defaults to STATE_MULTIPLIERS).
        cfg: engine constants (defaults to POLICY_CONFIG).
        pricing, workforce, material: the PRICING_CONFIG, WORKFORCE_CONFIG and
            MATERIAL_CONFIG used for prices and the forward estimate.
    """

    def __init__(self, policy: PolicyInput, thresholds=None, multipliers=None, cfg=None,
                 pricing=None, workforce=None, material=None):
        self.policy = policy
        self.thresholds = thresholds or STATE_THRESHOLDS
        self.multipliers = multipliers or STATE_MULTIPLIERS
        self.cfg = cfg or POLICY_CONFIG
        self.pricing = pricing or PRICING_CONFIG
        self.workforce = workforce or WORKFORCE_CONFIG
        self.material = material or MATERIAL_CONFIG
        if isinstance(policy, dict):
            validate_policy(policy)
        elif not isinstance(policy, (WeeklyPolicy, StateTable)):
            raise PolicyConfigurationError(f"Unsupported policy type {type(policy).__name__}")
        self._last_order_day = 0
        self._last_batch_day = 0

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def base_parameters(self, day: int, bucket: BusinessState) -> Dict[str, float]:
        if isinstance(self.policy, WeeklyPolicy):
            return self.policy.for_week(self.policy.week_number(day))
        if isinstance(self.policy, StateTable):
            return self.policy.variant(bucket.cash)
        return self.policy

    def effective_parameters(self, day: int, state: SimulationState) -> Dict[str, float]:
        """
        Base parameters for `day` scaled by the business-state multipliers.

        A StateTable already selects its variant by cash bucket, so the cash
        multiplier is not applied on top of it.
        """
        bucket = classify_state(state, self.thresholds)
        base = self.base_parameters(day, bucket)
        m = self.multipliers
        cash = 1.0 if isinstance(self.policy, StateTable) else m["cash"][bucket.cash.value]
        inv = m["inventory"][bucket.inventory.value]
        debt = m["debt"][bucket.debt.value]
        lo, hi = self.cfg["allocation_clamp"]
        return {
            "reorder_point": round(base["reorder_point"] * inv),
            "order_quantity": round(base["order_quantity"] * inv * cash),
            "safety_stock": base["safety_stock"] * inv,
            "mce_custom_allocation": max(lo, min(hi, base["mce_custom_allocation"] * cash)),
            "standard_batch_size": round(base["standard_batch_size"] * debt),
            "batch_interval": base["batch_interval"],
            "target_experts": round(base["target_experts"] * cash),
            "hire_threshold": base["hire_threshold"],
            "max_overtime_hours": base["max_overtime_hours"] * cash * debt,
            "overtime_threshold": base["overtime_threshold"],
            # more borrowing room when debt is low
            "cash_reserve_target": round(base["cash_reserve_target"] * debt),
            "loan_amount": round(base["loan_amount"] / debt),
            "repay_threshold": round(base["repay_threshold"] * debt),
            "standard_price_multiplier": base["standard_price_multiplier"],
            "custom_base_price": base["custom_base_price"],
        }

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def daily_actions(self, state: SimulationState, day: int, start_day: int = SIMULATION_START_DAY) -> List:
        p = self.effective_parameters(day, state)
        actions = []

        if (state.raw_material_inventory <= p["reorder_point"]
                and day - self._last_order_day >= self.cfg["material_order_spacing"]):
            actions.append(OrderMaterials(day, int(p["order_quantity"])))
            self._last_order_day = day

        if day - self._last_batch_day >= p["batch_interval"]:
            actions.append(AdjustBatchSize(day, int(p["standard_batch_size"])))
            self._last_batch_day = day

        # queue-pressure nudges are applied by production on the day itself
        actions.append(AdjustAllocation(day, p["mce_custom_allocation"]))

        wf = state.workforce
        future_experts = wf.experts + len(wf.rookies_in_training)
        if future_experts < p["target_experts"] * p["hire_threshold"]:
            count = math.ceil(p["target_experts"] - future_experts)
            if 0 < count <= self.cfg["max_hires_per_day"]:
                actions.append(HireRookie(day, count))

        if state.cash < p["cash_reserve_target"] and state.debt < self.cfg["loan_debt_ceiling"]:
            actions.append(TakeLoan(day, float(p["loan_amount"])))

        if state.cash > p["repay_threshold"] and state.debt > 0:
            amount = min(state.cash - p["cash_reserve_target"], state.debt)
            if amount > self.cfg["min_repayment"]:
                actions.append(PayDebt(day, float(math.floor(amount))))

        if day == start_day:
            price = round(self.pricing["standard_market_price"] * p["standard_price_multiplier"])
            actions.append(AdjustPrice(day, "standard", float(price)))

        return actions

    def _estimate(self, state: SimulationState, actions: List, day: int) -> None:
        state.current_day = day
        for action in actions:
            if isinstance(action, TakeLoan):
                state.cash += action.amount
                state.debt += action.amount
            elif isinstance(action, PayDebt):
                state.cash -= action.amount
                state.debt -= action.amount
            elif isinstance(action, HireRookie):
                for _ in range(action.count):
                    hire_rookie(state, self.workforce)
            elif isinstance(action, OrderMaterials):
                state.cash -= order_cost(action.quantity, self.material)
        process_training(state)

    def generate_all_actions(self, initial_state: SimulationState, start_day: Optional[int] = None,
                             end_day: Optional[int] = None) -> List:
        """
        Walk every day from `start_day` to `end_day`, emitting that day's actions.

        The caller's state is cloned; only the clone is advanced by the
        forward estimate. Raises PolicyConfigurationError on the first day
        whose week or bucket has no parameters.
        """
        start = initial_state.current_day if start_day is None else start_day
        end = SIMULATION_END_DAY if end_day is None else end_day
        self._last_order_day = 0
        self._last_batch_day = 0
        estimate = initial_state.clone()
        out = []
        for day in range(start, end + 1):
            actions = self.daily_actions(estimate, day, start)
            out.extend(actions)
            self._estimate(estimate, actions, day)
        return out

    def representative_parameters(self) -> Dict[str, float]:
        if isinstance(self.policy, WeeklyPolicy):
            return self.policy.for_week(1)
        if isinstance(self.policy, StateTable):
            return self.policy.variant(BucketLevel.MEDIUM)
        return self.policy

    def to_strategy(self, initial_state: SimulationState, base_strategy: Optional[Strategy] = None,
                    end_day: Optional[int] = None) -> Strategy:
        actions = self.generate_all_actions(initial_state, end_day=end_day)
        p = self.representative_parameters()
        s = base_strategy.clone() if base_strategy is not None else Strategy()
        s.reorder_point = int(round(p["reorder_point"]))
        s.order_quantity = int(round(p["order_quantity"]))
        s.standard_batch_size = int(round(p["standard_batch_size"]))
        s.mce_allocation_custom = p["mce_custom_allocation"]
        s.standard_price = float(round(self.pricing["standard_market_price"] * p["standard_price_multiplier"]))
        s.custom_base_price = p["custom_base_price"]
        s.overtime_hours = p["max_overtime_hours"]
        s.overtime_threshold = p["overtime_threshold"]
        s.auto_debt_paydown = True
        s.min_cash_reserve_days = round(p["cash_reserve_target"] / 5000)
        s.debt_paydown_aggressiveness = 0.8
        s.preemptive_wage_loan_days = 4
        s.max_debt_threshold = self.cfg["loan_debt_ceiling"]
        s.emergency_loan_buffer = p["cash_reserve_target"]
        s.timed_actions = actions
        return s


# ----------------------------------------------------------------------
# Search-space helpers
# ----------------------------------------------------------------------

def random_policy(rng: random.Random, space=None) -> Dict[str, float]:
    space = space or PARAMETER_SPACE
    return {name: rng.randint(lo, hi) if kind == "int" else rng.uniform(lo, hi)
            for name, (lo, hi, kind) in space.items()}


def clamp_policy(policy: Dict[str, float], space=None) -> Dict[str, float]:
    """Clamp every gene named in `space` to its range, rounding integer genes."""
    space = space or PARAMETER_SPACE
    out = {}
    for name, (lo, hi, kind) in space.items():
        value = min(hi, max(lo, policy[name]))
        out[name] = int(round(value)) if kind == "int" else float(value)
    return out


def policy_to_vector(policy: Dict[str, float]) -> List[float]:
    return [float(policy[name]) for name in PARAM_NAMES]


def vector_to_policy(vector: List[float], space=None) -> Dict[str, float]:
    if len(vector) != len(PARAM_NAMES):
        raise PolicyConfigurationError(f"Expected {len(PARAM_NAMES)} values, got {len(vector)}")
    return clamp_policy(dict(zip(PARAM_NAMES, vector)), space)


def weekly_to_flat(weekly: WeeklyPolicy) -> Dict[str, float]:
    flat = {}
    for week in range(1, weekly.num_weeks + 1):
        for name, value in weekly.for_week(week).items():
            flat[f"week{week}_{name}"] = value
    return flat


def flat_to_weekly(flat: Dict[str, Any], num_weeks: int = None) -> WeeklyPolicy:
    n = num_weeks or POLICY_CONFIG["weeks"]
    weeks = {}
    for week in range(1, n + 1):
        prefix = f"week{week}_"
        policy = {k[len(prefix):]: v for k, v in flat.items() if k.startswith(prefix)}
        if policy:
            weeks[week] = validate_policy(policy, f"week {week}")
    return WeeklyPolicy(weeks, n)


def _cash_prefix(level: BucketLevel) -> str:
    return f"{level.value.lower()}_cash_"


def table_to_flat(table: StateTable) -> Dict[str, float]:
    return {_cash_prefix(level) + name: value
            for level in BucketLevel for name, value in table.variant(level).items()}


def flat_to_table(flat: Dict[str, Any]) -> StateTable:
    variants = {}
    for level in BucketLevel:
        prefix = _cash_prefix(level)
        variant = {k[len(prefix):]: v for k, v in flat.items() if k.startswith(prefix)}
        if variant:
            variants[level] = variant
    return StateTable(variants)


# ----------------------------------------------------------------------
# Search encodings
# ----------------------------------------------------------------------
# flat:    the 15 parameters, one policy for the whole run
# tripled: 45 genes, one policy per cash bucket (low_cash_*, medium_cash_*, high_cash_*)
# weekly:  15 genes per week (week1_* .. weekN_*)

ENCODINGS = ("flat", "tripled", "weekly")


def _check_encoding(encoding: str) -> None:
    if encoding not in ENCODINGS:
        raise PolicyConfigurationError(f"Unknown policy encoding '{encoding}', expected one of {ENCODINGS}")


def encoded_space(encoding: str, space=None, num_weeks: int = None) -> Dict[str, tuple]:
    """Bounds of every gene of `encoding`, each copied from its base parameter."""
    _check_encoding(encoding)
    space = space or PARAMETER_SPACE
    if encoding == "flat":
        return dict(space)
    if encoding == "tripled":
        return {_cash_prefix(level) + name: bounds for level in BucketLevel for name, bounds in space.items()}
    n = num_weeks or POLICY_CONFIG["weeks"]
    return {f"week{w}_{name}": bounds for w in range(1, n + 1) for name, bounds in space.items()}


def expand_policy(policy: Dict[str, float], encoding: str, num_weeks: int = None) -> Dict[str, float]:
    """Genes of `encoding` that repeat one 15-parameter policy everywhere."""
    _check_encoding(encoding)
    validate_policy(policy)
    if encoding == "flat":
        return dict(policy)
    if encoding == "tripled":
        return table_to_flat(StateTable.tripled(policy))
    return weekly_to_flat(WeeklyPolicy.uniform(policy, num_weeks))


def decode_policy(genes: Dict[str, float], encoding: str, num_weeks: int = None) -> PolicyInput:
    _check_encoding(encoding)
    if encoding == "flat":
        return dict(genes)
    if encoding == "tripled":
        return flat_to_table(genes)
    return flat_to_weekly(genes, num_weeks)


def _weeks_in(genes: Dict[str, Any]) -> int:
    return max(int(k[len("week"):].split("_", 1)[0]) for k in genes)


def detect_encoding(genes: Dict[str, Any]) -> str:
    keys = list(genes)
    if keys and all(k.startswith("week") for k in keys):
        return "weekly"
    if keys and all(k.split("_cash_")[0] in ("low", "medium", "high") and "_cash_" in k for k in keys):
        return "tripled"
    return "flat"


def policy_from_dict(data: Dict[str, Any], defaults: Dict[str, float], num_weeks: int = None) -> PolicyInput:
    """
    Build a PolicyInput from a scenario's `policy` entry.

    Accepted forms:
        {"reorder_point": 300, ...}            partial flat policy over `defaults`
        {"cash_states": {"low": {...}, ...}}   one partial policy per cash bucket
        {"weeks": {1: {...}, ...}}             one partial policy per week
        encoded genes (week3_*, low_cash_*)    as written by an optimizer run
    Missing cash buckets or weeks raise PolicyConfigurationError when used.
    """
    if "cash_states" in data:
        variants = {}
        for level in BucketLevel:
            part = data["cash_states"].get(level.value.lower())
            if part is not None:
                variants[level] = dict(defaults, **part)
        return StateTable(variants)
    if "weeks" in data:
        n = data.get("num_weeks", num_weeks)
        return WeeklyPolicy({int(w): dict(defaults, **p) for w, p in data["weeks"].items()}, n)
    encoding = detect_encoding(data)
    if encoding == "flat":
        return dict(defaults, **data)
    return decode_policy(data, encoding, _weeks_in(data) if encoding == "weekly" else None)