#STANDARD IMPORTS

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional

#LOCAL IMPORTS

from actions import BuyMachine, HireRookie, OrderMaterials, TakeLoan, action_from_dict
from state import MachineType, PolicyConfigurationError, SimulationState


class ConditionType(str, Enum):
    CASH_BELOW = "CASH_BELOW"
    CASH_ABOVE = "CASH_ABOVE"
    INVENTORY_BELOW = "INVENTORY_BELOW"
    INVENTORY_ABOVE = "INVENTORY_ABOVE"
    BACKLOG_ABOVE = "BACKLOG_ABOVE"
    BACKLOG_BELOW = "BACKLOG_BELOW"
    DAY_RANGE = "DAY_RANGE"
    DEBT_ABOVE = "DEBT_ABOVE"
    NET_WORTH_BELOW = "NET_WORTH_BELOW"


@dataclass(frozen=True)
class RuleCondition:
    type: ConditionType
    threshold: float = 0.0
    min_day: int = 0
    max_day: float = math.inf

    def holds(self, state: SimulationState, day: int) -> bool:
        backlog = len(state.custom_wip.orders)
        t = self.type
        if t == ConditionType.CASH_BELOW:
            return state.cash < self.threshold
        if t == ConditionType.CASH_ABOVE:
            return state.cash > self.threshold
        if t == ConditionType.INVENTORY_BELOW:
            return state.raw_material_inventory < self.threshold
        if t == ConditionType.INVENTORY_ABOVE:
            return state.raw_material_inventory > self.threshold
        if t == ConditionType.BACKLOG_ABOVE:
            return backlog > self.threshold
        if t == ConditionType.BACKLOG_BELOW:
            return backlog < self.threshold
        if t == ConditionType.DAY_RANGE:
            return self.min_day <= day <= self.max_day
        if t == ConditionType.DEBT_ABOVE:
            return state.debt > self.threshold
        if t == ConditionType.NET_WORTH_BELOW:
            return state.net_worth < self.threshold
        raise PolicyConfigurationError(f"Unhandled condition type {t}")


@dataclass(frozen=True)
class Rule:
    """All conditions must hold. The action's day is replaced with the trigger day."""
    id: str
    name: str
    conditions: tuple
    action: Any
    cooldown_days: int = 0
    max_triggers: Optional[int] = None
    priority: int = 0
    enabled: bool = True


@dataclass
class RuleExecutionState:
    rule_id: str
    last_triggered_day: int = -1
    trigger_count: int = 0


class RulesEngine:
    def __init__(self, rules: Optional[List[Rule]] = None, logger=None):
        self.rules: List[Rule] = sorted(rules or [], key=lambda r: -r.priority)
        self.execution_state: Dict[str, RuleExecutionState] = {r.id: RuleExecutionState(r.id) for r in self.rules}
        self.logger = logger

    def evaluate(self, state: SimulationState, day: int) -> List:
        triggered = []
        for rule in self.rules:
            if not rule.enabled:
                continue
            ex = self.execution_state[rule.id]
            if rule.cooldown_days and ex.last_triggered_day >= 0 and day - ex.last_triggered_day < rule.cooldown_days:
                continue
            if rule.max_triggers is not None and ex.trigger_count >= rule.max_triggers:
                continue
            if all(c.holds(state, day) for c in rule.conditions):
                triggered.append(replace(rule.action, day=day))
                ex.last_triggered_day = day
                ex.trigger_count += 1
                if self.logger is not None:
                    self.logger.log("rule_triggered", day, rule_id=rule.id, action=type(rule.action).__name__)
        return triggered

    def add_rule(self, rule: Rule) -> None:
        self.rules.append(rule)
        self.rules.sort(key=lambda r: -r.priority)
        self.execution_state[rule.id] = RuleExecutionState(rule.id)

    def remove_rule(self, rule_id: str) -> None:
        self.rules = [r for r in self.rules if r.id != rule_id]
        self.execution_state.pop(rule_id, None)

    def execution_stats(self) -> List[Dict[str, Any]]:
        return [vars(ex).copy() for ex in self.execution_state.values()]

    def reset(self) -> None:
        for ex in self.execution_state.values():
            ex.last_triggered_day = -1
            ex.trigger_count = 0


def rule_from_dict(data: Dict[str, Any]) -> Rule:
    try:
        conditions = tuple(
            RuleCondition(ConditionType(c["type"]), c.get("threshold", 0.0),
                          c.get("min_day", 0), c.get("max_day", math.inf))
            for c in data.get("conditions", [])
        )
        action = action_from_dict({"day": 0, **data["action"]})
    except (KeyError, ValueError, TypeError) as e:
        raise PolicyConfigurationError(f"Invalid rule {data.get('id', '?')}: {e}") from e
    return Rule(
        id=data["id"],
        name=data.get("name", data["id"]),
        conditions=conditions,
        action=action,
        cooldown_days=data.get("cooldown_days", 0),
        max_triggers=data.get("max_triggers"),
        priority=data.get("priority", 0),
        enabled=data.get("enabled", True),
    )


EXAMPLE_RULES = [
    Rule(
        id="emergency-materials",
        name="Emergency Material Order",
        conditions=(RuleCondition(ConditionType.INVENTORY_BELOW, 100),
                    RuleCondition(ConditionType.CASH_ABOVE, 50000)),
        action=OrderMaterials(0, 500),
        cooldown_days=5,
        priority=100,
    ),
    Rule(
        id="expand-capacity",
        name="Expand Capacity When Profitable",
        conditions=(RuleCondition(ConditionType.CASH_ABOVE, 200000),
                    RuleCondition(ConditionType.BACKLOG_ABOVE, 50),
                    RuleCondition(ConditionType.DAY_RANGE, min_day=100, max_day=300)),
        action=BuyMachine(0, MachineType.MCE, 1),
        cooldown_days=30,
        max_triggers=2,
        priority=50,
    ),
    Rule(
        id="hire-when-backlog-high",
        name="Hire Rookie When Backlog High",
        conditions=(RuleCondition(ConditionType.BACKLOG_ABOVE, 75),
                    RuleCondition(ConditionType.CASH_ABOVE, 100000)),
        action=HireRookie(0, 1),
        cooldown_days=20,
        max_triggers=3,
        priority=75,
    ),
    Rule(
        id="take-loan-when-cash-low",
        name="Take Emergency Loan",
        # only with established credit
        conditions=(RuleCondition(ConditionType.CASH_BELOW, 30000),
                    RuleCondition(ConditionType.DEBT_ABOVE, 0)),
        action=TakeLoan(0, 50000),
        cooldown_days=40,
        max_triggers=2,
        priority=90,
    ),
]
