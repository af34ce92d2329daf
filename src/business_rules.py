"""Business Rules Validator.

Checks a finished run against hard operating constraints: customer service,
inventory discipline, workforce utilization, solvency and mission alignment.
A run is valid when it has no CRITICAL violation. MAJOR and WARNING
violations are reported but do not invalidate it.
"""
#STANDARD IMPORTS

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# 3rd PARTY IMPORTS

import numpy as np

#LOCAL IMPORTS

from config import BUSINESS_RULES
from state import SimulationState


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    WARNING = "WARNING"


@dataclass
class Violation:
    """One broken rule.

    Attributes:
        rule: rule identifier, e.g. "max_custom_delivery_days"
        severity: CRITICAL, MAJOR or WARNING
        message: human readable description
        day: day the violation was observed (last day for whole-run checks)
        value: observed value
        threshold: configured limit
    """
    rule: str
    severity: Severity
    message: str
    day: int
    value: float
    threshold: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
            "day": self.day,
            "value": self.value,
            "threshold": self.threshold,
        }


@dataclass
class ValidationResult:
    violations: List[Violation] = field(default_factory=list)

    def _count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity == severity)

    @property
    def critical_count(self) -> int:
        return self._count(Severity.CRITICAL)

    @property
    def major_count(self) -> int:
        return self._count(Severity.MAJOR)

    @property
    def warning_count(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def valid(self) -> bool:
        return self.critical_count == 0

    def by_severity(self, severity: Severity) -> List[Violation]:
        return [v for v in self.violations if v.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "critical_count": self.critical_count,
            "major_count": self.major_count,
            "warning_count": self.warning_count,
            "violations": [v.to_dict() for v in self.violations],
        }


def _max_run(flags: List[bool]) -> int:
    best = run = 0
    for flag in flags:
        run = run + 1 if flag else 0
        best = max(best, run)
    return best


class BusinessRulesValidator:
    """Runs every rule over a state's history.

    Args:
        rules: threshold dict (defaults to BUSINESS_RULES)
        alerts: optional AlertBoard that receives one alert per violation
    """

    def __init__(self, rules: Optional[Dict[str, float]] = None, alerts=None):
        self.rules = rules or BUSINESS_RULES
        self.alerts = alerts

    def validate(self, state: SimulationState) -> ValidationResult:
        result = ValidationResult()
        if len(state.history) == 0:
            return result
        checks = (
            self.check_custom_delivery_time,
            self.check_custom_service_level,
            self.check_financial_health,
            self.check_inventory_stockouts,
            self.check_production_utilization,
            self.check_mission_alignment,
            self.check_debt_to_revenue,
            self.check_safety_stock,
            self.check_custom_backlog,
            self.check_idle_workforce,
        )
        for check in checks:
            result.violations.extend(check(state))
        if self.alerts is not None:
            for v in result.violations:
                self.alerts.raise_alert(f"{v.rule}:{v.day}", v.severity.value, v.rule, v.message, v.day,
                                        {"value": v.value, "threshold": v.threshold})
        return result

    # --- CRITICAL ---------------------------------------------------------

    def check_custom_delivery_time(self, state: SimulationState) -> List[Violation]:
        limit = self.rules["max_custom_delivery_days"]
        out = []
        for row in state.history.records:
            delivery = row.get("custom_delivery_time", 0.0)
            if delivery > limit:
                out.append(Violation(
                    "max_custom_delivery_days", Severity.CRITICAL,
                    f"Custom delivery time of {delivery:.1f} days exceeds maximum of {limit} days",
                    row["day"], delivery, limit))
        return out

    def check_custom_service_level(self, state: SimulationState) -> List[Violation]:
        deliveries = [d for d in state.history.series("custom_delivery_time") if d > 0]
        if not deliveries:
            return []
        on_time = sum(1 for d in deliveries if d <= self.rules["custom_on_time_days"])
        level = on_time / len(deliveries)
        limit = self.rules["min_custom_service_level"]
        if level >= limit:
            return []
        return [Violation(
            "min_custom_service_level", Severity.CRITICAL,
            f"Custom service level of {level:.1%} is below minimum {limit:.0%} "
            f"({on_time}/{len(deliveries)} delivery days on time)",
            state.current_day, level, limit)]

    def check_financial_health(self, state: SimulationState) -> List[Violation]:
        min_cash = min(state.history.series("cash"))
        limit = self.rules["min_cash_threshold"]
        if min_cash >= limit:
            return []
        return [Violation(
            "min_cash_threshold", Severity.CRITICAL,
            f"Minimum cash of ${min_cash:,.2f} is below the bankruptcy threshold of ${limit:,.2f}",
            state.current_day, min_cash, limit)]

    # --- MAJOR ------------------------------------------------------------

    def check_inventory_stockouts(self, state: SimulationState) -> List[Violation]:
        out = []
        stockouts = [inv == 0 for inv in state.history.series("raw_material")]
        longest = _max_run(stockouts)
        limit = self.rules["max_consecutive_stockout_days"]
        if longest > limit:
            out.append(Violation(
                "max_consecutive_stockout_days", Severity.MAJOR,
                f"{longest} consecutive stockout days exceeds maximum of {limit}",
                state.current_day, longest, limit))
        per_100 = sum(stockouts) / len(stockouts) * 100
        limit = self.rules["max_stockout_days_per_100"]
        if per_100 > limit:
            out.append(Violation(
                "max_stockout_days_per_100", Severity.MAJOR,
                f"{per_100:.1f} stockout days per 100 days exceeds maximum of {limit}",
                state.current_day, per_100, limit))
        return out

    def check_production_utilization(self, state: SimulationState) -> List[Violation]:
        capacity = np.array(state.history.series("labor_capacity"), dtype=float)
        used = np.array(state.history.series("labor_used"), dtype=float)
        mask = capacity > 0
        utilization = float(np.mean(used[mask] / capacity[mask])) if mask.any() else 0.0
        limit = self.rules["min_production_utilization"]
        if utilization >= limit:
            return []
        return [Violation(
            "min_production_utilization", Severity.MAJOR,
            f"Average labor utilization of {utilization:.1%} is below minimum {limit:.0%}",
            state.current_day, utilization, limit)]

    def check_mission_alignment(self, state: SimulationState) -> List[Violation]:
        out = []
        days = len(state.history)
        rejected = state.rejected_material_orders + state.rejected_custom_orders
        per_100 = rejected / days * 100
        limit = self.rules["max_orders_rejected_per_100_days"]
        if per_100 > limit:
            out.append(Violation(
                "max_orders_rejected_per_100_days", Severity.MAJOR,
                f"{per_100:.1f} orders rejected per 100 days exceeds maximum of {limit}",
                state.current_day, per_100, limit))
        standard = sum(state.history.series("standard_produced"))
        custom = sum(state.history.series("custom_produced"))
        total = standard + custom
        ratio = custom / total if total > 0 else 0.0
        limit = self.rules["min_custom_production_ratio"]
        if ratio < limit:
            out.append(Violation(
                "min_custom_production_ratio", Severity.MAJOR,
                f"Custom share of production {ratio:.1%} is below minimum {limit:.0%}",
                state.current_day, ratio, limit))
        return out

    # --- WARNING ----------------------------------------------------------

    def check_debt_to_revenue(self, state: SimulationState) -> List[Violation]:
        monthly_revenue = sum(state.history.series("revenue")[-30:])
        limit = self.rules["max_debt_to_revenue_ratio"]
        if state.debt <= 0:
            return []
        ratio = state.debt / monthly_revenue if monthly_revenue > 0 else float("inf")
        if ratio <= limit:
            return []
        return [Violation(
            "max_debt_to_revenue_ratio", Severity.WARNING,
            f"Debt is {ratio:.1f}x trailing 30-day revenue, above {limit}x",
            state.current_day, ratio, limit)]

    def check_safety_stock(self, state: SimulationState) -> List[Violation]:
        usage = float(np.mean(state.history.series("material_used")))
        if usage <= 0:
            return []
        days_on_hand = state.raw_material_inventory / usage
        limit = self.rules["min_safety_stock_days"]
        if days_on_hand >= limit:
            return []
        return [Violation(
            "min_safety_stock_days", Severity.WARNING,
            f"Raw material covers {days_on_hand:.1f} days of usage, below {limit}",
            state.current_day, days_on_hand, limit)]

    def check_custom_backlog(self, state: SimulationState) -> List[Violation]:
        throughput = float(np.mean(state.history.series("custom_produced")[-30:]))
        backlog = len(state.custom_wip.orders)
        if backlog == 0:
            return []
        backlog_days = backlog / throughput if throughput > 0 else float("inf")
        limit = self.rules["max_custom_backlog_days"]
        if backlog_days <= limit:
            return []
        return [Violation(
            "max_custom_backlog_days", Severity.WARNING,
            f"Custom backlog of {backlog} orders is {backlog_days:.1f} days of throughput, above {limit}",
            state.current_day, backlog_days, limit)]

    def check_idle_workforce(self, state: SimulationState) -> List[Violation]:
        longest = _max_run([bool(flag) for flag in state.history.series("idle")])
        limit = self.rules["max_idle_workforce_days"]
        if longest <= limit:
            return []
        return [Violation(
            "max_idle_workforce_days", Severity.WARNING,
            f"{longest} consecutive days with an idle workforce exceeds {limit}",
            state.current_day, longest, limit)]


def validate_business_rules(state: SimulationState, rules=None, alerts=None) -> ValidationResult:
    return BusinessRulesValidator(rules, alerts).validate(state)


def format_violations(result: ValidationResult) -> str:
    if result.valid and not result.violations:
        return "All business rules passed"
    lines = []
    lines.append("BUSINESS RULE VIOLATIONS:" if not result.valid else "Business rules passed with findings:")
    lines.append(f"Critical: {result.critical_count} | Major: {result.major_count} | "
                 f"Warning: {result.warning_count}")
    headings = {
        Severity.CRITICAL: "CRITICAL (run rejected):",
        Severity.MAJOR: "MAJOR:",
        Severity.WARNING: "WARNING:",
    }
    for severity in Severity:
        group = result.by_severity(severity)
        if not group:
            continue
        lines.append("")
        lines.append(headings[severity])
        for v in group:
            lines.append(f"  - {v.rule} (day {v.day}): {v.message}")
    return "\n".join(lines)
