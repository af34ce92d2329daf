#STANDARD IMPORTS

from dataclasses import dataclass
from typing import List, Optional

#LOCAL IMPORTS

import config as base_config
from actions import PayDebt, TakeLoan
from state import SimulationState


@dataclass
class DebtPlan:
    preemptive_loan: float = 0.0
    paydown: float = 0.0
    emergency: bool = False
    interest_saved: float = 0.0

    def actions(self, day: int) -> List:
        out = []
        if self.preemptive_loan > 0:
            out.append(TakeLoan(day, self.preemptive_loan))
        if self.paydown > 0:
            out.append(PayDebt(day, self.paydown))
        return out


# `cfg` below is a config namespace (the config module or a scenario copy of it)

def daily_salaries(state: SimulationState, cfg=None) -> float:
    wf_cfg = (cfg or base_config).WORKFORCE_CONFIG
    return state.workforce.experts * wf_cfg["expert_salary"] + state.workforce.rookies * wf_cfg["rookie_salary"]


def min_cash_reserve(state: SimulationState, strategy, cfg=None) -> float:
    """Operating expenses for `min_cash_reserve_days` days: payroll, overtime and amortized materials."""
    cfg = cfg or base_config
    wf_cfg = cfg.WORKFORCE_CONFIG
    salaries = daily_salaries(state, cfg)
    overtime = 0.0
    if strategy.overtime_hours > 0:
        overtime = salaries * strategy.overtime_hours / wf_cfg["hours_per_shift"] * wf_cfg["overtime_multiplier"]
    materials = (cfg.MATERIAL_CONFIG["order_fee"] + strategy.order_quantity * cfg.MATERIAL_CONFIG["unit_cost"]) / 7
    return (salaries + overtime + materials) * strategy.min_cash_reserve_days


def preemptive_wage_loan(state: SimulationState, strategy, cfg=None) -> float:
    """Gross loan needed before payroll so salaries never trigger an automatic loan."""
    cfg = cfg or base_config
    days_until_payroll = 7 - state.current_day % 7
    if days_until_payroll > strategy.preemptive_wage_loan_days:
        return 0.0
    required = daily_salaries(state, cfg) * 7 + strategy.emergency_loan_buffer
    if state.cash >= required:
        return 0.0
    shortfall = required - state.cash
    return shortfall / (1 - cfg.FINANCE_CONFIG["normal_commission"])


def debt_paydown(state: SimulationState, strategy, cfg=None) -> float:
    if state.debt <= 0:
        return 0.0
    excess = state.cash - min_cash_reserve(state, strategy, cfg)
    if excess <= 0:
        return 0.0
    return min(excess * strategy.debt_paydown_aggressiveness, state.debt)


def is_debt_emergency(state: SimulationState, strategy) -> bool:
    return state.debt > strategy.max_debt_threshold


def debt_savings(amount: float, day: int, end_day: Optional[int] = None, cfg=None) -> float:
    """Interest avoided by repaying `amount` on `day` instead of carrying it to the horizon."""
    cfg = cfg or base_config
    end_day = cfg.SIMULATION_END_DAY if end_day is None else end_day
    return amount * cfg.FINANCE_CONFIG["debt_interest_daily"] * max(0, end_day - day)


def plan_debt_actions(state: SimulationState, strategy, logger=None, cfg=None) -> DebtPlan:
    if not strategy.auto_debt_paydown:
        return DebtPlan()
    plan = DebtPlan()
    plan.preemptive_loan = preemptive_wage_loan(state, strategy, cfg)
    if plan.preemptive_loan == 0:
        plan.paydown = debt_paydown(state, strategy, cfg)
        if plan.paydown > 0:
            plan.interest_saved = debt_savings(plan.paydown, state.current_day, cfg=cfg)
            if logger is not None:
                logger.log("debt_paydown", state.current_day, amount=round(plan.paydown, 2),
                           interest_saved=round(plan.interest_saved, 2))
    plan.emergency = is_debt_emergency(state, strategy)
    if plan.emergency and logger is not None:
        logger.log("debt_emergency", state.current_day, debt=round(state.debt, 2),
                   threshold=strategy.max_debt_threshold)
    return plan
