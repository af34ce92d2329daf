#STANDARD IMPORTS

from dataclasses import dataclass
from typing import List

#LOCAL IMPORTS

from config import PRODUCTION_CONFIG, WORKFORCE_CONFIG
from state import RookieInTraining, SimulationState, add_employee


@dataclass
class SalaryCost:
    base_salary: float
    overtime_cost: float

    @property
    def total(self) -> float:
        return self.base_salary + self.overtime_cost


def hire_rookie(state: SimulationState, cfg=None, logger=None) -> int:
    cfg = cfg or WORKFORCE_CONFIG
    wf = state.workforce
    employee_id = add_employee(wf, "rookie")
    wf.rookies += 1
    wf.rookies_in_training.append(RookieInTraining(employee_id, state.current_day, cfg["training_days"]))
    if logger is not None:
        logger.log("hired", state.current_day, employee_type="rookie", employee_id=employee_id)
    return employee_id


def hire_expert(state: SimulationState, logger=None) -> int:
    wf = state.workforce
    employee_id = add_employee(wf, "expert")
    wf.experts += 1
    if logger is not None:
        logger.log("hired", state.current_day, employee_type="expert", employee_id=employee_id)
    return employee_id


def process_training(state: SimulationState, logger=None) -> int:
    """Count every trainee down one day and promote those who reach zero."""
    wf = state.workforce
    promoted: List[int] = []
    still_training = []
    for trainee in wf.rookies_in_training:
        trainee.days_remaining -= 1
        if trainee.days_remaining <= 0:
            promoted.append(trainee.employee_id)
        else:
            still_training.append(trainee)
    wf.rookies_in_training = still_training
    if promoted:
        ids = set(promoted)
        for rec in wf.overtime_tracking:
            if rec.employee_id in ids:
                rec.employee_type = "expert"
        wf.rookies -= len(promoted)
        wf.experts += len(promoted)
        if logger is not None:
            logger.log("promoted", state.current_day, count=len(promoted))
    return len(promoted)


def overtime_active(state: SimulationState, strategy, cfg=None) -> bool:
    cfg = cfg or PRODUCTION_CONFIG
    if strategy.overtime_hours <= 0:
        return False
    load = len(state.custom_wip.orders) / cfg["custom_max_wip"]
    return load >= strategy.overtime_threshold


def salary_cost(state: SimulationState, overtime_hours: float = 0.0, cfg=None) -> SalaryCost:
    cfg = cfg or WORKFORCE_CONFIG
    wf = state.workforce
    base = wf.experts * cfg["expert_salary"] + wf.rookies * cfg["rookie_salary"]
    overtime = 0.0
    if overtime_hours > 0:
        hourly = base / cfg["hours_per_shift"]
        overtime = hourly * overtime_hours * cfg["overtime_multiplier"]
    return SalaryCost(base, overtime)


def productivity(state: SimulationState, overtime_hours: float = 0.0, cfg=None) -> float:
    """Daily units the shared labor pool can finish."""
    cfg = cfg or WORKFORCE_CONFIG
    wf = state.workforce
    rate = cfg["expert_productivity"]
    base = wf.experts * rate + wf.rookies * rate * cfg["rookie_factor"]
    if overtime_hours > 0:
        base *= 1 + overtime_hours / cfg["hours_per_shift"]
    return base


def update_overtime_streaks(state: SimulationState, worked_overtime: bool) -> None:
    for rec in state.workforce.overtime_tracking:
        rec.consecutive_overtime_days = rec.consecutive_overtime_days + 1 if worked_overtime else 0


def roll_quit_risk(state: SimulationState, strategy, rng, logger=None) -> int:
    """Overworked employees quit with a fixed daily probability. Returns quits."""
    wf = state.workforce
    quitters = []
    for rec in wf.overtime_tracking:
        if rec.consecutive_overtime_days >= strategy.overtime_trigger_days:
            if rng.random() < strategy.daily_quit_probability:
                quitters.append(rec)
    if not quitters:
        return 0
    gone = {rec.employee_id for rec in quitters}
    wf.overtime_tracking = [r for r in wf.overtime_tracking if r.employee_id not in gone]
    for rec in quitters:
        if rec.employee_type == "expert":
            wf.experts -= 1
        else:
            wf.rookies -= 1
    wf.rookies_in_training = [t for t in wf.rookies_in_training if t.employee_id not in gone]
    if logger is not None:
        logger.log("quit", state.current_day, count=len(quitters),
                   experts=sum(1 for r in quitters if r.employee_type == "expert"))
    return len(quitters)
