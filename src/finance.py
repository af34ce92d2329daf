"""
Cash, debt and interest for one simulated business.

Every outflow that must happen (salaries, interest, material orders) goes
through process_payment(), which borrows whatever cash is missing. That is
what keeps cash from ever ending a day below zero.
"""
#STANDARD IMPORTS

from dataclasses import dataclass
from typing import Optional

#LOCAL IMPORTS

from config import FINANCE_CONFIG
from state import SimulationState


@dataclass
class LoanTransaction:
    loan_amount: float
    commission: float
    net_amount: float
    is_salary_loan: bool
    new_debt: float
    new_cash: float


@dataclass
class DebtPayment:
    requested_amount: float
    actual_payment: float
    success: bool
    reason: Optional[str] = None


@dataclass
class Payment:
    amount: float
    description: str
    paid_from_cash: bool
    loan_taken: Optional[LoanTransaction] = None


@dataclass
class FinancialHealth:
    cash: float
    debt: float
    net_worth: float
    debt_to_asset_ratio: float
    daily_debt_cost: float
    is_solvent: bool


def _log(logger, event_type, day, **fields):
    if logger is not None:
        logger.log(event_type, day, **fields)


def take_loan(state: SimulationState, amount: float, is_salary_loan: bool = False,
              cfg=None, logger=None) -> LoanTransaction:
    cfg = cfg or FINANCE_CONFIG
    rate = cfg["salary_commission"] if is_salary_loan else cfg["normal_commission"]
    commission = amount * rate
    net = amount - commission
    state.cash += net
    state.debt += amount
    _log(logger, "auto_loan" if is_salary_loan else "loan_taken", state.current_day,
         amount=round(amount, 2), commission=round(commission, 2))
    return LoanTransaction(amount, commission, net, is_salary_loan, state.debt, state.cash)


def pay_debt(state: SimulationState, amount: float, logger=None) -> DebtPayment:
    payment = min(amount, state.debt, state.cash)
    if payment <= 0:
        reason = "Insufficient cash or no debt"
        _log(logger, "debt_payment_failed", state.current_day, amount=amount, reason=reason)
        return DebtPayment(amount, 0.0, False, reason)
    state.cash -= payment
    state.debt -= payment
    _log(logger, "debt_paid", state.current_day, amount=round(payment, 2))
    return DebtPayment(amount, payment, True)


def process_payment(state: SimulationState, amount: float, description: str = "",
                    cfg=None, logger=None) -> Payment:
    cfg = cfg or FINANCE_CONFIG
    if amount <= 0:
        return Payment(0.0, description, True)
    if state.cash >= amount:
        state.cash -= amount
        return Payment(amount, description, True)

    shortfall = amount - state.cash
    # gross principal whose net proceeds exactly cover the shortfall
    principal = shortfall / (1 - cfg["salary_commission"])
    loan = take_loan(state, principal, is_salary_loan=True, cfg=cfg, logger=logger)
    state.cash -= amount
    if state.cash < 0 or abs(state.cash) <= cfg["residue_epsilon"]:
        if state.cash != 0:
            _log(logger, "cash_clamped", state.current_day, residue=state.cash, description=description)
        state.cash = 0.0
    return Payment(amount, description, False, loan)


def apply_debt_interest(state: SimulationState, balance: Optional[float] = None,
                        cfg=None, logger=None) -> float:
    cfg = cfg or FINANCE_CONFIG
    balance = state.debt if balance is None else balance
    if balance <= 0:
        return 0.0
    interest = balance * cfg["debt_interest_daily"]
    state.debt += interest
    process_payment(state, interest, "Debt interest", cfg=cfg, logger=logger)
    return interest


def apply_cash_interest(state: SimulationState, cfg=None) -> float:
    cfg = cfg or FINANCE_CONFIG
    if state.cash <= 0:
        return 0.0
    interest = state.cash * cfg["cash_interest_daily"]
    state.cash += interest
    return interest


def record_revenue(state: SimulationState, amount: float) -> float:
    if amount > 0:
        state.cash += amount
    return state.cash


def financial_health(state: SimulationState, cfg=None) -> FinancialHealth:
    cfg = cfg or FINANCE_CONFIG
    assets = max(state.cash, 0.0)
    ratio = state.debt / assets if assets > 0 else (float("inf") if state.debt > 0 else 0.0)
    return FinancialHealth(
        cash=state.cash,
        debt=state.debt,
        net_worth=state.net_worth,
        debt_to_asset_ratio=ratio,
        daily_debt_cost=state.debt * cfg["debt_interest_daily"],
        is_solvent=state.cash >= 0,
    )
