"""Tests for loans, repayments, payments and interest."""

import pytest

from finance import (apply_cash_interest, apply_debt_interest, financial_health, pay_debt, process_payment,
                     take_loan)


def test_process_payment_borrows_exact_shortfall(empty_state, logger):
    """Paying 1000 with 400 in cash leaves cash at zero and grosses the loan up for commission."""
    empty_state.cash = 400.0
    payment = process_payment(empty_state, 1000.0, "Daily salaries", logger=logger)

    assert empty_state.cash == pytest.approx(0.0, abs=1e-9)
    assert empty_state.cash >= 0.0
    assert empty_state.debt == pytest.approx(600 / 0.95)
    assert payment.paid_from_cash is False
    assert payment.loan_taken.is_salary_loan is True
    assert logger.count("auto_loan") == 1


def test_process_payment_from_cash(empty_state):
    """A payment that cash covers never borrows."""
    empty_state.cash = 5000.0
    payment = process_payment(empty_state, 1000.0)

    assert empty_state.cash == 4000.0
    assert empty_state.debt == 0.0
    assert payment.loan_taken is None


def test_process_payment_with_zero_cash(empty_state):
    """An empty till finances the whole amount."""
    empty_state.cash = 0.0
    process_payment(empty_state, 950.0)

    assert empty_state.cash == pytest.approx(0.0, abs=1e-9)
    assert empty_state.debt == pytest.approx(1000.0)


def test_take_loan_commission(empty_state):
    """Voluntary loans pay the normal commission, emergency loans the salary commission."""
    empty_state.cash = 0.0
    normal = take_loan(empty_state, 10000.0)
    assert normal.commission == pytest.approx(200.0)
    assert empty_state.cash == pytest.approx(9800.0)
    assert empty_state.debt == pytest.approx(10000.0)

    emergency = take_loan(empty_state, 10000.0, is_salary_loan=True)
    assert emergency.commission == pytest.approx(500.0)
    assert empty_state.debt == pytest.approx(20000.0)


def test_pay_debt_never_overdraws(empty_state, logger):
    """Repayment is capped by both cash and debt."""
    empty_state.cash = 3000.0
    empty_state.debt = 10000.0
    result = pay_debt(empty_state, 5000.0, logger)

    assert result.success
    assert result.actual_payment == 3000.0
    assert empty_state.cash == 0.0
    assert empty_state.debt == 7000.0


def test_pay_debt_fails_without_debt(empty_state, logger):
    """A repayment with no debt outstanding is refused with a reason."""
    result = pay_debt(empty_state, 1000.0, logger)

    assert not result.success
    assert result.reason == "Insufficient cash or no debt"
    assert logger.count("debt_payment_failed") == 1


def test_debt_interest_is_added_and_paid(empty_state):
    """Interest accrues onto debt and is paid out of cash."""
    empty_state.cash = 1000.0
    empty_state.debt = 100000.0
    interest = apply_debt_interest(empty_state)

    assert interest == pytest.approx(100.0)
    assert empty_state.debt == pytest.approx(100100.0)
    assert empty_state.cash == pytest.approx(900.0)


def test_debt_interest_on_given_balance(empty_state):
    """The start-of-day balance can be passed explicitly."""
    empty_state.cash = 1000.0
    empty_state.debt = 50000.0
    interest = apply_debt_interest(empty_state, balance=20000.0)

    assert interest == pytest.approx(20.0)


def test_cash_interest_only_on_positive_cash(empty_state):
    """No interest is earned on an empty account."""
    empty_state.cash = 0.0
    assert apply_cash_interest(empty_state) == 0.0

    empty_state.cash = 10000.0
    assert apply_cash_interest(empty_state) == pytest.approx(5.0)
    assert empty_state.cash == pytest.approx(10005.0)


def test_financial_health(empty_state):
    """Health snapshot reports net worth and daily debt cost."""
    empty_state.cash = 20000.0
    empty_state.debt = 10000.0
    health = financial_health(empty_state)

    assert health.net_worth == 10000.0
    assert health.debt_to_asset_ratio == pytest.approx(0.5)
    assert health.daily_debt_cost == pytest.approx(10.0)
    assert health.is_solvent
