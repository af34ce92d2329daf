"""Tests for the strategy-level debt manager and pricing."""

import pytest

import config as base_config
from actions import PayDebt, TakeLoan
from debt_manager import (debt_paydown, debt_savings, is_debt_emergency, min_cash_reserve, plan_debt_actions,
                          preemptive_wage_loan)
from pricing import Pricing, custom_price, process_sales
from scenarios import ScenarioManager
from strategy import Strategy


def test_disabled_manager_plans_nothing(empty_state):
    """Without auto paydown there are no debt actions."""
    plan = plan_debt_actions(empty_state, Strategy(auto_debt_paydown=False))
    assert plan.actions(51) == []


def test_preemptive_loan_before_payroll(empty_state):
    """Close to payroll with thin cash, the manager borrows ahead at the normal commission."""
    empty_state.current_day = 54
    empty_state.cash = 1000.0
    strategy = Strategy(auto_debt_paydown=True, emergency_loan_buffer=5000.0)
    loan = preemptive_wage_loan(empty_state, strategy)
    assert loan == pytest.approx((150.0 * 7 + 5000.0 - 1000.0) / 0.98)
    assert plan_debt_actions(empty_state, strategy).actions(54) == [TakeLoan(54, loan)]


def test_no_preemptive_loan_far_from_payroll(empty_state):
    """A week away from payroll nothing is borrowed."""
    empty_state.current_day = 57
    empty_state.cash = 0.0
    assert preemptive_wage_loan(empty_state, Strategy(preemptive_wage_loan_days=4)) == 0.0


def test_paydown_keeps_a_reserve(empty_state):
    """Only cash above the reserve is used, scaled by aggressiveness."""
    empty_state.current_day = 57
    empty_state.cash = 100000.0
    empty_state.debt = 200000.0
    strategy = Strategy(auto_debt_paydown=True, debt_paydown_aggressiveness=0.5)
    reserve = min_cash_reserve(empty_state, strategy)
    assert debt_paydown(empty_state, strategy) == pytest.approx((100000.0 - reserve) * 0.5)
    assert plan_debt_actions(empty_state, strategy).actions(57)[0].__class__ is PayDebt


def test_emergency_flag(empty_state, logger):
    """Debt above the threshold is flagged and logged."""
    empty_state.debt = 300000.0
    strategy = Strategy(auto_debt_paydown=True)
    assert is_debt_emergency(empty_state, strategy)
    assert plan_debt_actions(empty_state, strategy, logger).emergency
    assert logger.count("debt_emergency") == 1


def test_debt_savings():
    """Repaying early saves the interest to the horizon."""
    assert debt_savings(1000.0, 350, end_day=450) == pytest.approx(100.0)


def test_paydown_logs_interest_saved(empty_state, logger):
    """A paydown records the interest it avoids to the horizon."""
    empty_state.current_day = 57
    empty_state.cash = 100000.0
    empty_state.debt = 200000.0
    strategy = Strategy(auto_debt_paydown=True, debt_paydown_aggressiveness=0.5)
    plan = plan_debt_actions(empty_state, strategy, logger)

    assert plan.interest_saved == pytest.approx(debt_savings(plan.paydown, 57))
    assert plan.interest_saved == pytest.approx(plan.paydown * 0.001 * (450 - 57))
    event = logger.of_type("debt_paydown")[0]
    assert event["interest_saved"] == round(plan.interest_saved, 2)


def test_scenario_config_reaches_the_debt_manager(empty_state):
    """Salaries, material prices and commission come from the run's config namespace."""
    ns = ScenarioManager(base_config).apply_to_config({"overrides": {"WORKFORCE_CONFIG.expert_salary": 300.0,
                                                                     "MATERIAL_CONFIG.unit_cost": 100.0,
                                                                     "FINANCE_CONFIG.normal_commission": 0.1}})
    strategy = Strategy(auto_debt_paydown=True, emergency_loan_buffer=0.0, overtime_hours=0.0)
    assert min_cash_reserve(empty_state, strategy, ns) > min_cash_reserve(empty_state, strategy)

    empty_state.current_day = 54
    empty_state.cash = 0.0
    assert preemptive_wage_loan(empty_state, strategy, ns) == pytest.approx(300.0 * 7 / 0.9)
    assert preemptive_wage_loan(empty_state, strategy) == pytest.approx(150.0 * 7 / 0.98)


def test_custom_price_penalty():
    """Late deliveries cut the custom price, down to half the base."""
    s = Strategy(custom_base_price=100.0, custom_penalty_per_day=2.0, custom_target_delivery_days=5.0)
    assert custom_price(s, 4.0) == 100.0
    assert custom_price(s, 8.0) == pytest.approx(94.0)
    assert custom_price(s, 500.0) == 50.0


def test_sales(empty_state):
    """Standard sales are capped by demand, custom completions are all sold."""
    empty_state.finished_goods.standard = 50
    empty_state.finished_goods.custom = 3
    cash = empty_state.cash
    result = process_sales(empty_state, Pricing(200.0, 100.0), 30)
    assert result.standard_sold == 30
    assert result.custom_sold == 3
    assert empty_state.finished_goods.standard == 20
    assert empty_state.finished_goods.custom == 0
    assert empty_state.cash == cash + 30 * 200.0 + 3 * 100.0
