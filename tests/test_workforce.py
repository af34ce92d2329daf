"""Tests for hiring, training, salaries and quit risk."""

import random

import pytest

from strategy import Strategy
from workforce import (hire_expert, hire_rookie, overtime_active, process_training, productivity,
                       roll_quit_risk, salary_cost, update_overtime_streaks)


def test_rookie_trains_for_fifteen_days(empty_state, logger):
    """A new rookie is promoted on the fifteenth training step."""
    hire_rookie(empty_state, logger=logger)
    assert empty_state.workforce.rookies == 1
    assert empty_state.workforce.rookies_in_training[0].days_remaining == 15

    for _ in range(14):
        assert process_training(empty_state) == 0
    assert process_training(empty_state, logger) == 1

    wf = empty_state.workforce
    assert wf.rookies == 0
    assert wf.experts == 2
    assert wf.rookies_in_training == []
    assert all(r.employee_type == "expert" for r in wf.overtime_tracking)
    assert logger.count("promoted") == 1


def test_employee_ids_are_unique(empty_state):
    """Each hire gets the next id."""
    first = hire_rookie(empty_state)
    second = hire_expert(empty_state)
    assert second == first + 1
    assert len(empty_state.workforce.overtime_tracking) == 3


def test_salary_cost_with_overtime(empty_state):
    """Overtime is paid at time-and-a-half of the hourly base."""
    hire_rookie(empty_state)
    cost = salary_cost(empty_state, overtime_hours=2.0)

    assert cost.base_salary == pytest.approx(235.0)
    assert cost.overtime_cost == pytest.approx(235.0 / 8 * 2 * 1.5)
    assert cost.total == pytest.approx(cost.base_salary + cost.overtime_cost)


def test_productivity(empty_state):
    """Rookies contribute a fraction of an expert, and overtime scales the total."""
    hire_rookie(empty_state)
    assert productivity(empty_state) == pytest.approx(3.0 + 3.0 * 0.4)
    assert productivity(empty_state, overtime_hours=4.0) == pytest.approx((3.0 + 1.2) * 1.5)


def test_overtime_switches_on_at_threshold(full_custom_state):
    """Overtime runs only when hours are configured and the custom load reaches the threshold."""
    assert not overtime_active(full_custom_state, Strategy(overtime_hours=0.0, overtime_threshold=0.5))
    assert overtime_active(full_custom_state, Strategy(overtime_hours=2.0, overtime_threshold=1.0))
    full_custom_state.custom_wip.orders = full_custom_state.custom_wip.orders[:100]
    assert not overtime_active(full_custom_state, Strategy(overtime_hours=2.0, overtime_threshold=0.5))


def test_streak_resets_without_overtime(empty_state):
    """A day without overtime resets every streak."""
    for _ in range(3):
        update_overtime_streaks(empty_state, True)
    assert empty_state.workforce.overtime_tracking[0].consecutive_overtime_days == 3
    update_overtime_streaks(empty_state, False)
    assert empty_state.workforce.overtime_tracking[0].consecutive_overtime_days == 0


def test_quit_after_streak(empty_state, logger):
    """An employee past the overtime trigger quits when the draw falls under the probability."""
    hire_rookie(empty_state)
    for _ in range(5):
        update_overtime_streaks(empty_state, True)
    strategy = Strategy(daily_quit_probability=1.0)

    quits = roll_quit_risk(empty_state, strategy, random.Random(1), logger)

    wf = empty_state.workforce
    assert quits == 2
    assert wf.experts == 0
    assert wf.rookies == 0
    assert wf.rookies_in_training == []
    assert wf.overtime_tracking == []
    assert logger.of_type("quit")[0]["experts"] == 1


def test_no_quit_before_trigger(empty_state):
    """Nobody quits before the streak reaches the trigger."""
    for _ in range(4):
        update_overtime_streaks(empty_state, True)
    quits = roll_quit_risk(empty_state, Strategy(daily_quit_probability=1.0), random.Random(1))
    assert quits == 0
    assert empty_state.workforce.experts == 1
