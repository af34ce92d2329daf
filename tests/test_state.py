"""Tests for starting states, cloning, strategies and run export."""

import json

import pytest

from actions import BuyMachine, TakeLoan
from engine import run_simulation
from logging_export import AlertBoard, EventLogger, NullLogger, export_run, history_to_frame
from state import MachineType, PolicyConfigurationError, build_initial_state
from strategy import Strategy, strategy_from_dict


def test_historical_state(historical_state):
    """Day 51 with the observed cash, stock, machines and work in process."""
    s = historical_state
    assert s.current_day == 51
    assert s.cash == pytest.approx(383919.70)
    assert s.raw_material_inventory == 164
    assert (s.machines.MCE, s.machines.WMA, s.machines.PUC) == (1, 2, 2)
    assert s.standard_wip.total_units() == 414
    assert len(s.custom_wip.orders) == 300


def test_business_case_state(business_case_state):
    """The textbook start carries debt and no raw material."""
    assert business_case_state.debt == 70000.0
    assert business_case_state.raw_material_inventory == 0
    assert business_case_state.net_worth == pytest.approx(8206.12 - 70000.0)


def test_unknown_initial_state():
    """Only the known starting scenarios can be built."""
    with pytest.raises(PolicyConfigurationError):
        build_initial_state("moon_base")


def test_clone_is_deep(historical_state):
    """Changing a clone leaves the original alone."""
    copy = historical_state.clone()
    copy.custom_wip.orders[0].days_in_production += 10
    copy.standard_wip.stage1[0].units = 0
    copy.workforce.experts = 9
    copy.history.record(51, {"cash": 1.0})
    assert historical_state.custom_wip.orders[0].days_in_production != copy.custom_wip.orders[0].days_in_production
    assert historical_state.standard_wip.stage1[0].units == 138
    assert historical_state.workforce.experts == 1
    assert len(historical_state.history) == 0


def test_strategy_validation():
    """Impossible levers are configuration errors."""
    with pytest.raises(PolicyConfigurationError):
        Strategy(mce_allocation_custom=1.5).validate()
    with pytest.raises(PolicyConfigurationError):
        Strategy(overtime_hours=-1).validate()


def test_strategy_dict_round_trip():
    """Strategies survive serialization with their timed actions."""
    strategy = Strategy(reorder_point=123, timed_actions=[BuyMachine(60, MachineType.WMA, 1), TakeLoan(61, 5.0)])
    restored = strategy_from_dict(json.loads(json.dumps(strategy.to_dict())))
    assert restored.reorder_point == 123
    assert restored.timed_actions == strategy.timed_actions
    with pytest.raises(PolicyConfigurationError):
        strategy_from_dict({"warp_drive": True})


def test_event_logger():
    """Events are numbered and filterable, the null logger keeps nothing."""
    logger = EventLogger()
    logger.log("hired", 51, employee_type="rookie")
    logger.log("quit", 52, count=1)
    assert [e["event_id"] for e in logger.events] == [1, 2]
    assert logger.of_type("quit")[0]["count"] == 1
    null = NullLogger()
    null.log("hired", 51)
    assert len(null) == 0


def test_alert_board_deduplicates():
    """Repeated alerts with the same key are counted, not duplicated."""
    board = AlertBoard()
    board.raise_alert("k", "MAJOR", "t", "m", 51)
    board.raise_alert("k", "MAJOR", "t", "m", 55)
    assert len(board.alerts) == 1
    assert board.alerts[0]["count"] == 2
    assert board.alerts[0]["latest_seen"] == 55


def test_export_run(tmp_path, historical_state, strategy):
    """A run exports a day-indexed history table and a summary."""
    logger = EventLogger()
    result = run_simulation(strategy, end_day=55, initial_state=historical_state, seed=1, logger=logger)
    frame = history_to_frame(result.state.history)
    assert list(frame.index) == [51, 52, 53, 54, 55]

    paths = export_run(result, str(tmp_path), logger)
    summary = json.loads(open(paths["summary"]).read())
    assert summary["days_simulated"] == 5
    assert "violations" not in paths
