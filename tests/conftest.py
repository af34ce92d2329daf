"""Pytest configuration and shared fixtures."""

import pytest

from config import DEFAULT_POLICY
from logging_export import EventLogger
from state import CustomOrder, CustomStation, Machines, SimulationState, add_employee, build_initial_state
from strategy import Strategy


@pytest.fixture
def historical_state():
    """Fixture for the default day-51 starting state."""
    return build_initial_state("historical")


@pytest.fixture
def business_case_state():
    """Fixture for the indebted textbook starting state."""
    return build_initial_state("business_case")


@pytest.fixture
def empty_state():
    """Fixture for a bare plant: one expert, cash, no inventory and no work in process."""
    state = SimulationState(current_day=51, cash=50000.0, debt=0.0, raw_material_inventory=0,
                            machines=Machines(MCE=1, WMA=2, PUC=2))
    state.workforce.experts = 1
    add_employee(state.workforce, "expert")
    return state


@pytest.fixture
def full_custom_state(empty_state):
    """Fixture for a plant whose custom line sits exactly at the WIP ceiling."""
    for i in range(360):
        empty_state.custom_wip.orders.append(CustomOrder(f"o-{i}", 50, 1, CustomStation.WAITING, 1))
    return empty_state


@pytest.fixture
def strategy():
    """Fixture for a default strategy with no timed actions."""
    return Strategy()


@pytest.fixture
def logger():
    """Fixture for a quiet event logger."""
    return EventLogger(verbose=False)


@pytest.fixture
def default_policy():
    """Fixture for a copy of the default 15-parameter policy."""
    return dict(DEFAULT_POLICY)
