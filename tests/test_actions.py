"""Tests for action merging and serialization."""

import pytest

from actions import (AdjustAllocation, AdjustPrice, BuyMachine, HireRookie, OrderMaterials, TakeLoan,
                     action_from_dict, action_to_dict, actions_for_day, merge_actions)
from state import MachineType


def test_loans_are_summed():
    """Two same-day loans become one loan for the total."""
    merged = merge_actions([TakeLoan(60, 10000.0), TakeLoan(60, 5000.0)])
    assert merged == [TakeLoan(60, 15000.0)]


def test_counts_and_quantities_are_summed():
    """Hires and material orders add up."""
    merged = merge_actions([HireRookie(60, 2), OrderMaterials(60, 300), HireRookie(60, 1), OrderMaterials(60, 200)])
    assert merged == [HireRookie(60, 3), OrderMaterials(60, 500)]


def test_machine_trades_merge_per_machine_type():
    """Purchases of different machines stay separate."""
    merged = merge_actions([BuyMachine(60, MachineType.MCE, 1), BuyMachine(60, MachineType.WMA, 1),
                            BuyMachine(60, MachineType.MCE, 2)])
    assert len(merged) == 2
    assert BuyMachine(60, MachineType.MCE, 3) in merged


def test_adjustments_keep_last_value():
    """Adjustments are replaced, not summed."""
    merged = merge_actions([AdjustAllocation(60, 0.5), AdjustAllocation(60, 0.6),
                            AdjustPrice(60, "standard", 200.0), AdjustPrice(60, "custom", 110.0)])
    assert AdjustAllocation(60, 0.6) in merged
    assert len([a for a in merged if isinstance(a, AdjustPrice)]) == 2


def test_actions_for_day():
    """Filtering keeps only the requested day."""
    actions = [TakeLoan(60, 1.0), TakeLoan(61, 2.0)]
    assert actions_for_day(actions, 61) == [TakeLoan(61, 2.0)]


def test_dict_round_trip_for_machine_action():
    """Machine type serializes to its plain string name."""
    row = action_to_dict(BuyMachine(70, MachineType.PUC, 1))
    assert row == {"type": "BuyMachine", "day": 70, "machine_type": "PUC", "count": 1}
    assert action_from_dict(row) == BuyMachine(70, MachineType.PUC, 1)


def test_unknown_action_type():
    """Unknown action names are rejected."""
    with pytest.raises(ValueError):
        action_from_dict({"type": "LaunchRocket", "day": 60})
