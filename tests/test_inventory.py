"""Tests for raw-material ordering, arrivals and the reorder point."""

from engine import run_simulation
from inventory import check_and_reorder, consume, order_cost, order_materials, receive_arrivals
from strategy import Strategy


def test_order_cost():
    """Cost is quantity times unit cost plus the fixed fee."""
    assert order_cost(500) == 500 * 50.0 + 1000.0


def test_order_is_all_or_nothing(empty_state, logger):
    """An order the business cannot afford is rejected and counted."""
    empty_state.cash = 1000.0
    assert order_materials(empty_state, 500, logger=logger) is None
    assert empty_state.rejected_material_orders == 1
    assert empty_state.cash == 1000.0
    assert empty_state.pending_material_orders == []
    assert logger.count("material_order_rejected") == 1


def test_order_arrives_after_lead_time(empty_state):
    """Material lands in inventory four days after the order."""
    order = order_materials(empty_state, 200)
    assert order.arrival_day == 55
    assert empty_state.cash == 50000.0 - order_cost(200)

    empty_state.current_day = 54
    assert receive_arrivals(empty_state) == []
    empty_state.current_day = 55
    assert receive_arrivals(empty_state) == [order]
    assert empty_state.raw_material_inventory == 200
    assert empty_state.pending_material_orders == []


def test_reorder_respects_spacing(empty_state):
    """A second reorder waits for the minimum spacing."""
    strategy = Strategy(reorder_point=200, order_quantity=100)
    assert check_and_reorder(empty_state, strategy) is not None
    empty_state.current_day += 4
    assert check_and_reorder(empty_state, strategy) is None
    empty_state.current_day += 1
    assert check_and_reorder(empty_state, strategy) is not None


def test_no_reorder_above_point(empty_state):
    """Inventory above the reorder point places no order."""
    empty_state.raw_material_inventory = 300
    assert check_and_reorder(empty_state, Strategy(reorder_point=200)) is None


def test_consume_never_goes_negative(empty_state):
    """Consumption is capped by what is on hand."""
    empty_state.raw_material_inventory = 10
    assert consume(empty_state, 25) == 10
    assert empty_state.raw_material_inventory == 0


def test_reorder_point_over_a_run(empty_state, logger):
    """Inventory drains, the reorder point fires, and stock never goes negative."""
    empty_state.raw_material_inventory = 400
    strategy = Strategy(reorder_point=200, order_quantity=500)

    result = run_simulation(strategy, end_day=100, initial_state=empty_state, seed=3, logger=logger)

    history = result.state.history
    assert len(history) == 50
    assert all(v >= 0 for v in history.series("raw_material"))
    ordered = logger.of_type("material_ordered")
    assert ordered
    by_day = {r["day"]: r for r in history.records}
    first_day = ordered[0]["day"]
    assert by_day[first_day - 1]["raw_material"] <= 200
