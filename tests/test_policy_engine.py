"""Tests for the policy engine: buckets, multipliers, weekly and state-table policies."""

import random

import pytest

from actions import AdjustAllocation, AdjustBatchSize, AdjustPrice, HireRookie, OrderMaterials, TakeLoan
from config import PARAMETER_SPACE
from policy_engine import (PARAM_NAMES, BucketLevel, PolicyEngine, StateTable, WeeklyPolicy, classify_state,
                           clamp_policy, decode_policy, detect_encoding, encoded_space, expand_policy,
                           flat_to_weekly, policy_from_dict, policy_to_vector, random_policy, vector_to_policy,
                           weekly_to_flat)
from state import PolicyConfigurationError


def test_fifteen_parameters():
    """The policy vector has exactly fifteen named coefficients."""
    assert len(PARAM_NAMES) == 15
    assert set(PARAM_NAMES) == set(PARAMETER_SPACE)


def test_classify_historical_state(historical_state):
    """Plenty of cash, little raw material, no debt."""
    bucket = classify_state(historical_state)
    assert bucket.cash == BucketLevel.HIGH
    assert bucket.inventory == BucketLevel.LOW
    assert bucket.debt == BucketLevel.LOW


def test_bucket_boundaries(empty_state):
    """A value equal to the high threshold is HIGH, below low is LOW."""
    empty_state.cash = 200000.0
    empty_state.raw_material_inventory = 200
    empty_state.debt = 49999.0
    bucket = classify_state(empty_state)
    assert bucket.cash == BucketLevel.HIGH
    assert bucket.inventory == BucketLevel.MEDIUM
    assert bucket.debt == BucketLevel.LOW


def test_effective_parameters_apply_multipliers(historical_state, default_policy):
    """HIGH cash, LOW inventory and LOW debt scale the base policy."""
    p = PolicyEngine(default_policy).effective_parameters(51, historical_state)
    assert p["reorder_point"] == round(400 * 1.3)
    assert p["order_quantity"] == round(500 * 1.3 * 1.2)
    assert p["mce_custom_allocation"] == pytest.approx(0.55 * 1.2)
    assert p["standard_batch_size"] == round(80 * 1.1)
    assert p["loan_amount"] == round(30000 / 1.1)


def test_allocation_is_clamped(historical_state, default_policy):
    """The scaled allocation stays within 0.2..0.8."""
    default_policy["mce_custom_allocation"] = 0.7
    p = PolicyEngine(default_policy).effective_parameters(51, historical_state)
    assert p["mce_custom_allocation"] == 0.8


def test_first_day_actions(historical_state, default_policy):
    """Day one orders material, sets batch size, allocation and the standard price."""
    actions = PolicyEngine(default_policy).daily_actions(historical_state, 51, 51)
    kinds = {type(a) for a in actions}
    assert OrderMaterials in kinds
    assert AdjustBatchSize in kinds
    assert AdjustAllocation in kinds
    assert AdjustPrice(51, "standard", 225.0) in actions
    # 13 hires would exceed the daily cap
    assert HireRookie not in kinds
    assert TakeLoan not in kinds


def test_hiring_and_borrowing(empty_state, default_policy):
    """A small target headcount is filled, low cash borrows."""
    default_policy["target_experts"] = 4
    default_policy["hire_threshold"] = 1.0
    empty_state.cash = 10000.0
    empty_state.raw_material_inventory = 1000
    actions = PolicyEngine(default_policy).daily_actions(empty_state, 60, 51)
    hires = [a for a in actions if isinstance(a, HireRookie)]
    # LOW cash scales the target to round(4 * 0.7) = 3
    assert hires == [HireRookie(60, 2)]
    assert any(isinstance(a, TakeLoan) for a in actions)


def test_generate_all_actions_leaves_state_alone(historical_state, default_policy):
    """Generation advances a clone, never the caller's state."""
    cash = historical_state.cash
    actions = PolicyEngine(default_policy).generate_all_actions(historical_state, end_day=80)
    assert actions
    assert all(51 <= a.day <= 80 for a in actions)
    assert historical_state.cash == cash
    assert historical_state.current_day == 51


def test_material_orders_are_spaced(historical_state, default_policy):
    """Policy material orders are at least five days apart."""
    actions = PolicyEngine(default_policy).generate_all_actions(historical_state, end_day=120)
    days = [a.day for a in actions if isinstance(a, OrderMaterials)]
    assert len(days) > 1
    assert all(b - a >= 5 for a, b in zip(days, days[1:]))


def test_week_numbers():
    """Week 1 starts on day 51, the last week absorbs the tail."""
    weekly = WeeklyPolicy({}, num_weeks=52)
    assert weekly.week_number(51) == 1
    assert weekly.week_number(57) == 1
    assert weekly.week_number(58) == 2
    assert weekly.week_number(450) == 52


def test_missing_week_fails_generation(historical_state, default_policy):
    """A day in an undefined week is a configuration error naming the week."""
    weekly = WeeklyPolicy({1: default_policy}, num_weeks=3)
    with pytest.raises(PolicyConfigurationError, match="No policy parameters defined for week 2"):
        PolicyEngine(weekly).generate_all_actions(historical_state, end_day=65)


def test_state_table_selects_cash_variant(historical_state, default_policy):
    """The HIGH cash variant drives a cash-rich day, without the cash multiplier."""
    high = dict(default_policy, mce_custom_allocation=0.6)
    table = StateTable({BucketLevel.LOW: default_policy, BucketLevel.MEDIUM: default_policy,
                        BucketLevel.HIGH: high})
    p = PolicyEngine(table).effective_parameters(51, historical_state)
    assert p["mce_custom_allocation"] == pytest.approx(0.6)
    assert p["target_experts"] == 12


def test_state_table_needs_every_bucket(default_policy):
    """All three cash buckets must be defined."""
    with pytest.raises(PolicyConfigurationError):
        StateTable({BucketLevel.LOW: default_policy})


def test_policy_must_be_complete(default_policy):
    """Missing or extra parameter names are rejected."""
    del default_policy["loan_amount"]
    with pytest.raises(PolicyConfigurationError, match="missing"):
        PolicyEngine(default_policy)
    default_policy["loan_amount"] = 30000
    default_policy["bonus"] = 1
    with pytest.raises(PolicyConfigurationError, match="unknown"):
        PolicyEngine(default_policy)


def test_to_strategy(historical_state, default_policy):
    """The strategy carries the generated actions and debt management."""
    strategy = PolicyEngine(default_policy).to_strategy(historical_state, end_day=70)
    assert strategy.timed_actions
    assert strategy.auto_debt_paydown
    assert strategy.reorder_point == 400
    assert strategy.standard_price == 225.0
    assert strategy.min_cash_reserve_days == 5


def test_random_policy_in_bounds():
    """Sampled policies respect the search space and integer kinds."""
    policy = random_policy(random.Random(3))
    for name, (lo, hi, kind) in PARAMETER_SPACE.items():
        assert lo <= policy[name] <= hi
        if kind == "int":
            assert isinstance(policy[name], int)


def test_clamp_and_vector():
    """Out-of-range values are clamped, wrong-length vectors rejected."""
    vector = [10000.0] * 15
    policy = vector_to_policy(vector)
    assert policy == clamp_policy(dict(zip(PARAM_NAMES, vector)))
    assert policy["reorder_point"] == 600
    with pytest.raises(PolicyConfigurationError):
        vector_to_policy([1.0] * 14)


def test_weekly_flattening(default_policy):
    """Weekly policies flatten to week-prefixed keys and back."""
    weekly = WeeklyPolicy.uniform(default_policy, num_weeks=2)
    flat = weekly_to_flat(weekly)
    assert flat["week2_reorder_point"] == 400
    assert len(flat) == 30
    assert flat_to_weekly(flat, 2).for_week(2) == default_policy


def test_vector_order_follows_parameter_names(default_policy):
    """Vectors list the parameters in their fixed order."""
    vector = policy_to_vector(default_policy)
    assert vector[0] == 400.0
    assert vector_to_policy(vector) == clamp_policy(default_policy)


def test_tripled_state_table(historical_state, default_policy):
    """A tripled table behaves like the single policy, less the cash multiplier."""
    table = StateTable.tripled(default_policy)
    assert table.variant(BucketLevel.LOW) == default_policy
    p = PolicyEngine(table).effective_parameters(51, historical_state)
    assert p["target_experts"] == 12


def test_pricing_config_sets_standard_price(historical_state, default_policy):
    """The standard price follows the configured market price, not the module default."""
    engine = PolicyEngine(default_policy, pricing={"standard_market_price": 400.0})
    strategy = engine.to_strategy(historical_state, end_day=60)
    assert strategy.standard_price == 400.0
    first_price = [a for a in strategy.timed_actions if isinstance(a, AdjustPrice)][0]
    assert first_price.new_price == 400.0


@pytest.mark.parametrize("encoding, genes", [("flat", 15), ("tripled", 45), ("weekly", 30)])
def test_encoded_space_sizes(encoding, genes):
    """Each encoding copies the base bounds onto its own gene names."""
    space = encoded_space(encoding, num_weeks=2)
    assert len(space) == genes
    for name, bounds in space.items():
        base = name.split("_", 1)[1] if name.startswith("week") else name.split("_cash_")[-1]
        assert bounds == PARAMETER_SPACE[base]


def test_unknown_encoding():
    """Only flat, tripled and weekly genomes exist."""
    with pytest.raises(PolicyConfigurationError, match="encoding"):
        encoded_space("hourly")


def test_tripled_genes_decode_to_state_table(default_policy):
    """Tripled genes decode into one variant per cash bucket."""
    genes = expand_policy(default_policy, "tripled")
    genes["low_cash_reorder_point"] = 250
    assert detect_encoding(genes) == "tripled"
    table = decode_policy(genes, "tripled")
    assert isinstance(table, StateTable)
    assert table.variant(BucketLevel.LOW)["reorder_point"] == 250
    assert table.variant(BucketLevel.HIGH) == default_policy


def test_weekly_genes_decode_to_weekly_policy(default_policy):
    """Weekly genes decode into one policy per week."""
    genes = expand_policy(default_policy, "weekly", num_weeks=3)
    genes["week2_order_quantity"] = 900
    assert detect_encoding(genes) == "weekly"
    weekly = decode_policy(genes, "weekly", 3)
    assert isinstance(weekly, WeeklyPolicy)
    assert weekly.for_week(2)["order_quantity"] == 900
    assert weekly.for_week(3) == default_policy


def test_policy_from_dict_forms(default_policy):
    """Scenario policies may be partial flat, per cash bucket, per week or encoded genes."""
    flat = policy_from_dict({"reorder_point": 300}, default_policy)
    assert flat == dict(default_policy, reorder_point=300)

    table = policy_from_dict({"cash_states": {"low": {"reorder_point": 200}, "medium": {}, "high": {}}},
                             default_policy)
    assert table.variant(BucketLevel.LOW)["reorder_point"] == 200
    assert table.variant(BucketLevel.MEDIUM) == default_policy

    weekly = policy_from_dict({"weeks": {1: {"loan_amount": 20000}, 2: {}}}, default_policy, num_weeks=2)
    assert weekly.for_week(1)["loan_amount"] == 20000
    assert weekly.num_weeks == 2

    decoded = policy_from_dict(expand_policy(default_policy, "weekly", num_weeks=4), default_policy)
    assert isinstance(decoded, WeeklyPolicy)
    assert decoded.num_weeks == 4


def test_missing_cash_state_is_reported(default_policy):
    """A per-bucket policy without every bucket is a configuration error."""
    with pytest.raises(PolicyConfigurationError, match="HIGH"):
        policy_from_dict({"cash_states": {"low": {}, "medium": {}}}, default_policy)
