#STANDARD IMPORTS

import math
from typing import Any, Dict

#LOCAL IMPORTS

from config import FITNESS_CONFIG, MATERIAL_CONFIG, PRODUCTION_CONFIG
from state import CustomStation, SimulationState


def inventory_write_off(state: SimulationState, material_cfg=None, production_cfg=None) -> float:
    """
    Value, at material cost, of everything still sitting in the plant at shutdown.

    Raw material, standard WIP and finished goods, and custom orders that have
    already consumed their part are worthless once the plant closes.

    Returns:
        The dollar amount written off.
    """
    unit_cost = (material_cfg or MATERIAL_CONFIG)["unit_cost"]
    production_cfg = production_cfg or PRODUCTION_CONFIG
    std_parts = production_cfg["standard_material_per_unit"]
    custom_parts = production_cfg["custom_material_per_unit"]
    custom_started = sum(1 for o in state.custom_wip.orders if o.current_station != CustomStation.WAITING)
    units = (
        state.raw_material_inventory
        + (state.standard_wip.total_units() + state.finished_goods.standard) * std_parts
        + (custom_started + state.finished_goods.custom) * custom_parts
    )
    return units * unit_cost


def rejected_orders(state: SimulationState) -> int:
    return state.rejected_material_orders + state.rejected_custom_orders


def fitness_breakdown(state: SimulationState, cfg=None, material_cfg=None, production_cfg=None) -> Dict[str, Any]:
    """
    Components of the scalar objective for one finished run.

    Returns:
        A dictionary with net worth, write-off, each penalty and the final score.
        A run ending with negative cash scores the bankruptcy sentinel.
    """
    cfg = cfg or FITNESS_CONFIG
    net_worth = state.cash - state.debt
    write_off = inventory_write_off(state, material_cfg, production_cfg)
    penalties = {
        "rejected_orders": rejected_orders(state) * cfg["rejected_order_penalty"],
        "stockout_days": state.stockout_days * cfg["stockout_day_penalty"],
        "lost_production_days": state.lost_production_days * cfg["lost_production_day_penalty"],
    }
    bankrupt = state.cash < 0 or math.isnan(state.cash)
    score = cfg["bankruptcy_score"] if bankrupt else net_worth - write_off - sum(penalties.values())
    return {
        "net_worth": net_worth,
        "inventory_write_off": write_off,
        "penalties": penalties,
        "bankrupt": bankrupt,
        "score": score,
    }


def calculate_fitness(state: SimulationState, cfg=None, material_cfg=None, production_cfg=None) -> float:
    return fitness_breakdown(state, cfg, material_cfg, production_cfg)["score"]
