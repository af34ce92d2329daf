#STANDARD IMPORTS

from typing import List, Optional

#LOCAL IMPORTS

from config import MATERIAL_CONFIG
from state import MaterialOrder, SimulationState


def order_cost(quantity: int, cfg=None) -> float:
    cfg = cfg or MATERIAL_CONFIG
    return quantity * cfg["unit_cost"] + cfg["order_fee"]


def order_materials(state: SimulationState, quantity: int, cfg=None, logger=None) -> Optional[MaterialOrder]:
    """Place an all-or-nothing order, paid now. Rejected (and counted) when cash falls short."""
    cfg = cfg or MATERIAL_CONFIG
    if quantity <= 0:
        return None
    cost = order_cost(quantity, cfg)
    if state.cash < cost:
        state.rejected_material_orders += 1
        if logger is not None:
            logger.log("material_order_rejected", state.current_day, quantity=quantity,
                       cost=cost, cash=round(state.cash, 2))
        return None
    state.cash -= cost
    order = MaterialOrder(order_day=state.current_day, quantity=quantity,
                          arrival_day=state.current_day + cfg["lead_time_days"], cost=cost)
    state.pending_material_orders.append(order)
    state.last_material_order_day = state.current_day
    if logger is not None:
        logger.log("material_ordered", state.current_day, quantity=quantity, cost=cost,
                   arrival_day=order.arrival_day)
    return order


def check_and_reorder(state: SimulationState, strategy, cfg=None, logger=None) -> Optional[MaterialOrder]:
    cfg = cfg or MATERIAL_CONFIG
    if state.raw_material_inventory > strategy.reorder_point:
        return None
    last = state.last_material_order_day
    if last is not None and state.current_day - last < cfg["min_days_between_orders"]:
        return None
    return order_materials(state, strategy.order_quantity, cfg, logger)


def receive_arrivals(state: SimulationState, logger=None) -> List[MaterialOrder]:
    arrived = [o for o in state.pending_material_orders if o.arrival_day <= state.current_day]
    if not arrived:
        return []
    state.pending_material_orders = [o for o in state.pending_material_orders
                                     if o.arrival_day > state.current_day]
    for order in arrived:
        state.raw_material_inventory += order.quantity
        if logger is not None:
            logger.log("material_arrived", state.current_day, quantity=order.quantity,
                       order_day=order.order_day)
    return arrived


def consume(state: SimulationState, units: int) -> int:
    """Take up to `units` from raw material, never below zero. Returns what was taken."""
    taken = max(0, min(units, state.raw_material_inventory))
    state.raw_material_inventory -= taken
    return taken