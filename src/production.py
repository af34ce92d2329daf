"""
Production Subsystem - shared MCE machine stage and ARCP labor pool.

Two lines compete for the same resources every day:
  * Standard (make-to-stock): pre-stage -> stage 1 (MCE, immediate) ->
    stage 2 (WMA batching) -> stage 3 (PUC batching) -> finished goods.
    Leaving stage 3 is final assembly and draws on standard labor.
  * Custom (make-to-order): WAITING -> MCE -> WMA_PASS1 -> PUC -> WMA_PASS2 -> COMPLETE.
    Both WMA passes draw on custom labor.

Stations are processed downstream first so a unit or order moves at most one
station per day. Nothing leaves a buffer without landing in the next one or
being counted as completed.
"""
#STANDARD IMPORTS

import math
from dataclasses import dataclass
from typing import List

#LOCAL IMPORTS

from config import ALLOCATION_BOUNDS, ALLOCATION_NUDGES, PRODUCTION_CONFIG
from inventory import consume
from state import CustomOrder, CustomStation, SimulationState, WIPBatch


@dataclass
class CapacityAllocation:
    allocation: float
    machine_total: int
    machine_custom: int
    machine_standard: int
    labor_total: float
    labor_custom: float
    labor_standard: float


@dataclass
class StandardLineResult:
    units_started: int
    units_completed: int
    material_used: int
    material_short: bool
    labor_used: int


@dataclass
class CustomLineResult:
    demand: int
    accepted: int
    rejected: int
    started: int
    completed: int
    avg_delivery_time: float
    material_used: int
    material_short: bool
    labor_used: int


def effective_allocation(state: SimulationState, strategy, bounds=None, nudges=None) -> float:
    """Base custom share nudged by queue pressure, clamped to the allocation bounds."""
    lo, hi = bounds or ALLOCATION_BOUNDS
    n = nudges or ALLOCATION_NUDGES
    allocation = strategy.mce_allocation_custom
    custom_wip = len(state.custom_wip.orders)
    if custom_wip > n["custom_wip_critical"]:
        allocation += n["critical_boost"]
    elif custom_wip > n["custom_wip_warning"]:
        allocation += n["warning_boost"]
    if (state.finished_goods.standard < n["standard_fg_low"]
            and state.standard_wip.total_units() < n["standard_wip_low"]):
        allocation -= n["standard_relief"]
    return min(hi, max(lo, allocation))


def allocate_capacity(state: SimulationState, allocation: float, labor_capacity: float, cfg=None) -> CapacityAllocation:
    cfg = cfg or PRODUCTION_CONFIG
    total = state.machines.MCE * cfg["mce_units_per_machine"]
    return CapacityAllocation(
        allocation=allocation,
        machine_total=total,
        machine_custom=math.floor(total * allocation),
        machine_standard=math.floor(total * (1 - allocation)),
        labor_total=labor_capacity,
        labor_custom=labor_capacity * allocation,
        labor_standard=labor_capacity * (1 - allocation),
    )


def _take_units(batches: List[WIPBatch], limit: int):
    """Split up to `limit` units off the front of a FIFO batch list."""
    taken: List[WIPBatch] = []
    kept: List[WIPBatch] = []
    for batch in batches:
        if limit <= 0:
            kept.append(batch)
            continue
        take = min(batch.units, limit)
        limit -= take
        taken.append(WIPBatch(take, batch.start_day, batch.batching_days_remaining))
        if batch.units > take:
            kept.append(WIPBatch(batch.units - take, batch.start_day, batch.batching_days_remaining))
    return taken, kept


def run_standard_line(state: SimulationState, strategy, machine_capacity: int, labor_capacity: float,
                      cfg=None) -> StandardLineResult:
    cfg = cfg or PRODUCTION_CONFIG
    wip = state.standard_wip
    day = state.current_day

    # --- Stage 3: final batching, then assembly by the labor pool ---
    labor_units = math.floor(labor_capacity)
    completed = 0
    remaining = []
    for batch in wip.stage3:
        if batch.batching_days_remaining > 0:
            batch.batching_days_remaining -= 1
        if batch.batching_days_remaining <= 0 and labor_units > 0:
            take = min(batch.units, labor_units)
            labor_units -= take
            completed += take
            batch.units -= take
        if batch.units > 0:
            remaining.append(batch)
    wip.stage3 = remaining
    state.finished_goods.standard += completed
    state.standard_units_completed += completed

    # --- Stage 2: initial batching ---
    still_batching = []
    for batch in wip.stage2:
        batch.batching_days_remaining -= 1
        if batch.batching_days_remaining <= 0:
            batch.batching_days_remaining = cfg["standard_stage3_batching_days"]
            wip.stage3.append(batch)
        else:
            still_batching.append(batch)
    wip.stage2 = still_batching

    # --- Stage 1: MCE processes immediately ---
    for batch in wip.stage1:
        batch.batching_days_remaining = cfg["standard_stage2_batching_days"]
    wip.stage2.extend(wip.stage1)
    wip.stage1 = []

    # --- Pre-stage into the machine, bounded by the standard share ---
    moved, wip.pre_stage = _take_units(wip.pre_stage, machine_capacity)
    wip.stage1.extend(moved)

    # --- Release raw material for tomorrow's machine slot ---
    per_unit = cfg["standard_material_per_unit"]
    room = max(0, machine_capacity - wip.units_at(wip.pre_stage))
    wanted = min(room, max(0, int(strategy.standard_batch_size)))
    units = min(wanted, state.raw_material_inventory // per_unit)
    used = consume(state, units * per_unit)
    if units > 0:
        wip.pre_stage.append(WIPBatch(units, day, 0))
        state.standard_units_started += units

    return StandardLineResult(
        units_started=units,
        units_completed=completed,
        material_used=used,
        material_short=units < wanted,
        labor_used=math.floor(labor_capacity) - labor_units,
    )


def _oldest_first(orders: List[CustomOrder]) -> List[CustomOrder]:
    return sorted(orders, key=lambda o: (o.start_day, o.order_id))


def run_custom_line(state: SimulationState, demand: int, machine_capacity: int, labor_capacity: float,
                    cfg=None, logger=None) -> CustomLineResult:
    cfg = cfg or PRODUCTION_CONFIG
    day = state.current_day
    wip = state.custom_wip
    dwell = cfg["custom_station_days"]

    # --- Acceptance against the WIP ceiling, before anything leaves today ---
    room = max(0, cfg["custom_max_wip"] - len(wip.orders))
    accepted = min(demand, room)
    rejected = demand - accepted
    if rejected > 0:
        state.rejected_custom_orders += rejected
        if logger is not None:
            logger.log("custom_orders_rejected", day, count=rejected, wip=len(wip.orders))

    for order in wip.orders:
        order.days_in_production += 1
        order.days_at_current_station += 1

    wma_left = state.machines.WMA * cfg["custom_wma_units_per_machine"]
    puc_left = state.machines.PUC * cfg["custom_puc_units_per_machine"]
    labor_left = math.floor(labor_capacity)
    labor_start = labor_left

    def ready(station):
        return [o for o in _oldest_first(wip.at(station)) if o.days_at_current_station >= dwell]

    # --- WMA_PASS2 -> COMPLETE ---
    delivered = []
    for order in ready(CustomStation.WMA_PASS2):
        if order.days_in_production >= cfg["custom_min_production_days"]:
            order.move_to(CustomStation.COMPLETE)
            delivered.append(order)

    # --- PUC -> WMA_PASS2 (WMA machine + labor) ---
    for order in ready(CustomStation.PUC):
        if wma_left <= 0 or labor_left <= 0:
            break
        order.move_to(CustomStation.WMA_PASS2)
        wma_left -= 1
        labor_left -= 1

    # --- WMA_PASS1 -> PUC ---
    for order in ready(CustomStation.WMA_PASS1):
        if puc_left <= 0:
            break
        order.move_to(CustomStation.PUC)
        puc_left -= 1

    # --- MCE -> WMA_PASS1 (WMA machine + labor) ---
    for order in ready(CustomStation.MCE):
        if wma_left <= 0 or labor_left <= 0:
            break
        order.move_to(CustomStation.WMA_PASS1)
        wma_left -= 1
        labor_left -= 1

    # --- WAITING -> MCE (shared machine + raw material) ---
    per_unit = cfg["custom_material_per_unit"]
    waiting = _oldest_first(wip.at(CustomStation.WAITING))
    wanted = min(len(waiting), machine_capacity)
    started = min(wanted, state.raw_material_inventory // per_unit)
    used = consume(state, started * per_unit)
    for order in waiting[:started]:
        order.move_to(CustomStation.MCE)

    if delivered:
        wip.orders = [o for o in wip.orders if o.current_station != CustomStation.COMPLETE]
    for i in range(accepted):
        wip.orders.append(CustomOrder(f"custom-{day}-{i}", day))
    state.custom_orders_accepted += accepted
    state.custom_orders_completed += len(delivered)
    state.finished_goods.custom += len(delivered)

    avg_delivery = sum(o.days_in_production for o in delivered) / len(delivered) if delivered else 0.0
    return CustomLineResult(
        demand=demand,
        accepted=accepted,
        rejected=rejected,
        started=started,
        completed=len(delivered),
        avg_delivery_time=avg_delivery,
        material_used=used,
        material_short=started < wanted,
        labor_used=labor_start - labor_left,
    )


def custom_queue_counts(state: SimulationState):
    counts = {station: 0 for station in CustomStation}
    for order in state.custom_wip.orders:
        counts[order.current_station] += 1
    return counts
