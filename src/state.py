#STANDARD IMPORTS

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

#LOCAL IMPORTS

from config import SIMULATION_START_DAY


class PolicyConfigurationError(ValueError):
    """Raised when a run is configured in a way that cannot be simulated."""


class MachineType(str, Enum):
    MCE = "MCE"
    WMA = "WMA"
    PUC = "PUC"


class CustomStation(str, Enum):
    WAITING = "WAITING"
    MCE = "MCE"
    WMA_PASS1 = "WMA_PASS1"
    PUC = "PUC"
    WMA_PASS2 = "WMA_PASS2"
    COMPLETE = "COMPLETE"


@dataclass
class WIPBatch:
    units: int
    start_day: int
    batching_days_remaining: int = 0

    def clone(self):
        return WIPBatch(self.units, self.start_day, self.batching_days_remaining)


@dataclass
class StandardLineWIP:
    pre_stage: List[WIPBatch] = field(default_factory=list)
    stage1: List[WIPBatch] = field(default_factory=list)
    stage2: List[WIPBatch] = field(default_factory=list)
    stage3: List[WIPBatch] = field(default_factory=list)

    def stations(self) -> Tuple[List[WIPBatch], ...]:
        return (self.pre_stage, self.stage1, self.stage2, self.stage3)

    def units_at(self, station: List[WIPBatch]) -> int:
        return sum(b.units for b in station)

    def total_units(self) -> int:
        return sum(self.units_at(s) for s in self.stations())

    def clone(self):
        return StandardLineWIP(
            pre_stage=[b.clone() for b in self.pre_stage],
            stage1=[b.clone() for b in self.stage1],
            stage2=[b.clone() for b in self.stage2],
            stage3=[b.clone() for b in self.stage3],
        )


@dataclass
class CustomOrder:
    order_id: str
    start_day: int
    days_in_production: int = 0
    current_station: CustomStation = CustomStation.WAITING
    days_at_current_station: int = 0

    def move_to(self, station: CustomStation) -> None:
        self.current_station = station
        self.days_at_current_station = 0

    def clone(self):
        return CustomOrder(self.order_id, self.start_day, self.days_in_production,
                           self.current_station, self.days_at_current_station)


@dataclass
class CustomLineWIP:
    orders: List[CustomOrder] = field(default_factory=list)

    def at(self, station: CustomStation) -> List[CustomOrder]:
        return [o for o in self.orders if o.current_station == station]

    def clone(self):
        return CustomLineWIP(orders=[o.clone() for o in self.orders])


@dataclass
class RookieInTraining:
    employee_id: int
    hire_day: int
    days_remaining: int

    def clone(self):
        return RookieInTraining(self.employee_id, self.hire_day, self.days_remaining)


@dataclass
class OvertimeRecord:
    employee_id: int
    employee_type: str  # 'expert' or 'rookie'
    consecutive_overtime_days: int = 0

    def clone(self):
        return OvertimeRecord(self.employee_id, self.employee_type, self.consecutive_overtime_days)


@dataclass
class Workforce:
    experts: int = 0
    rookies: int = 0
    rookies_in_training: List[RookieInTraining] = field(default_factory=list)
    overtime_tracking: List[OvertimeRecord] = field(default_factory=list)
    next_employee_id: int = 1

    @property
    def headcount(self) -> int:
        return self.experts + self.rookies

    def clone(self):
        return Workforce(
            experts=self.experts,
            rookies=self.rookies,
            rookies_in_training=[r.clone() for r in self.rookies_in_training],
            overtime_tracking=[r.clone() for r in self.overtime_tracking],
            next_employee_id=self.next_employee_id,
        )


@dataclass
class Machines:
    MCE: int = 1
    WMA: int = 1
    PUC: int = 1

    def count(self, machine_type: MachineType) -> int:
        return getattr(self, MachineType(machine_type).value)

    def adjust(self, machine_type: MachineType, delta: int) -> None:
        name = MachineType(machine_type).value
        setattr(self, name, getattr(self, name) + delta)

    def clone(self):
        return Machines(self.MCE, self.WMA, self.PUC)


@dataclass
class FinishedGoods:
    standard: int = 0
    custom: int = 0

    def clone(self):
        return FinishedGoods(self.standard, self.custom)


@dataclass
class MaterialOrder:
    order_day: int
    quantity: int
    arrival_day: int
    cost: float

    def clone(self):
        return MaterialOrder(self.order_day, self.quantity, self.arrival_day, self.cost)


class History:
    """Append-only per-day metric records plus the actions performed."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self.actions_performed: List[Tuple[int, Any]] = []

    def __len__(self) -> int:
        return len(self.records)

    def record(self, day: int, metrics: Dict[str, Any]) -> None:
        if self.records and self.records[-1]["day"] >= day:
            raise ValueError(f"History for day {day} already written")
        row = {"day": day}
        row.update(metrics)
        self.records.append(row)

    def series(self, name: str) -> List[Any]:
        return [r.get(name, 0) for r in self.records]

    def days(self) -> List[int]:
        return [r["day"] for r in self.records]

    def clone(self):
        out = History()
        out.records = [dict(r) for r in self.records]
        # actions are frozen dataclasses and can be shared
        out.actions_performed = list(self.actions_performed)
        return out


@dataclass
class SimulationState:
    current_day: int
    cash: float
    debt: float
    raw_material_inventory: int
    workforce: Workforce = field(default_factory=Workforce)
    machines: Machines = field(default_factory=Machines)
    standard_wip: StandardLineWIP = field(default_factory=StandardLineWIP)
    custom_wip: CustomLineWIP = field(default_factory=CustomLineWIP)
    finished_goods: FinishedGoods = field(default_factory=FinishedGoods)
    pending_material_orders: List[MaterialOrder] = field(default_factory=list)
    last_material_order_day: Optional[int] = None
    rejected_material_orders: int = 0
    rejected_custom_orders: int = 0
    stockout_days: int = 0
    lost_production_days: int = 0
    standard_units_started: int = 0
    standard_units_completed: int = 0
    custom_orders_accepted: int = 0
    custom_orders_completed: int = 0
    history: History = field(default_factory=History)

    @property
    def net_worth(self) -> float:
        return self.cash - self.debt

    def clone(self):
        return SimulationState(
            current_day=self.current_day,
            cash=self.cash,
            debt=self.debt,
            raw_material_inventory=self.raw_material_inventory,
            workforce=self.workforce.clone(),
            machines=self.machines.clone(),
            standard_wip=self.standard_wip.clone(),
            custom_wip=self.custom_wip.clone(),
            finished_goods=self.finished_goods.clone(),
            pending_material_orders=[o.clone() for o in self.pending_material_orders],
            last_material_order_day=self.last_material_order_day,
            rejected_material_orders=self.rejected_material_orders,
            rejected_custom_orders=self.rejected_custom_orders,
            stockout_days=self.stockout_days,
            lost_production_days=self.lost_production_days,
            standard_units_started=self.standard_units_started,
            standard_units_completed=self.standard_units_completed,
            custom_orders_accepted=self.custom_orders_accepted,
            custom_orders_completed=self.custom_orders_completed,
            history=self.history.clone(),
        )


def add_employee(workforce: Workforce, employee_type: str) -> int:
    employee_id = workforce.next_employee_id
    workforce.next_employee_id += 1
    workforce.overtime_tracking.append(OvertimeRecord(employee_id, employee_type))
    return employee_id


def _spread_standard_wip(wip: StandardLineWIP, units: int) -> None:
    per_station = units // 3
    remainder = units % 3
    wip.stage1.append(WIPBatch(per_station, SIMULATION_START_DAY - 1, 0))
    wip.stage2.append(WIPBatch(per_station, SIMULATION_START_DAY - 3, 2))
    wip.stage3.append(WIPBatch(per_station + remainder, SIMULATION_START_DAY - 4, 0))


def _historical_state() -> SimulationState:
    state = SimulationState(current_day=SIMULATION_START_DAY, cash=383919.70, debt=0.0,
                            raw_material_inventory=164, machines=Machines(MCE=1, WMA=2, PUC=2))
    state.workforce.experts = 1
    add_employee(state.workforce, "expert")
    _spread_standard_wip(state.standard_wip, 414)
    orders = state.custom_wip.orders
    for i in range(264):
        start = SIMULATION_START_DAY - 1 - i // 30
        orders.append(CustomOrder(f"initial-waiting-{i}", start, SIMULATION_START_DAY - start,
                                  CustomStation.WAITING, i // 30))
    # (station, start_day) of the orders already past the shared machine stage
    for station, start in ((CustomStation.WMA_PASS1, 48), (CustomStation.PUC, 46),
                           (CustomStation.WMA_PASS2, 45)):
        for i in range(12):
            orders.append(CustomOrder(f"initial-{station.value.lower()}-{i}", start,
                                      SIMULATION_START_DAY - start, station, 1))
    return state


def _business_case_state() -> SimulationState:
    state = SimulationState(current_day=SIMULATION_START_DAY, cash=8206.12, debt=70000.0,
                            raw_material_inventory=0, machines=Machines(MCE=1, WMA=1, PUC=1))
    state.workforce.experts = 1
    add_employee(state.workforce, "expert")
    _spread_standard_wip(state.standard_wip, 120)
    labor_stations = (CustomStation.WMA_PASS1, CustomStation.PUC, CustomStation.WMA_PASS2)
    for i in range(295):
        age = i % 10
        station = labor_stations[min(2, age // 4)]
        state.custom_wip.orders.append(
            CustomOrder(f"initial-{i}", SIMULATION_START_DAY - 1 - age, age + 1, station, 0))
    return state


INITIAL_STATES = {
    "historical": _historical_state,
    "business_case": _business_case_state,
}


def build_initial_state(scenario: str = "historical") -> SimulationState:
    """Fresh day-51 state for one of the known starting scenarios."""
    try:
        factory = INITIAL_STATES[scenario]
    except KeyError:
        raise PolicyConfigurationError(
            f"Unknown initial state '{scenario}'. Options: {sorted(INITIAL_STATES)}") from None
    return factory()
