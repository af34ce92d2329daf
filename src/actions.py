#STANDARD IMPORTS

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Tuple, Union

#LOCAL IMPORTS

from state import MachineType


@dataclass(frozen=True)
class TakeLoan:
    day: int
    amount: float


@dataclass(frozen=True)
class PayDebt:
    day: int
    amount: float


@dataclass(frozen=True)
class HireRookie:
    day: int
    count: int


@dataclass(frozen=True)
class HireExpert:
    day: int
    count: int


@dataclass(frozen=True)
class BuyMachine:
    day: int
    machine_type: MachineType
    count: int


@dataclass(frozen=True)
class SellMachine:
    day: int
    machine_type: MachineType
    count: int


@dataclass(frozen=True)
class OrderMaterials:
    day: int
    quantity: int


@dataclass(frozen=True)
class AdjustBatchSize:
    day: int
    new_size: int


@dataclass(frozen=True)
class AdjustAllocation:
    day: int
    new_allocation: float


@dataclass(frozen=True)
class AdjustPrice:
    day: int
    product_type: str  # 'standard' or 'custom'
    new_price: float


Action = Union[TakeLoan, PayDebt, HireRookie, HireExpert, BuyMachine, SellMachine,
               OrderMaterials, AdjustBatchSize, AdjustAllocation, AdjustPrice]

# field that is summed when two actions of the same kind land on the same day
_SUMMED_FIELD = {
    TakeLoan: "amount",
    PayDebt: "amount",
    HireRookie: "count",
    HireExpert: "count",
    BuyMachine: "count",
    SellMachine: "count",
    OrderMaterials: "quantity",
}


def _merge_key(action: Action) -> Tuple:
    if isinstance(action, (BuyMachine, SellMachine)):
        return (type(action), MachineType(action.machine_type))
    if isinstance(action, AdjustPrice):
        return (type(action), action.product_type)
    return (type(action),)


def merge_actions(actions: Iterable[Action]) -> List[Action]:
    """Collapse same-day duplicates into one action per kind.

    Loans, payments, hires, machine trades and material orders are summed.
    Adjustments keep the last value seen. First-seen order is preserved.
    """
    merged: Dict[Tuple, Action] = {}
    for action in actions:
        key = _merge_key(action)
        prev = merged.get(key)
        if prev is None:
            merged[key] = action
            continue
        summed = _SUMMED_FIELD.get(type(action))
        if summed is None:
            merged[key] = action
        else:
            total = getattr(prev, summed) + getattr(action, summed)
            merged[key] = replace(prev, **{summed: total})
    return list(merged.values())


def actions_for_day(actions: Iterable[Action], day: int) -> List[Action]:
    return [a for a in actions if a.day == day]


def action_to_dict(action: Action) -> Dict:
    row = {"type": type(action).__name__}
    for k, v in action.__dict__.items():
        row[k] = v.value if isinstance(v, MachineType) else v
    return row


_ACTION_TYPES = {cls.__name__: cls for cls in (TakeLoan, PayDebt, HireRookie, HireExpert, BuyMachine,
                                                SellMachine, OrderMaterials, AdjustBatchSize,
                                                AdjustAllocation, AdjustPrice)}


def action_from_dict(row: Dict) -> Action:
    fields = dict(row)
    kind = fields.pop("type")
    cls = _ACTION_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown action type '{kind}'")
    if "machine_type" in fields:
        fields["machine_type"] = MachineType(fields["machine_type"])
    return cls(**fields)
