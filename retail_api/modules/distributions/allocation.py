"""
Greedy stock allocation over the line items of one distribution.

Pure functions: nothing here touches the database. The reconciler feeds each
distribution's items through allocate() and writes the outcome back.
"""
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class LineItem:
    product_id: str
    product_name: str
    quantity: int
    price: float

    @property
    def total_value(self) -> float:
        return round(self.quantity * self.price, 2)


@dataclass(frozen=True)
class Deduction:
    product_id: str
    product_name: str
    quantity: int


@dataclass(frozen=True)
class AllocationOutcome:
    items: Tuple[LineItem, ...]          # surviving items, original order
    deductions: Tuple[Deduction, ...]
    remaining: Dict[str, int]            # demand left after this distribution

    @property
    def modified(self) -> bool:
        return bool(self.deductions)

    @property
    def exhausted(self) -> bool:
        return not self.items

    @property
    def total_value(self) -> float:
        return round(sum(item.quantity * item.price for item in self.items), 2)


def build_demand(lines: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    """Sum sold quantities per product id."""
    demand: Dict[str, int] = {}
    for product_id, quantity in lines:
        demand[product_id] = demand.get(product_id, 0) + quantity
    return demand


def allocate(items: Iterable[LineItem], demand: Mapping[str, int]) -> AllocationOutcome:
    """
    Deduct demand from items in order, min(remaining, item quantity) each.

    Items that reach zero are dropped. The input mapping is left untouched;
    the leftover demand is returned in the outcome.
    """
    remaining = dict(demand)
    updated = []
    deductions = []

    for item in items:
        wanted = remaining.get(item.product_id, 0)
        if wanted > 0 and item.quantity > 0:
            taken = min(wanted, item.quantity)
            remaining[item.product_id] = wanted - taken
            item = replace(item, quantity=item.quantity - taken)
            deductions.append(Deduction(item.product_id, item.product_name, taken))
        updated.append(item)

    survivors = tuple(item for item in updated if item.quantity > 0)
    return AllocationOutcome(items=survivors, deductions=tuple(deductions), remaining=remaining)


def shortfall(remaining: Mapping[str, int]) -> Dict[str, int]:
    """Products whose demand could not be located in any distribution."""
    return {product_id: qty for product_id, qty in remaining.items() if qty > 0}
