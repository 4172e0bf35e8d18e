"""
Get Yummy Backend - Child Collection Reconciliation
===================================================

What:  Computes how to turn a stored child collection (ingredients, steps,
       tags) into the one submitted with an update.
How:   Items are matched on id. Incoming items without an id are created,
       items with a known id are updated, stored items absent from the
       incoming list are deleted. The plan is computed up front so a bad id
       aborts the update before anything is written.

    current:  [A(1), B(2), C(3)]
    incoming: [B'(2), C'(3), D(None)]
    plan:     create [D]   update [(B, B'), (C, C')]   delete [A]
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar

from getyummy.exceptions import ValidationError

Stored = TypeVar("Stored")
Incoming = TypeVar("Incoming")


@dataclass
class ReconcilePlan(Generic[Stored, Incoming]):
    to_create: List[Incoming] = field(default_factory=list)
    to_update: List[Tuple[Stored, Incoming]] = field(default_factory=list)
    to_delete: List[Stored] = field(default_factory=list)


def _attr_id(item: Any) -> Optional[int]:
    return getattr(item, "id", None)


def reconcile(
    current: Iterable[Stored],
    incoming: Iterable[Incoming],
    label: str = "item",
    current_key: Callable[[Stored], Optional[int]] = _attr_id,
    incoming_key: Callable[[Incoming], Optional[int]] = _attr_id,
) -> ReconcilePlan[Stored, Incoming]:
    """
    Build a ReconcilePlan matching `incoming` against `current` by id.

    Raises:
        ValidationError: an incoming id does not belong to `current`, or the
                         same id is submitted twice
    """
    by_id = {current_key(row): row for row in current}
    plan: ReconcilePlan[Stored, Incoming] = ReconcilePlan()
    seen = set()

    for item in incoming:
        item_id = incoming_key(item)
        if item_id is None:
            plan.to_create.append(item)
            continue
        if item_id in seen:
            raise ValidationError(
                message=f"Duplicate {label} id {item_id} in request",
                field=label,
                context={"id": item_id},
            )
        if item_id not in by_id:
            raise ValidationError(
                message=f"Unknown {label} id {item_id} for this recipe",
                field=label,
                context={"id": item_id},
            )
        seen.add(item_id)
        plan.to_update.append((by_id[item_id], item))

    plan.to_delete = [row for key, row in by_id.items() if key not in seen]
    return plan
