"""
Locker slot allocation

When a locker shipment needs more than one parcel locker, its items are
spread over the slots in cart order, filling each slot up to
ceil(total_quantity / total_slots) units before moving on. Backend pricing
assumes exactly this split, so the walk order and merge rule must not change.
"""
import dataclasses
import math
from typing import List

from wbtrade_checkout.modules.shipping.base import CartLineItem


def split_package(items: List[CartLineItem], total_slots: int) -> List[List[CartLineItem]]:
    """
    Split items across every slot.

    Args:
        items: Package items in their original order
        total_slots: Number of lockers the shipment uses

    Returns:
        One list of items per slot. Items for the same product_id are merged
        within a slot. The input items are never modified.
    """
    if total_slots <= 1:
        return [list(items)]

    total_qty = sum(item.quantity for item in items)
    per_slot_target = math.ceil(total_qty / total_slots)

    slots: List[List[CartLineItem]] = [[] for _ in range(total_slots)]
    current_slot = 0
    current_fill = 0

    for item in items:
        remaining = item.quantity
        while remaining > 0:
            last_slot = current_slot == total_slots - 1
            space = remaining if last_slot else per_slot_target - current_fill
            qty = min(remaining, space)

            if qty > 0:
                accumulator = slots[current_slot]
                for index, existing in enumerate(accumulator):
                    if existing.product_id == item.product_id:
                        accumulator[index] = dataclasses.replace(
                            existing, quantity=existing.quantity + qty
                        )
                        break
                else:
                    accumulator.append(dataclasses.replace(item, quantity=qty))
                current_fill += qty
                remaining -= qty

            if current_fill >= per_slot_target and not last_slot:
                current_slot += 1
                current_fill = 0

    return slots


def split_across_slots(
    items: List[CartLineItem],
    slot_index: int,
    total_slots: int,
) -> List[CartLineItem]:
    """Items that go into one slot. Empty when the slot received nothing."""
    if total_slots <= 1:
        return list(items)
    slots = split_package(items, total_slots)
    if 0 <= slot_index < len(slots):
        return slots[slot_index]
    return []
