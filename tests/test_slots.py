"""
Tests for splitting locker shipments across slots.
"""
import pytest

from wbtrade_checkout.modules.shipping.slots import split_across_slots, split_package


def _pairs(items):
    return [(i.product_id, i.quantity) for i in items]


class TestSplitAcrossSlots:
    """Deterministic fill-in-order split."""

    def test_two_slots_fill_first_to_target(self, make_item):
        items = [make_item("A", 5), make_item("B", 3)]

        assert _pairs(split_across_slots(items, 0, 2)) == [("A", 4)]
        assert _pairs(split_across_slots(items, 1, 2)) == [("A", 1), ("B", 3)]

    def test_single_slot_returns_items_unchanged(self, make_item):
        items = [make_item("A", 5), make_item("B", 3)]
        assert split_across_slots(items, 0, 1) == items

    def test_same_product_merged_within_slot(self, make_item):
        items = [make_item("A", 1, variant_id="A-red"), make_item("A", 1, variant_id="A-blue"), make_item("B", 2)]

        (merged,) = split_across_slots(items, 0, 2)
        assert (merged.product_id, merged.quantity, merged.variant_id) == ("A", 2, "A-red")
        assert _pairs(split_across_slots(items, 1, 2)) == [("B", 2)]

    def test_out_of_range_slot_is_empty(self, make_item):
        items = [make_item("A", 4)]
        assert split_across_slots(items, 5, 2) == []

    def test_input_items_not_mutated(self, make_item):
        items = [make_item("A", 5), make_item("B", 3)]
        split_package(items, 3)
        assert _pairs(items) == [("A", 5), ("B", 3)]

    @pytest.mark.parametrize("quantities,total_slots", [
        ([5, 3], 2),
        ([1, 1, 1], 3),
        ([7], 3),
        ([2, 2, 3, 1], 4),
        ([10, 1, 1], 5),
        ([3, 4], 7),
    ])
    def test_slots_conserve_quantity(self, make_item, quantities, total_slots):
        items = [make_item(f"P{i}", q) for i, q in enumerate(quantities)]

        per_slot = [split_across_slots(items, s, total_slots) for s in range(total_slots)]

        assert sum(i.quantity for slot in per_slot for i in slot) == sum(quantities)
        by_product = {}
        for slot in per_slot:
            for item in slot:
                by_product[item.product_id] = by_product.get(item.product_id, 0) + item.quantity
        assert by_product == {f"P{i}": q for i, q in enumerate(quantities)}

    def test_split_package_returns_every_slot(self, make_item):
        slots = split_package([make_item("A", 7)], 3)
        assert [_pairs(s) for s in slots] == [[("A", 3)], [("A", 3)], [("A", 1)]]
