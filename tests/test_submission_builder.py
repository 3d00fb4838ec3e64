"""
Tests for building the order submission payload.
"""
from decimal import Decimal

import pytest

from wbtrade_checkout.core.exceptions import (
    IncompleteSelectionError,
    StalePackageReferenceError,
    ADDRESS_MISSING,
    CART_EMPTY,
    LOCKER_SLOT_UNRESOLVED,
    PAYMENT_MISSING,
    TERMS_NOT_ACCEPTED,
)
from wbtrade_checkout.services.checkout_state import CheckoutState, PaymentSelection
from wbtrade_checkout.services.submission_builder import SubmissionBuilder, primary_method
from wbtrade_checkout.schemas.order import ShipmentLine

COURIER = "inpost_kurier"
LOCKER = "inpost_paczkomat"
DPD = "dpd_kurier"


@pytest.fixture
def complete_state(address, payment) -> CheckoutState:
    return CheckoutState(address=address, payment=payment, accept_terms=True)


def _cart(store):
    return [item for pid in store.package_ids() for item in store.get_package(pid).items]


def _line(method):
    return ShipmentLine(package_id="p", method=method, price=Decimal("1.00"), items=[])


class TestPrimaryMethod:
    def test_most_frequent_wins(self):
        lines = [_line(COURIER), _line(LOCKER), _line(LOCKER)]
        assert primary_method(lines, "fallback") == LOCKER

    def test_tie_goes_to_first_seen(self):
        lines = [_line(DPD), _line(COURIER), _line(COURIER), _line(DPD)]
        assert primary_method(lines, "fallback") == DPD

    def test_no_lines_uses_fallback(self):
        assert primary_method([], COURIER) == COURIER


class TestBuild:
    def test_courier_packages_emit_one_line_each(self, two_package_store, complete_state):
        store = two_package_store
        submission = SubmissionBuilder(store).build(_cart(store), complete_state)

        assert [line.package_id for line in submission.package_shipping] == ["pkg-HP", "pkg-Leker"]
        assert submission.shipping_method == COURIER
        assert submission.shipping_price == Decimal("33.98")
        assert submission.package_shipping[1].items[0].product_id == "B1"
        assert sum(i.quantity for i in submission.package_shipping[1].items) == 5

    def test_multi_slot_locker_package_expands_per_slot(self, two_package_store, complete_state):
        store = two_package_store
        store.select_method("pkg-Leker", LOCKER)
        store.set_locker_slot("pkg-Leker", 0, "WAW01M", "Warszawa 1")
        store.set_locker_slot("pkg-Leker", 1, "WAW02M", "Warszawa 2")

        submission = SubmissionBuilder(store).build(_cart(store), complete_state)
        lines = submission.package_shipping

        assert [line.package_id for line in lines] == ["pkg-HP", "pkg-Leker_slot0", "pkg-Leker_slot1"]
        assert [line.price for line in lines] == [Decimal("16.99"), Decimal("10.00"), Decimal("10.00")]
        assert [(i.product_id, i.quantity) for i in lines[1].items] == [("B1", 3)]
        assert [(i.product_id, i.quantity) for i in lines[2].items] == [("B2", 2)]
        assert lines[2].locker_code == "WAW02M"
        # Two locker lines against one courier line
        assert submission.shipping_method == LOCKER
        assert submission.shipping_price == Decimal("36.99")
        assert submission.pickup_point_code == "WAW01M"

    def test_three_slot_rounding_slack_is_kept(self, store, make_item, make_options, complete_state):
        items = [make_item("A", 3, warehouse_id="HP")]
        store.sync([make_options("pkg-HP", items, locker_slot_count=3)])
        store.select_method("pkg-HP", LOCKER)
        for slot in range(3):
            store.set_locker_slot("pkg-HP", slot, f"LOD0{slot}M", f"Łódź {slot}")

        submission = SubmissionBuilder(store).build(items, complete_state)

        assert [line.price for line in submission.package_shipping] == [Decimal("6.66")] * 3
        assert submission.shipping_price == Decimal("19.98")

    def test_single_slot_locker_keeps_package_id(self, store, make_item, make_options, complete_state):
        items = [make_item("A", 2)]
        store.sync([make_options("p1", items)])
        store.select_method("p1", LOCKER)
        store.set_locker_slot("p1", 0, "GDY01M", "Gdynia 1")

        (line,) = SubmissionBuilder(store).build(items, complete_state).package_shipping

        assert line.package_id == "p1"
        assert line.locker_code == "GDY01M"
        assert line.price == Decimal("19.99")
        assert sum(i.quantity for i in line.items) == 2

    def test_custom_address_carried_on_line(self, store, make_item, make_options, complete_state):
        items = [make_item("A", 1)]
        store.sync([make_options("p1", items)])
        store.toggle_custom_address("p1")
        for field_name, value in {
            "first_name": "Ewa", "last_name": "Wiśniewska", "phone": "700800900",
            "street": "Polna 3", "postal_code": "80-001", "city": "Gdańsk",
        }.items():
            store.update_custom_address_field("p1", field_name, value)

        (line,) = SubmissionBuilder(store).build(items, complete_state).package_shipping

        assert line.use_custom_address is True
        assert line.custom_address.city == "Gdańsk"
        assert line.custom_address.apartment is None

    def test_totals_include_items_and_payment_fee(self, two_package_store, address):
        store = two_package_store
        state = CheckoutState(
            address=address,
            payment=PaymentSelection(method="cod", method_name="Pobranie", extra_fee=Decimal("5.00")),
            accept_terms=True,
        )
        submission = SubmissionBuilder(store).build(_cart(store), state)

        assert submission.items_subtotal == Decimal("80.00")
        assert submission.payment_fee == Decimal("5.00")
        assert submission.total == Decimal("118.98")

    def test_payload_uses_camel_case_and_numbers(self, two_package_store, complete_state):
        store = two_package_store
        payload = SubmissionBuilder(store).build(_cart(store), complete_state).to_payload()

        assert payload["shippingMethod"] == COURIER
        assert payload["shippingPrice"] == 33.98
        assert payload["acceptTerms"] is True
        assert payload["packageShipping"][0]["packageId"] == "pkg-HP"
        assert payload["customer"]["postalCode"] == "00-001"
        assert payload["billing"] is None

    def test_invoice_adds_billing_block(self, two_package_store, complete_state):
        store = two_package_store
        complete_state.address.want_invoice = True
        complete_state.address.billing_company_name = "Firma Sp. z o.o."
        complete_state.address.billing_nip = "1234567890"

        submission = SubmissionBuilder(store).build(_cart(store), complete_state)

        assert submission.want_invoice is True
        assert submission.billing.nip == "1234567890"
        assert submission.billing.street == "Długa 1"


class TestBuildFailures:
    def test_all_missing_requirements_reported_together(self, two_package_store):
        store = two_package_store
        store.select_method("pkg-Leker", LOCKER)

        with pytest.raises(IncompleteSelectionError) as exc_info:
            SubmissionBuilder(store).build(_cart(store), CheckoutState())

        assert exc_info.value.codes == [
            ADDRESS_MISSING,
            LOCKER_SLOT_UNRESOLVED,
            LOCKER_SLOT_UNRESOLVED,
            PAYMENT_MISSING,
            TERMS_NOT_ACCEPTED,
        ]
        assert exc_info.value.details["missing_requirements"][1]["slot_index"] == 0

    def test_terms_alone_block_submission(self, two_package_store, address, payment):
        store = two_package_store
        state = CheckoutState(address=address, payment=payment, accept_terms=False)

        with pytest.raises(IncompleteSelectionError) as exc_info:
            SubmissionBuilder(store).build(_cart(store), state)

        assert exc_info.value.codes == [TERMS_NOT_ACCEPTED]

    def test_empty_cart_rejected(self, store, complete_state):
        with pytest.raises(IncompleteSelectionError) as exc_info:
            SubmissionBuilder(store).build([], complete_state)
        assert exc_info.value.codes == [CART_EMPTY]

    def test_cart_that_no_longer_matches_packages(self, two_package_store, make_item, complete_state):
        store = two_package_store
        cart = _cart(store) + [make_item("new", 1, warehouse_id="HP")]

        with pytest.raises(StalePackageReferenceError):
            SubmissionBuilder(store).build(cart, complete_state)
