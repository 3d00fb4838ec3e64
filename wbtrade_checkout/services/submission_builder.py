"""
SubmissionBuilder - turns a completed checkout into an order payload

Shipment line rules:
- Non-locker packages emit one line with all of their items and, when set,
  the custom delivery address.
- Locker packages emit one line per locker slot. Each slot line carries the
  slot's share of the items, the method price split evenly across slots
  and a package id suffixed with the slot index.

The order header's shipping_method is the method used by most lines (ties
go to the first one seen). It is a label; the header price is always the
sum of the line prices.
"""
import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, List, Optional

from wbtrade_checkout.core.config import CheckoutConfig
from wbtrade_checkout.core.exceptions import (
    IncompleteSelectionError,
    MissingRequirement,
    StalePackageReferenceError,
    ADDRESS_MISSING,
    CART_EMPTY,
    PAYMENT_MISSING,
    TERMS_NOT_ACCEPTED,
)
from wbtrade_checkout.core.money import add, round_money, split_price, sum_money
from wbtrade_checkout.modules.shipping.base import CartLineItem
from wbtrade_checkout.modules.shipping.slots import split_package
from wbtrade_checkout.schemas.order import (
    BillingAddress,
    CustomAddress,
    CustomerAddress,
    OrderSubmission,
    ShipmentItem,
    ShipmentLine,
)
from wbtrade_checkout.services.checkout_state import AddressData, CheckoutState
from wbtrade_checkout.services.selection_store import SelectionStore
from wbtrade_checkout.services.selection_validator import SelectionValidator

logger = logging.getLogger(__name__)


def slot_package_id(package_id: str, slot_index: int) -> str:
    return f"{package_id}_slot{slot_index}"


def primary_method(lines: List[ShipmentLine], fallback: str) -> str:
    """Most frequent method across lines; ties broken by first occurrence."""
    if not lines:
        return fallback
    counts = Counter(line.method for line in lines)
    best = max(counts.values())
    for line in lines:
        if counts[line.method] == best:
            return line.method
    return fallback


def _shipment_items(items: List[CartLineItem]) -> List[ShipmentItem]:
    return [
        ShipmentItem(
            product_id=item.product_id,
            product_name=item.product_name,
            variant_id=item.variant_id,
            quantity=item.quantity,
            image=item.image_ref,
        )
        for item in items
    ]


def _variant_quantities(items: List[CartLineItem]) -> Dict[str, int]:
    quantities: Dict[str, int] = {}
    for item in items:
        quantities[item.variant_id] = quantities.get(item.variant_id, 0) + item.quantity
    return quantities


class SubmissionBuilder:
    def __init__(
        self,
        store: SelectionStore,
        validator: Optional[SelectionValidator] = None,
        config: Optional[CheckoutConfig] = None,
    ):
        self.store = store
        self.config = config or store.config
        self.validator = validator or SelectionValidator(store, self.config)

    def missing_requirements(
        self,
        cart_snapshot: List[CartLineItem],
        checkout_state: CheckoutState,
    ) -> List[MissingRequirement]:
        """Every unmet requirement, in the order the customer would fix them."""
        missing: List[MissingRequirement] = []

        if not cart_snapshot:
            missing.append(MissingRequirement(code=CART_EMPTY, message="The cart is empty"))
        if checkout_state.address is None:
            missing.append(MissingRequirement(code=ADDRESS_MISSING, message="Enter a delivery address"))

        missing.extend(self.validator.missing_requirements())

        if checkout_state.payment is None:
            missing.append(MissingRequirement(code=PAYMENT_MISSING, message="Choose a payment method"))
        if not checkout_state.accept_terms:
            missing.append(MissingRequirement(code=TERMS_NOT_ACCEPTED, message="Accept the terms of sale"))

        return missing

    def build(self, cart_snapshot: List[CartLineItem], checkout_state: CheckoutState) -> OrderSubmission:
        """
        Build the order payload.

        Args:
            cart_snapshot: Cart items the packages were grouped from
            checkout_state: Wizard state with address, payment and terms

        Returns:
            OrderSubmission ready for the order API

        Raises:
            IncompleteSelectionError: Any requirement is unmet (all are listed)
            StalePackageReferenceError: Packages no longer match the cart
        """
        missing = self.missing_requirements(cart_snapshot, checkout_state)
        if missing:
            raise IncompleteSelectionError(
                f"Order is not ready: {', '.join(r.code for r in missing)}",
                missing_requirements=missing,
            )

        self._check_cart_matches_packages(cart_snapshot)

        lines = self.shipment_lines()

        shipping_price = sum_money(line.price for line in lines)
        payment = checkout_state.payment
        payment_fee = round_money(payment.extra_fee)
        items_subtotal = sum_money(
            round_money(Decimal(str(item.unit_price)) * item.quantity) for item in cart_snapshot
        )
        first_locker_line = next((line for line in lines if line.locker_code), None)
        address = checkout_state.address

        submission = OrderSubmission(
            shipping_method=primary_method(lines, self.config.default_primary_method),
            shipping_price=shipping_price,
            payment_method=payment.method,
            payment_fee=payment_fee,
            accept_terms=checkout_state.accept_terms,
            want_invoice=address.want_invoice,
            customer=self._customer(address),
            billing=self._billing(address),
            pickup_point_code=first_locker_line.locker_code if first_locker_line else None,
            pickup_point_address=first_locker_line.locker_address if first_locker_line else None,
            package_shipping=lines,
            items_subtotal=items_subtotal,
            total=add(add(items_subtotal, shipping_price), payment_fee),
            currency=self.config.currency,
        )
        logger.info(
            f"Built order submission: {len(lines)} shipment lines, "
            f"shipping {shipping_price} {self.config.currency}, method {submission.shipping_method}"
        )
        return submission

    def shipment_lines(self) -> List[ShipmentLine]:
        """Shipment lines for every current package, in package order. Every package must be ready."""
        lines: List[ShipmentLine] = []
        for package_id in self.store.package_ids():
            lines.extend(self._package_lines(package_id))
        return lines

    def _check_cart_matches_packages(self, cart_snapshot: List[CartLineItem]) -> None:
        packaged: List[CartLineItem] = []
        for package_id in self.store.package_ids():
            packaged.extend(self.store.get_package(package_id).items)

        if _variant_quantities(packaged) != _variant_quantities(cart_snapshot):
            raise StalePackageReferenceError(
                "Shipping packages no longer match the cart, refresh shipping options"
            )

    def _package_lines(self, package_id: str) -> List[ShipmentLine]:
        package = self.store.get_package(package_id)
        selection = self.store.get_selection(package_id)
        option = self.store.selected_option(package_id)

        if self.config.is_locker_method(selection.method_id):
            slot_count = package.locker_slot_count
            slots = selection.slots_by_index()

            if slot_count == 1:
                slot = slots[0]
                return [ShipmentLine(
                    package_id=package.id,
                    warehouse_id=package.warehouse_id,
                    method=option.id,
                    price=round_money(option.price),
                    locker_code=slot.locker_code,
                    locker_address=slot.locker_address,
                    items=_shipment_items(package.items),
                )]

            slot_price = split_price(option.price, slot_count)
            slot_items = split_package(package.items, slot_count)
            return [
                ShipmentLine(
                    package_id=slot_package_id(package.id, slot_index),
                    warehouse_id=package.warehouse_id,
                    method=option.id,
                    price=slot_price,
                    locker_code=slots[slot_index].locker_code,
                    locker_address=slots[slot_index].locker_address,
                    items=_shipment_items(slot_items[slot_index]),
                )
                for slot_index in range(slot_count)
            ]

        custom_address = None
        if selection.use_custom_address and selection.custom_address is not None:
            override = selection.custom_address
            custom_address = CustomAddress(
                first_name=override.first_name,
                last_name=override.last_name,
                phone=override.phone,
                street=override.street,
                apartment=override.apartment or None,
                postal_code=override.postal_code,
                city=override.city,
            )

        return [ShipmentLine(
            package_id=package.id,
            warehouse_id=package.warehouse_id,
            method=option.id,
            price=round_money(option.price),
            items=_shipment_items(package.items),
            use_custom_address=custom_address is not None,
            custom_address=custom_address,
        )]

    def _customer(self, address: AddressData) -> CustomerAddress:
        return CustomerAddress(
            email=address.email,
            first_name=address.first_name,
            last_name=address.last_name,
            phone=address.phone,
            street=address.street,
            apartment=address.apartment,
            postal_code=address.postal_code,
            city=address.city,
            country=address.country,
        )

    def _billing(self, address: AddressData) -> Optional[BillingAddress]:
        if not address.want_invoice:
            return None
        return BillingAddress(
            first_name=address.first_name,
            last_name=address.last_name,
            company_name=address.billing_company_name,
            nip=address.billing_nip,
            street=address.billing_street or address.street,
            city=address.billing_city or address.city,
            postal_code=address.billing_postal_code or address.postal_code,
            country=address.country,
            phone=address.phone,
        )
