"""
Pytest configuration and fixtures for checkout tests.
"""
import os
from decimal import Decimal
from typing import Callable, List, Optional

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["SHIPPING_API_BASE"] = "http://shop.test/api"
os.environ["SHIPPING_API_MAX_RETRIES"] = "0"

from wbtrade_checkout.core.config import CheckoutConfig  # noqa: E402
from wbtrade_checkout.modules.shipping.base import (  # noqa: E402
    CartLineItem,
    Package,
    PackageWithOptions,
    ShippingMethodOption,
)
from wbtrade_checkout.services.checkout_state import AddressData, PaymentSelection  # noqa: E402
from wbtrade_checkout.services.selection_store import SelectionStore  # noqa: E402
from wbtrade_checkout.services.selection_validator import SelectionValidator  # noqa: E402


COURIER = "inpost_kurier"
LOCKER = "inpost_paczkomat"
DPD = "dpd_kurier"


@pytest.fixture
def config() -> CheckoutConfig:
    return CheckoutConfig()


@pytest.fixture
def make_item() -> Callable[..., CartLineItem]:
    """Factory for cart line items."""
    def _make(
        product_id: str,
        quantity: int = 1,
        warehouse_id: Optional[str] = None,
        is_oversized: bool = False,
        unit_price: str = "10.00",
        variant_id: Optional[str] = None,
    ) -> CartLineItem:
        return CartLineItem(
            product_id=product_id,
            product_name=f"Product {product_id}",
            variant_id=variant_id or f"{product_id}-v",
            quantity=quantity,
            is_oversized=is_oversized,
            warehouse_id=warehouse_id,
            unit_price=Decimal(unit_price),
        )
    return _make


@pytest.fixture
def methods() -> dict:
    return {
        COURIER: ShippingMethodOption(id=COURIER, display_name="Kurier InPost", price=Decimal("16.99")),
        LOCKER: ShippingMethodOption(id=LOCKER, display_name="Paczkomat InPost", price=Decimal("19.99")),
        DPD: ShippingMethodOption(id=DPD, display_name="Kurier DPD", price=Decimal("18.99")),
    }


@pytest.fixture
def make_options(methods) -> Callable[..., PackageWithOptions]:
    """Factory for a resolved package with its shipping methods."""
    def _make(
        package_id: str,
        items: List[CartLineItem],
        method_ids: Optional[List[str]] = None,
        locker_slot_count: int = 1,
        selected_method: Optional[str] = None,
        unavailable: Optional[List[str]] = None,
        warehouse_id: Optional[str] = None,
    ) -> PackageWithOptions:
        unavailable = unavailable or []
        options = []
        for method_id in method_ids or [COURIER, LOCKER]:
            option = methods[method_id]
            if method_id in unavailable:
                option = ShippingMethodOption(
                    id=option.id,
                    display_name=option.display_name,
                    price=option.price,
                    is_available=False,
                )
            options.append(option)
        package = Package(
            id=package_id,
            type="standard",
            warehouse_id=warehouse_id,
            items=list(items),
            locker_slot_count=locker_slot_count,
        )
        return PackageWithOptions(
            package=package,
            shipping_methods=options,
            selected_method=selected_method,
        )
    return _make


@pytest.fixture
def store(config) -> SelectionStore:
    return SelectionStore(config)


@pytest.fixture
def validator(store, config) -> SelectionValidator:
    return SelectionValidator(store, config)


@pytest.fixture
def two_package_store(store, make_item, make_options):
    """Warehouse A with 3 units (courier), warehouse B with 5 units over 2 lockers."""
    a_items = [make_item("A", 3, warehouse_id="HP")]
    b_items = [make_item("B1", 3, warehouse_id="Leker"), make_item("B2", 2, warehouse_id="Leker")]
    store.sync([
        make_options("pkg-HP", a_items, warehouse_id="HP"),
        make_options("pkg-Leker", b_items, locker_slot_count=2, warehouse_id="Leker"),
    ])
    return store


@pytest.fixture
def address() -> AddressData:
    return AddressData(
        first_name="Jan",
        last_name="Kowalski",
        email="jan@example.com",
        phone="500600700",
        street="Długa 1",
        postal_code="00-001",
        city="Warszawa",
    )


@pytest.fixture
def payment() -> PaymentSelection:
    return PaymentSelection(method="payu", method_name="PayU")
