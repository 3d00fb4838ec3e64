"""
Package grouping

Partitions cart line items into one package per source warehouse. Alias
warehouses are folded into their target before partitioning, and null or
unrecognized warehouse ids share the default bucket.

The packages built here are preliminary: the shipping options resolver
returns the authoritative package metadata (locker slot count, free
shipping flag, subtotal).
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from wbtrade_checkout.core.config import CheckoutConfig
from wbtrade_checkout.core.money import round_money, sum_money
from wbtrade_checkout.modules.shipping.base import (
    CartLineItem,
    Package,
    PackageItemRequest,
    PackageRequest,
    PACKAGE_TYPE_OVERSIZED,
    PACKAGE_TYPE_STANDARD,
)

logger = logging.getLogger(__name__)

PACKAGE_ID_PREFIX = "pkg-"


def warehouse_key(warehouse_id: Optional[str], config: CheckoutConfig) -> str:
    """Normalize a warehouse id to its grouping key."""
    if warehouse_id is None or not warehouse_id.strip():
        return config.default_warehouse_key

    key = config.warehouse_aliases.get(warehouse_id, warehouse_id)
    if config.known_warehouses and key not in config.known_warehouses:
        return config.default_warehouse_key
    return key


def package_id_for(key: str) -> str:
    return f"{PACKAGE_ID_PREFIX}{key}"


class PackageGrouper:
    """Groups cart items into warehouse packages."""

    def __init__(self, config: Optional[CheckoutConfig] = None):
        self.config = config or CheckoutConfig.from_settings()

    def group(self, items: List[CartLineItem]) -> List[Package]:
        """
        Partition items into packages keyed by normalized warehouse.

        Args:
            items: Cart line items, in cart order

        Returns:
            Packages in order of first occurrence of each warehouse key
        """
        buckets: Dict[str, List[CartLineItem]] = {}
        for item in items:
            key = warehouse_key(item.warehouse_id, self.config)
            buckets.setdefault(key, []).append(item)

        packages = [self._build_package(key, bucket) for key, bucket in buckets.items()]
        logger.debug(
            "Grouped %d cart lines into %d packages: %s",
            len(items), len(packages), [p.id for p in packages],
        )
        return packages

    def _build_package(self, key: str, items: List[CartLineItem]) -> Package:
        oversized = any(item.is_oversized for item in items)
        subtotal = sum_money(
            round_money(Decimal(str(item.unit_price)) * item.quantity) for item in items
        )
        return Package(
            id=package_id_for(key),
            type=PACKAGE_TYPE_OVERSIZED if oversized else PACKAGE_TYPE_STANDARD,
            warehouse_id=None if key == self.config.default_warehouse_key else key,
            items=list(items),
            is_locker_eligible=not oversized,
            is_carrier_only_eligible=oversized,
            is_pickup_only=False,
            warehouse_subtotal=subtotal,
            has_free_shipping=False,
            locker_slot_count=1,
        )


def build_resolver_request(packages: List[Package]) -> List[PackageRequest]:
    """Reduce packages to the (variant, quantity) pairs the resolver prices."""
    return [
        PackageRequest(
            package_id=package.id,
            items=[
                PackageItemRequest(variant_id=item.variant_id, quantity=item.quantity)
                for item in package.items
            ],
        )
        for package in packages
    ]
