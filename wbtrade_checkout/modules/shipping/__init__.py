"""
Shipping Module

- Cart, package and selection dataclasses
- ShippingOptionsResolver interface for pricing packages
- PackageGrouper for warehouse grouping
- Slot allocation for multi-locker shipments
"""
from wbtrade_checkout.modules.shipping.base import (
    CartLineItem,
    Package,
    PackageWithOptions,
    ResolvedShippingOptions,
    ShippingMethodOption,
    ShippingOptionsResolver,
)
from wbtrade_checkout.modules.shipping.grouping import PackageGrouper, build_resolver_request
from wbtrade_checkout.modules.shipping.slots import split_across_slots, split_package

__all__ = [
    "CartLineItem",
    "Package",
    "PackageWithOptions",
    "ResolvedShippingOptions",
    "ShippingMethodOption",
    "ShippingOptionsResolver",
    "PackageGrouper",
    "build_resolver_request",
    "split_across_slots",
    "split_package",
]
