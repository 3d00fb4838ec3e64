"""
Shipping domain types and the shipping options resolver interface

- Cart line items and the packages they are grouped into
- Shipping methods offered per package
- The customer's per-package choices (method, lockers, custom address)
- ShippingOptionsResolver: the collaborator that prices packages
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from wbtrade_checkout.core.money import Money, ZERO

PACKAGE_TYPE_STANDARD = "standard"
PACKAGE_TYPE_OVERSIZED = "oversized"


# =============================================================================
# Cart and Package Data Classes
# =============================================================================

@dataclass(frozen=True)
class CartLineItem:
    """One cart line. Read-only input to the checkout core."""
    product_id: str
    product_name: str
    variant_id: str
    quantity: int
    is_oversized: bool = False
    warehouse_id: Optional[str] = None
    unit_price: Money = ZERO
    image_ref: Optional[str] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity} for {self.variant_id}")


@dataclass(frozen=True)
class Package:
    """
    A physically distinct shipment.

    Packages are never mutated: a cart change produces a fresh list.
    """
    id: str
    type: str
    warehouse_id: Optional[str]
    items: List[CartLineItem]
    is_locker_eligible: bool = True
    is_carrier_only_eligible: bool = False
    is_pickup_only: bool = False
    warehouse_subtotal: Money = ZERO
    has_free_shipping: bool = False
    locker_slot_count: int = 1

    def __post_init__(self):
        if self.locker_slot_count < 1:
            raise ValueError(f"locker_slot_count must be >= 1, got {self.locker_slot_count}")

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class ShippingMethodOption:
    """A shipping method offered for one package."""
    id: str
    display_name: str
    price: Money
    is_available: bool = True
    estimated_delivery: Optional[str] = None
    message: Optional[str] = None


@dataclass
class PackageItemRequest:
    variant_id: str
    quantity: int


@dataclass
class PackageRequest:
    """What the resolver needs to price one package."""
    package_id: str
    items: List[PackageItemRequest]


@dataclass
class PackageWithOptions:
    """A package as priced by the resolver, with its method list."""
    package: Package
    shipping_methods: List[ShippingMethodOption]
    selected_method: Optional[str] = None

    def available_methods(self) -> List[ShippingMethodOption]:
        return [m for m in self.shipping_methods if m.is_available]

    def find_method(self, method_id: Optional[str]) -> Optional[ShippingMethodOption]:
        for method in self.shipping_methods:
            if method.id == method_id:
                return method
        return None

    def default_method_id(self) -> Optional[str]:
        """Resolver's suggestion when it is available, else the first available method."""
        suggested = self.find_method(self.selected_method)
        if suggested is not None and suggested.is_available:
            return suggested.id
        available = self.available_methods()
        return available[0].id if available else None


@dataclass
class ResolvedShippingOptions:
    packages_with_options: List[PackageWithOptions]
    warnings: List[str] = field(default_factory=list)


# =============================================================================
# Selection Data Classes
# =============================================================================

@dataclass
class LockerSlotSelection:
    """A parcel locker chosen for one slot of a locker shipment."""
    slot_index: int
    locker_code: Optional[str] = None
    locker_address: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return bool(self.locker_code)


CUSTOM_ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "street",
    "apartment",
    "postal_code",
    "city",
)

CUSTOM_ADDRESS_REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "street",
    "postal_code",
    "city",
    "phone",
)


@dataclass
class CustomAddressOverride:
    """Delivery address for a single package, replacing the checkout address."""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    street: str = ""
    apartment: Optional[str] = None
    postal_code: str = ""
    city: str = ""

    def missing_fields(self) -> List[str]:
        return [
            name for name in CUSTOM_ADDRESS_REQUIRED_FIELDS
            if not (getattr(self, name) or "").strip()
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()


@dataclass
class PackageSelection:
    """The customer's choices for one package."""
    package_id: str
    method_id: Optional[str] = None
    locker_slots: List[LockerSlotSelection] = field(default_factory=list)
    use_custom_address: bool = False
    custom_address: Optional[CustomAddressOverride] = None

    def slot(self, slot_index: int) -> Optional[LockerSlotSelection]:
        for slot in self.locker_slots:
            if slot.slot_index == slot_index:
                return slot
        return None

    def slots_by_index(self) -> Dict[int, LockerSlotSelection]:
        return {slot.slot_index: slot for slot in self.locker_slots}


# =============================================================================
# Resolver Interface
# =============================================================================

class ShippingOptionsResolver(ABC):
    """
    Prices packages and lists the shipping methods available for each.

    Implementations own timeouts and retries. The checkout core only sees
    a final result or a ResolverUnavailableError.
    """

    @abstractmethod
    async def resolve(self, requests: List[PackageRequest]) -> ResolvedShippingOptions:
        """
        Resolve shipping options for a set of packages.

        Args:
            requests: One entry per package with its (variant, quantity) pairs

        Returns:
            ResolvedShippingOptions with one PackageWithOptions per package

        Raises:
            ResolverUnavailableError: When the options could not be obtained
        """
        pass
