"""
Selection store

Holds the customer's per-package shipping choices for one checkout session:
the selected method, locker choices per slot and an optional custom
delivery address. All mutations go through the methods below.

Invariant: a package never has a locker method selected while
use_custom_address is on.
"""
import logging
from typing import Dict, List, Optional

from wbtrade_checkout.core.config import CheckoutConfig
from wbtrade_checkout.core.exceptions import StalePackageReferenceError
from wbtrade_checkout.core.money import Money, sum_money
from wbtrade_checkout.modules.shipping.base import (
    CustomAddressOverride,
    CUSTOM_ADDRESS_FIELDS,
    LockerSlotSelection,
    Package,
    PackageSelection,
    PackageWithOptions,
    ShippingMethodOption,
)

logger = logging.getLogger(__name__)


class SelectionStore:
    """In-memory per-package selections, owned by a single checkout session."""

    def __init__(self, config: Optional[CheckoutConfig] = None):
        self.config = config or CheckoutConfig.from_settings()
        self._packages: Dict[str, PackageWithOptions] = {}
        self._selections: Dict[str, PackageSelection] = {}
        self.warnings: List[str] = []

    # =========================================================================
    # Resolution sync
    # =========================================================================

    def sync(self, packages_with_options: List[PackageWithOptions], warnings: Optional[List[str]] = None) -> None:
        """
        Apply a fresh shipping options resolution.

        Selections for vanished packages are dropped, new packages get the
        default method, and surviving packages keep their choices with
        locker slots beyond the new slot count removed.
        """
        previous = self._selections
        self._packages = {p.package.id: p for p in packages_with_options}
        self._selections = {}
        self.warnings = list(warnings or [])

        for package_id, pkg_opt in self._packages.items():
            selection = previous.get(package_id)
            if selection is None:
                selection = PackageSelection(package_id=package_id)
                default_method = pkg_opt.default_method_id()
                if default_method is not None:
                    self._apply_method(selection, default_method)
            else:
                slot_count = pkg_opt.package.locker_slot_count
                selection.locker_slots = [
                    s for s in selection.locker_slots if s.slot_index < slot_count
                ]
            self._selections[package_id] = selection

        dropped = [pid for pid in previous if pid not in self._packages]
        if dropped:
            logger.info(f"Dropped selections for vanished packages: {dropped}")

    # =========================================================================
    # Mutations
    # =========================================================================

    def select_method(self, package_id: str, method_id: str) -> None:
        selection = self._require_selection(package_id)
        self._apply_method(selection, method_id)
        logger.debug(f"Package {package_id}: method -> {method_id}")

    def _apply_method(self, selection: PackageSelection, method_id: str) -> None:
        selection.method_id = method_id
        if self.is_locker_method(method_id):
            selection.use_custom_address = False
        else:
            selection.locker_slots = []

    def set_locker_slot(
        self,
        package_id: str,
        slot_index: int,
        code: Optional[str],
        address: Optional[str] = None,
    ) -> None:
        """
        Upsert the locker for one slot.

        No-op when the package's current method is not a locker method.

        Raises:
            StalePackageReferenceError: Unknown package id
            ValueError: slot_index outside [0, locker_slot_count)
        """
        selection = self._require_selection(package_id)
        if not self.is_locker_method(selection.method_id):
            return

        slot_count = self._packages[package_id].package.locker_slot_count
        if not 0 <= slot_index < slot_count:
            raise ValueError(
                f"slot_index {slot_index} out of range for package {package_id} "
                f"({slot_count} slots)"
            )

        existing = selection.slot(slot_index)
        if existing is not None:
            existing.locker_code = code
            existing.locker_address = address
        else:
            selection.locker_slots.append(
                LockerSlotSelection(slot_index=slot_index, locker_code=code, locker_address=address)
            )
            selection.locker_slots.sort(key=lambda s: s.slot_index)

    def toggle_custom_address(self, package_id: str) -> None:
        """Flip the custom address flag. No effect while a locker method is selected."""
        selection = self._require_selection(package_id)
        if self.is_locker_method(selection.method_id):
            return
        selection.use_custom_address = not selection.use_custom_address
        if selection.use_custom_address and selection.custom_address is None:
            selection.custom_address = CustomAddressOverride()

    def update_custom_address_field(self, package_id: str, field_name: str, value: Optional[str]) -> None:
        selection = self._require_selection(package_id)
        if field_name not in CUSTOM_ADDRESS_FIELDS:
            raise ValueError(f"Unknown custom address field: {field_name}")
        if selection.custom_address is None:
            selection.custom_address = CustomAddressOverride()
        setattr(selection.custom_address, field_name, value if value is not None else "")

    def clear(self) -> None:
        self._packages = {}
        self._selections = {}
        self.warnings = []

    # =========================================================================
    # Reads
    # =========================================================================

    def _require_selection(self, package_id: str) -> PackageSelection:
        selection = self._selections.get(package_id)
        if selection is None:
            raise StalePackageReferenceError(
                f"Package {package_id} is not part of the current checkout",
                package_id=package_id,
            )
        return selection

    def is_locker_method(self, method_id: Optional[str]) -> bool:
        return self.config.is_locker_method(method_id)

    def package_ids(self) -> List[str]:
        return list(self._packages.keys())

    def packages_with_options(self) -> List[PackageWithOptions]:
        return list(self._packages.values())

    def get_package(self, package_id: str) -> Package:
        if package_id not in self._packages:
            raise StalePackageReferenceError(
                f"Package {package_id} is not part of the current checkout",
                package_id=package_id,
            )
        return self._packages[package_id].package

    def get_options(self, package_id: str) -> PackageWithOptions:
        self.get_package(package_id)
        return self._packages[package_id]

    def get_selection(self, package_id: str) -> PackageSelection:
        return self._require_selection(package_id)

    def selected_option(self, package_id: str) -> Optional[ShippingMethodOption]:
        """The selected method if it is offered and available for the package."""
        selection = self._require_selection(package_id)
        option = self._packages[package_id].find_method(selection.method_id)
        if option is None or not option.is_available:
            return None
        return option

    def total_shipping_price(self) -> Money:
        prices = []
        for package_id in self._packages:
            option = self.selected_option(package_id)
            if option is not None:
                prices.append(option.price)
        return sum_money(prices)

    def shipment_count(self) -> int:
        """Physical shipments: locker packages count once per slot."""
        count = 0
        for package_id, pkg_opt in self._packages.items():
            if self.is_locker_method(self._selections[package_id].method_id):
                count += pkg_opt.package.locker_slot_count
            else:
                count += 1
        return count

    def __len__(self) -> int:
        return len(self._packages)
