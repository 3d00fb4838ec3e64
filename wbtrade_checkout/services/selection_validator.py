"""
Selection validation

Readiness of each package and of the whole shipping step, computed from the
selection store on every call. Nothing is cached: the Summary step asks
again each time it is entered.
"""
from typing import List, Optional

from wbtrade_checkout.core.config import CheckoutConfig
from wbtrade_checkout.core.exceptions import (
    MissingRequirement,
    CUSTOM_ADDRESS_INCOMPLETE,
    LOCKER_SLOT_UNRESOLVED,
    METHOD_NOT_SELECTED,
    METHOD_UNAVAILABLE,
)
from wbtrade_checkout.services.selection_store import SelectionStore


class SelectionValidator:
    def __init__(self, store: SelectionStore, config: Optional[CheckoutConfig] = None):
        self.store = store
        self.config = config or store.config

    def package_requirements(self, package_id: str) -> List[MissingRequirement]:
        """
        Everything still missing for one package.

        Raises:
            StalePackageReferenceError: Unknown package id
        """
        selection = self.store.get_selection(package_id)
        package = self.store.get_package(package_id)

        if not selection.method_id:
            return [MissingRequirement(
                code=METHOD_NOT_SELECTED,
                message=f"Choose a shipping method for package {package_id}",
                package_id=package_id,
            )]

        if self.store.selected_option(package_id) is None:
            return [MissingRequirement(
                code=METHOD_UNAVAILABLE,
                message=f"Shipping method {selection.method_id} is not available for package {package_id}",
                package_id=package_id,
            )]

        if self.config.is_locker_method(selection.method_id):
            slots = selection.slots_by_index()
            missing = []
            for slot_index in range(package.locker_slot_count):
                slot = slots.get(slot_index)
                if slot is None or not slot.is_resolved:
                    missing.append(MissingRequirement(
                        code=LOCKER_SLOT_UNRESOLVED,
                        message=f"Choose a parcel locker for slot {slot_index + 1} of package {package_id}",
                        package_id=package_id,
                        slot_index=slot_index,
                    ))
            return missing

        if selection.use_custom_address:
            address = selection.custom_address
            if address is None or not address.is_complete:
                missing_fields = address.missing_fields() if address else ["all fields"]
                return [MissingRequirement(
                    code=CUSTOM_ADDRESS_INCOMPLETE,
                    message=(
                        f"Custom delivery address for package {package_id} is missing: "
                        f"{', '.join(missing_fields)}"
                    ),
                    package_id=package_id,
                )]

        return []

    def is_package_ready(self, package_id: str) -> bool:
        return not self.package_requirements(package_id)

    def missing_requirements(self) -> List[MissingRequirement]:
        missing = []
        for package_id in self.store.package_ids():
            missing.extend(self.package_requirements(package_id))
        return missing

    def is_wizard_ready_to_submit(self) -> bool:
        return all(self.is_package_ready(pid) for pid in self.store.package_ids())
