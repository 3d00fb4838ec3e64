"""
CheckoutSession - one customer's checkout, end to end

Owns the cart snapshot, the package grouping, the selection store and the
wizard state. Shipping option refreshes are last-request-wins: every
refresh and every cart update bumps a generation counter, and a resolver
result is applied only if no newer request was issued while it was in
flight.
"""
import logging
from typing import List, Optional

from wbtrade_checkout.core.config import CheckoutConfig
from wbtrade_checkout.core.exceptions import (
    IncompleteSelectionError,
    OrderSubmissionError,
    ResolverUnavailableError,
    StalePackageReferenceError,
)
from wbtrade_checkout.core.money import sum_money
from wbtrade_checkout.modules.shipping.base import (
    CartLineItem,
    Package,
    ResolvedShippingOptions,
    ShippingOptionsResolver,
)
from wbtrade_checkout.modules.shipping.grouping import PackageGrouper, build_resolver_request
from wbtrade_checkout.schemas.order import OrderConfirmation, OrderSubmission
from wbtrade_checkout.services.checkout_state import CheckoutStateMachine, ShippingSummary
from wbtrade_checkout.services.order_client import OrderSubmitter
from wbtrade_checkout.services.selection_store import SelectionStore
from wbtrade_checkout.services.selection_validator import SelectionValidator
from wbtrade_checkout.services.submission_builder import SubmissionBuilder, primary_method

logger = logging.getLogger(__name__)


class CheckoutSession:
    """
    Orchestrates a single checkout.

    Mutations are synchronous and must be serialized by the host. The only
    suspension points are the resolver and order submitter calls.
    """

    def __init__(
        self,
        resolver: ShippingOptionsResolver,
        submitter: Optional[OrderSubmitter] = None,
        config: Optional[CheckoutConfig] = None,
    ):
        self.resolver = resolver
        self.submitter = submitter
        self.config = config or CheckoutConfig.from_settings()

        self.grouper = PackageGrouper(self.config)
        self.store = SelectionStore(self.config)
        self.validator = SelectionValidator(self.store, self.config)
        self.wizard = CheckoutStateMachine(readiness_check=self.validator.is_wizard_ready_to_submit)
        self.builder = SubmissionBuilder(self.store, self.validator, self.config)

        self.cart: List[CartLineItem] = []
        self.packages: List[Package] = []
        self.options_stale = True
        self.last_resolver_error: Optional[ResolverUnavailableError] = None
        self.applied_package_ids: List[str] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    # =========================================================================
    # Cart and shipping options
    # =========================================================================

    def update_cart(self, items: List[CartLineItem]) -> List[Package]:
        """Regroup the cart. Any in-flight resolver call becomes stale."""
        self.cart = list(items)
        self.packages = self.grouper.group(self.cart)
        self._generation += 1
        self.options_stale = True
        logger.info(
            f"Cart updated: {len(self.cart)} lines in {len(self.packages)} packages "
            f"(generation {self._generation})"
        )
        return self.packages

    async def refresh_shipping_options(self) -> Optional[ResolvedShippingOptions]:
        """
        Fetch shipping options for the current packages.

        Returns:
            The applied resolution, or None when a newer request superseded
            this one before it completed

        Raises:
            ResolverUnavailableError: The latest request failed. Existing
                selections are left untouched.
        """
        self._generation += 1
        generation = self._generation

        if not self.packages:
            self.store.sync([])
            self.applied_package_ids = []
            self.options_stale = False
            return ResolvedShippingOptions(packages_with_options=[])

        try:
            resolved = await self.resolver.resolve(build_resolver_request(self.packages))
        except ResolverUnavailableError as e:
            if generation != self._generation:
                logger.warning(f"Ignoring failure of superseded shipping request {generation}: {e.code}")
                return None
            self.last_resolver_error = e
            logger.error(f"Shipping options unavailable: {e.message}")
            raise

        if generation != self._generation:
            logger.warning(
                f"Discarding stale shipping options (generation {generation}, "
                f"latest {self._generation})"
            )
            return None

        self.store.sync(resolved.packages_with_options, resolved.warnings)
        self.applied_package_ids = self.store.package_ids()
        self.options_stale = False
        self.last_resolver_error = None
        for warning in resolved.warnings:
            logger.warning(f"Shipping options warning: {warning}")
        logger.info(f"Applied shipping options for {len(resolved.packages_with_options)} packages")
        return resolved

    # =========================================================================
    # Selection operations
    # =========================================================================

    def _handle_stale(self, error: StalePackageReferenceError) -> bool:
        current = self.store.package_ids()
        # Resolver package ids are positional, not the local pkg-<key> ids
        if current != self.applied_package_ids:
            self.options_stale = True
        logger.warning(
            f"Ignoring operation on stale package {error.package_id}; "
            f"current packages: {current}"
        )
        return False

    def select_method(self, package_id: str, method_id: str) -> bool:
        try:
            self.store.select_method(package_id, method_id)
        except StalePackageReferenceError as e:
            return self._handle_stale(e)
        return True

    def set_locker_slot(
        self,
        package_id: str,
        slot_index: int,
        code: Optional[str],
        address: Optional[str] = None,
    ) -> bool:
        try:
            self.store.set_locker_slot(package_id, slot_index, code, address)
        except StalePackageReferenceError as e:
            return self._handle_stale(e)
        return True

    def toggle_custom_address(self, package_id: str) -> bool:
        try:
            self.store.toggle_custom_address(package_id)
        except StalePackageReferenceError as e:
            return self._handle_stale(e)
        return True

    def update_custom_address_field(self, package_id: str, field_name: str, value: Optional[str]) -> bool:
        try:
            self.store.update_custom_address_field(package_id, field_name, value)
        except StalePackageReferenceError as e:
            return self._handle_stale(e)
        return True

    # =========================================================================
    # Wizard
    # =========================================================================

    def confirm_shipping(self) -> ShippingSummary:
        """
        Record the shipping step's result in the wizard.

        Raises:
            StalePackageReferenceError: The cart changed since the last refresh
            IncompleteSelectionError: Some package is not ready
        """
        if self.options_stale:
            raise StalePackageReferenceError(
                "Shipping options do not match the current cart, refresh them first"
            )
        missing = self.validator.missing_requirements()
        if missing:
            raise IncompleteSelectionError(
                "Shipping selection is incomplete",
                missing_requirements=missing,
            )

        lines = self.builder.shipment_lines()
        method = primary_method(lines, self.config.default_primary_method)
        method_name = method
        for package_id in self.store.package_ids():
            option = self.store.selected_option(package_id)
            if option is not None and option.id == method:
                method_name = option.display_name
                break

        summary = ShippingSummary(
            method=method,
            method_name=method_name,
            price=sum_money(line.price for line in lines),
            shipment_count=len(lines),
        )
        self.wizard.set_shipping(summary)
        logger.info(f"Shipping confirmed: {summary.shipment_count} shipments, {summary.price}")
        return summary

    def build_submission(self) -> OrderSubmission:
        return self.builder.build(self.cart, self.wizard.state)

    async def place_order(self) -> OrderConfirmation:
        """
        Build and submit the order, then discard the wizard state.

        Raises:
            IncompleteSelectionError: The checkout is not complete
            StalePackageReferenceError: Shipping options must be refreshed first
            OrderSubmissionError: The order API did not accept the order
        """
        if self.submitter is None:
            raise OrderSubmissionError("No order submitter configured")

        submission = self.build_submission()
        confirmation = await self.submitter.submit(submission)
        logger.info(
            f"Order {confirmation.order_number} placed, redirect: {confirmation.redirect_target or 'none'}"
        )
        self._discard()
        return confirmation

    def abandon(self) -> None:
        logger.info("Checkout abandoned")
        self._discard()

    def _discard(self) -> None:
        self.wizard.reset()
        self.store.clear()
        self.applied_package_ids = []
        self.options_stale = True
        self._generation += 1
