"""
Checkout wizard state machine

Four steps: Address -> Shipping -> Payment -> Summary. Navigation is
permissive (the Summary step links back to any earlier step), but every
entry into Summary re-runs the readiness check instead of trusting an
earlier result.
"""
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from wbtrade_checkout.core.money import Money, ZERO

logger = logging.getLogger(__name__)


class CheckoutStep(IntEnum):
    ADDRESS = 0
    SHIPPING = 1
    PAYMENT = 2
    SUMMARY = 3

    @property
    def label(self) -> str:
        return STEP_LABELS[self]


STEP_LABELS = {
    CheckoutStep.ADDRESS: "Adres",
    CheckoutStep.SHIPPING: "Dostawa",
    CheckoutStep.PAYMENT: "Płatność",
    CheckoutStep.SUMMARY: "Podsumowanie",
}


@dataclass
class AddressData:
    """Contact and delivery address captured in the Address step."""
    first_name: str
    last_name: str
    email: str
    phone: str
    street: str
    postal_code: str
    city: str
    apartment: Optional[str] = None
    country: str = "PL"
    want_invoice: bool = False
    billing_company_name: Optional[str] = None
    billing_nip: Optional[str] = None
    billing_street: Optional[str] = None
    billing_city: Optional[str] = None
    billing_postal_code: Optional[str] = None


@dataclass
class ShippingSummary:
    method: str
    method_name: str
    price: Money
    shipment_count: int = 1


@dataclass
class PaymentSelection:
    method: str
    method_name: str
    extra_fee: Money = ZERO


@dataclass
class CheckoutState:
    step: CheckoutStep = CheckoutStep.ADDRESS
    address: Optional[AddressData] = None
    shipping: Optional[ShippingSummary] = None
    payment: Optional[PaymentSelection] = None
    accept_terms: bool = False


class CheckoutStateMachine:
    """
    Holds the wizard state for one checkout.

    Args:
        readiness_check: Callable returning True when the shipping
            selection is complete. Re-run on every Summary entry and
            by can_place_order().
    """

    def __init__(self, readiness_check: Optional[Callable[[], bool]] = None):
        self.readiness_check = readiness_check
        self.state = CheckoutState()
        self.summary_ready: Optional[bool] = None

    @property
    def step(self) -> CheckoutStep:
        return self.state.step

    def next_step(self) -> CheckoutStep:
        if self.state.step < CheckoutStep.SUMMARY:
            self._enter(CheckoutStep(self.state.step + 1))
        return self.state.step

    def prev_step(self) -> CheckoutStep:
        self._enter(CheckoutStep(max(0, self.state.step - 1)))
        return self.state.step

    def go_to_step(self, step: int) -> CheckoutStep:
        try:
            target = CheckoutStep(step)
        except ValueError:
            raise ValueError(f"Unknown checkout step: {step}") from None
        self._enter(target)
        return self.state.step

    def _enter(self, step: CheckoutStep) -> None:
        previous = self.state.step
        self.state.step = step
        if previous != step:
            logger.info(f"Checkout step {previous.label} -> {step.label}")
        if step == CheckoutStep.SUMMARY:
            self.summary_ready = self._run_readiness_check()
            if not self.summary_ready:
                logger.warning("Entered summary with an incomplete shipping selection")

    def _run_readiness_check(self) -> bool:
        if self.readiness_check is None:
            return True
        return bool(self.readiness_check())

    # =========================================================================
    # Step data
    # =========================================================================

    def set_address(self, address: AddressData) -> None:
        self.state.address = address

    def set_shipping(self, shipping: ShippingSummary) -> None:
        self.state.shipping = shipping

    def set_payment(self, payment: PaymentSelection) -> None:
        self.state.payment = payment

    def set_accept_terms(self, accepted: bool) -> None:
        self.state.accept_terms = accepted

    def can_place_order(self) -> bool:
        """Terms accepted and the shipping selection is complete, checked now."""
        return self.state.accept_terms and self._run_readiness_check()

    def reset(self) -> None:
        self.state = CheckoutState()
        self.summary_ready = None
        logger.info("Checkout state discarded")
