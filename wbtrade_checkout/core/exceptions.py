"""
Checkout Exception Hierarchy

Structured exception classes for the checkout core. All exceptions carry a
code, message and details so callers can log them or turn them into a
user-facing message without parsing strings.

Exception Hierarchy:
    CheckoutBaseError
    ├── SelectionError
    │   ├── IncompleteSelectionError
    │   └── StalePackageReferenceError
    ├── ShippingOptionsError
    │   └── ResolverUnavailableError
    └── OrderSubmissionError
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any, List


@dataclass(frozen=True)
class MissingRequirement:
    """One thing the customer still has to do before the order can be placed."""
    code: str
    message: str
    package_id: Optional[str] = None
    slot_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "package_id": self.package_id,
            "slot_index": self.slot_index,
        }


# Requirement codes
CART_EMPTY = "CART_EMPTY"
METHOD_NOT_SELECTED = "METHOD_NOT_SELECTED"
METHOD_UNAVAILABLE = "METHOD_UNAVAILABLE"
LOCKER_SLOT_UNRESOLVED = "LOCKER_SLOT_UNRESOLVED"
CUSTOM_ADDRESS_INCOMPLETE = "CUSTOM_ADDRESS_INCOMPLETE"
ADDRESS_MISSING = "ADDRESS_MISSING"
PAYMENT_MISSING = "PAYMENT_MISSING"
TERMS_NOT_ACCEPTED = "TERMS_NOT_ACCEPTED"


class CheckoutBaseError(Exception):
    """
    Base exception for all checkout errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging
        severity: P0-P3 severity level
    """

    default_code: str = "CHECKOUT_ERROR"
    default_severity: str = "P2"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# SELECTION ERRORS
# =============================================================================

class SelectionError(CheckoutBaseError):
    """Base exception for shipping selection errors."""
    default_code = "SELECTION_ERROR"
    default_severity = "P3"


class IncompleteSelectionError(SelectionError):
    """Submission attempted before every requirement was met."""
    default_code = "SELECTION_INCOMPLETE"

    def __init__(
        self,
        message: str,
        missing_requirements: Optional[List[MissingRequirement]] = None,
        **kwargs
    ):
        self.missing_requirements = list(missing_requirements or [])
        details = kwargs.pop("details", {})
        details["missing_requirements"] = [r.to_dict() for r in self.missing_requirements]
        super().__init__(message, details=details, **kwargs)

    @property
    def codes(self) -> List[str]:
        return [r.code for r in self.missing_requirements]


class StalePackageReferenceError(SelectionError):
    """An operation referenced a package that no longer exists after regrouping."""
    default_code = "STALE_PACKAGE_REFERENCE"

    def __init__(self, message: str, package_id: Optional[str] = None, **kwargs):
        self.package_id = package_id
        details = kwargs.pop("details", {})
        details["package_id"] = package_id
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# SHIPPING OPTIONS ERRORS
# =============================================================================

class ShippingOptionsError(CheckoutBaseError):
    """Base exception for shipping options resolution."""
    default_code = "SHIPPING_OPTIONS_ERROR"
    default_severity = "P1"


class ResolverUnavailableError(ShippingOptionsError):
    """The shipping options service could not be reached or answered badly."""
    default_code = "SHIPPING_RESOLVER_UNAVAILABLE"

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        self.status_code = status_code
        details = kwargs.pop("details", {})
        details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# ORDER SUBMISSION ERRORS
# =============================================================================

class OrderSubmissionError(CheckoutBaseError):
    """The order API rejected or failed to accept a submission."""
    default_code = "ORDER_SUBMISSION_FAILED"
    default_severity = "P0"

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        self.status_code = status_code
        details = kwargs.pop("details", {})
        details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)


EXCEPTION_CATALOG = {
    "SELECTION_INCOMPLETE": {"class": IncompleteSelectionError, "severity": "P3"},
    "STALE_PACKAGE_REFERENCE": {"class": StalePackageReferenceError, "severity": "P3"},
    "SHIPPING_RESOLVER_UNAVAILABLE": {"class": ResolverUnavailableError, "severity": "P1"},
    "ORDER_SUBMISSION_FAILED": {"class": OrderSubmissionError, "severity": "P0"},
}
