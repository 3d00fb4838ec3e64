"""
Order submission schemas

The payload handed to the order-creation API. JSON keys are camelCase;
money is quantized to the cent and serialized as a JSON number.
"""
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

WireMoney = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShipmentItem(CamelModel):
    product_id: str
    product_name: str
    variant_id: str
    quantity: int
    image: Optional[str] = None


class CustomAddress(CamelModel):
    first_name: str
    last_name: str
    phone: str
    street: str
    apartment: Optional[str] = None
    postal_code: str
    city: str


class ShipmentLine(CamelModel):
    """One physical shipment: a whole package, or one locker slot of it."""
    package_id: str
    warehouse_id: Optional[str] = None
    method: str
    price: WireMoney
    locker_code: Optional[str] = None
    locker_address: Optional[str] = None
    items: List[ShipmentItem]
    use_custom_address: bool = False
    custom_address: Optional[CustomAddress] = None


class BillingAddress(CamelModel):
    first_name: str
    last_name: str
    company_name: Optional[str] = None
    nip: Optional[str] = None
    street: str
    city: str
    postal_code: str
    country: str = "PL"
    phone: Optional[str] = None


class CustomerAddress(CamelModel):
    email: str
    first_name: str
    last_name: str
    phone: str
    street: str
    apartment: Optional[str] = None
    postal_code: str
    city: str
    country: str = "PL"


class OrderSubmission(CamelModel):
    """
    Complete order payload.

    shipping_method is a display label only; shipping_price is always the
    sum of the package_shipping line prices.
    """
    shipping_method: str
    shipping_price: WireMoney
    payment_method: str
    payment_fee: WireMoney = Decimal("0.00")
    accept_terms: bool
    want_invoice: bool = False
    customer: CustomerAddress
    billing: Optional[BillingAddress] = None
    pickup_point_code: Optional[str] = None
    pickup_point_address: Optional[str] = None
    package_shipping: List[ShipmentLine]
    items_subtotal: WireMoney
    total: WireMoney
    currency: str = "PLN"

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class OrderConfirmation(CamelModel):
    """What the order API returns for an accepted order."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    order_id: str
    order_number: str
    payment_redirect_url: Optional[str] = Field(default=None, alias="paymentUrl")
    redirect_url: Optional[str] = None
    status: Optional[str] = None

    @property
    def redirect_target(self) -> Optional[str]:
        return self.payment_redirect_url or self.redirect_url
