"""
Shipping options schemas

Wire format of the per-package shipping options endpoint. Field aliases
follow the storefront API (camelCase, Polish carrier vocabulary).
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wbtrade_checkout.core.money import round_money
from wbtrade_checkout.modules.shipping.base import (
    CartLineItem,
    Package,
    PackageRequest,
    PackageWithOptions,
    ResolvedShippingOptions,
    ShippingMethodOption,
    PACKAGE_TYPE_OVERSIZED,
    PACKAGE_TYPE_STANDARD,
)

# Package types as the API names them
_PACKAGE_TYPES = {
    "standard": PACKAGE_TYPE_STANDARD,
    "gabaryt": PACKAGE_TYPE_OVERSIZED,
    "oversized": PACKAGE_TYPE_OVERSIZED,
}


class ShippingItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    variant_id: str = Field(alias="variantId")
    quantity: int = Field(ge=1)


class PackageRequestSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    package_id: str = Field(alias="packageId")
    items: List[ShippingItemRequest]


class ShippingOptionsRequest(BaseModel):
    """
    Request body for the per-package endpoint.

    `items` is the flat cart the API groups on its own; `packages` carries
    the local grouping so responses can be matched to it.
    """
    items: List[ShippingItemRequest]
    packages: List[PackageRequestSchema]

    @classmethod
    def from_package_requests(cls, requests: List[PackageRequest]) -> "ShippingOptionsRequest":
        packages = [
            PackageRequestSchema(
                package_id=request.package_id,
                items=[
                    ShippingItemRequest(variant_id=item.variant_id, quantity=item.quantity)
                    for item in request.items
                ],
            )
            for request in requests
        ]
        flat = [item for package in packages for item in package.items]
        return cls(items=flat, packages=packages)


class PackageItemSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: str = Field(alias="productId")
    product_name: str = Field(default="", alias="productName")
    variant_id: str = Field(alias="variantId")
    quantity: int = Field(ge=1)
    is_oversized: bool = Field(default=False, alias="isGabaryt")
    product_image: Optional[str] = Field(default=None, alias="productImage")

    def to_line_item(self, warehouse_id: Optional[str]) -> CartLineItem:
        return CartLineItem(
            product_id=self.product_id,
            product_name=self.product_name,
            variant_id=self.variant_id,
            quantity=self.quantity,
            is_oversized=self.is_oversized,
            warehouse_id=warehouse_id,
            image_ref=self.product_image,
        )


class PackageInfoSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str = "standard"
    warehouse_id: Optional[str] = Field(default=None, alias="wholesaler")
    items: List[PackageItemSchema]
    is_locker_eligible: bool = Field(default=False, alias="isPaczkomatAvailable")
    is_pickup_only: bool = Field(default=False, alias="isInPostOnly")
    is_carrier_only_eligible: bool = Field(default=False, alias="isCourierOnly")
    warehouse_subtotal: Decimal = Field(default=Decimal("0"), alias="warehouseValue")
    has_free_shipping: bool = Field(default=False, alias="hasFreeShipping")
    locker_slot_count: int = Field(default=1, alias="paczkomatPackageCount")

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        if v not in _PACKAGE_TYPES:
            raise ValueError(f"Unknown package type: {v}")
        return _PACKAGE_TYPES[v]

    @field_validator("locker_slot_count", mode="before")
    @classmethod
    def at_least_one_slot(cls, v):
        # Packages that can't go to a locker report 0 slots
        if v is None or int(v) < 1:
            return 1
        return v

    def to_package(self) -> Package:
        return Package(
            id=self.id,
            type=self.type,
            warehouse_id=self.warehouse_id,
            items=[item.to_line_item(self.warehouse_id) for item in self.items],
            is_locker_eligible=self.is_locker_eligible,
            is_carrier_only_eligible=self.is_carrier_only_eligible,
            is_pickup_only=self.is_pickup_only,
            warehouse_subtotal=round_money(self.warehouse_subtotal),
            has_free_shipping=self.has_free_shipping,
            locker_slot_count=self.locker_slot_count,
        )


class ShippingMethodSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    price: Decimal
    available: bool = True
    message: Optional[str] = None
    estimated_delivery: Optional[str] = Field(default=None, alias="estimatedDelivery")

    def to_option(self) -> ShippingMethodOption:
        return ShippingMethodOption(
            id=self.id,
            display_name=self.name,
            price=round_money(self.price),
            is_available=self.available,
            estimated_delivery=self.estimated_delivery,
            message=self.message,
        )


class PackageWithOptionsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    package: PackageInfoSchema
    shipping_methods: List[ShippingMethodSchema] = Field(alias="shippingMethods")
    selected_method: Optional[str] = Field(default=None, alias="selectedMethod")

    def to_domain(self) -> PackageWithOptions:
        return PackageWithOptions(
            package=self.package.to_package(),
            shipping_methods=[m.to_option() for m in self.shipping_methods],
            selected_method=self.selected_method,
        )


class ShippingOptionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    packages_with_options: List[PackageWithOptionsSchema] = Field(alias="packagesWithOptions")
    total_shipping_cost: Optional[Decimal] = Field(default=None, alias="totalShippingCost")
    warnings: List[str] = Field(default_factory=list)

    def to_domain(self) -> ResolvedShippingOptions:
        return ResolvedShippingOptions(
            packages_with_options=[p.to_domain() for p in self.packages_with_options],
            warnings=list(self.warnings),
        )
