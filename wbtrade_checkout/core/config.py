"""
Application configuration

Settings are read from the environment (or a .env file) once, at import.
Components take an explicit CheckoutConfig; when none is given they build
one with CheckoutConfig.from_settings(), so environment overrides reach the
grouping, selection and submission code while tests can still pass their
own configuration.
"""
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Warehouse ids the storefront knows about. Anything else lands in the
# default bucket.
DEFAULT_KNOWN_WAREHOUSES = [
    "HP",
    "Hurtownia Przemysłowa",
    "Ikonka",
    "BTP",
    "Leker",
    "Rzeszów",
    "Outlet",
    "Gastro",
    "Horeca",
    "Forcetop",
]

# Outlet stock ships from the Rzeszów warehouse
DEFAULT_WAREHOUSE_ALIASES = {"Outlet": "Rzeszów"}

DEFAULT_LOCKER_METHOD_IDS = ["inpost_paczkomat"]


def _parse_list(v):
    """Accept a list, a JSON array string or a comma-separated string."""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if not v.strip():
            return []
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    APP_NAME: str = "WBTrade Checkout"
    ENVIRONMENT: str = "production"

    # Money
    CURRENCY: str = "PLN"
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("300")

    # Package grouping
    DEFAULT_WAREHOUSE_KEY: str = "default"
    KNOWN_WAREHOUSES: Union[str, List[str]] = DEFAULT_KNOWN_WAREHOUSES
    WAREHOUSE_ALIASES: Union[str, Dict[str, str]] = DEFAULT_WAREHOUSE_ALIASES

    # Shipping methods
    LOCKER_METHOD_IDS: Union[str, List[str]] = DEFAULT_LOCKER_METHOD_IDS
    DEFAULT_PRIMARY_METHOD: str = "inpost_kurier"

    # Shipping options / order API
    SHIPPING_API_BASE: str = "http://localhost:5000/api"
    SHIPPING_API_TIMEOUT_SECONDS: float = 15.0
    SHIPPING_API_MAX_RETRIES: int = 2

    @field_validator("KNOWN_WAREHOUSES", "LOCKER_METHOD_IDS", mode="before")
    @classmethod
    def parse_list_settings(cls, v):
        return _parse_list(v)

    @field_validator("WAREHOUSE_ALIASES", mode="before")
    @classmethod
    def parse_aliases(cls, v):
        """Accept a JSON object or `Alias=Target` pairs separated by commas."""
        if isinstance(v, dict):
            return v
        if isinstance(v, str):
            if not v.strip():
                return {}
            if v.startswith("{"):
                return json.loads(v)
            pairs = [p.split("=", 1) for p in v.split(",") if "=" in p]
            return {alias.strip(): target.strip() for alias, target in pairs}
        return v

    @field_validator("SHIPPING_API_BASE")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@dataclass(frozen=True)
class CheckoutConfig:
    """
    Explicit configuration for the checkout core.

    Attributes:
        default_warehouse_key: Bucket for items with no (or an unknown) warehouse
        known_warehouses: Recognized warehouse ids; empty means any non-empty id
        warehouse_aliases: Warehouse ids merged into another before grouping
        locker_method_ids: Shipping method ids delivered to a parcel locker
        default_primary_method: Order header method when nothing was emitted
        free_shipping_threshold: Per-warehouse subtotal that earns free shipping
        currency: ISO code of every money amount
    """
    default_warehouse_key: str = "default"
    known_warehouses: FrozenSet[str] = frozenset(DEFAULT_KNOWN_WAREHOUSES)
    warehouse_aliases: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_WAREHOUSE_ALIASES)
    )
    locker_method_ids: FrozenSet[str] = frozenset(DEFAULT_LOCKER_METHOD_IDS)
    default_primary_method: str = "inpost_kurier"
    free_shipping_threshold: Decimal = Decimal("300")
    currency: str = "PLN"

    def is_locker_method(self, method_id: Optional[str]) -> bool:
        return method_id is not None and method_id in self.locker_method_ids

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "CheckoutConfig":
        source = source or settings
        return cls(
            default_warehouse_key=source.DEFAULT_WAREHOUSE_KEY,
            known_warehouses=frozenset(source.KNOWN_WAREHOUSES),
            warehouse_aliases=dict(source.WAREHOUSE_ALIASES),
            locker_method_ids=frozenset(source.LOCKER_METHOD_IDS),
            default_primary_method=source.DEFAULT_PRIMARY_METHOD,
            free_shipping_threshold=Decimal(str(source.FREE_SHIPPING_THRESHOLD)),
            currency=source.CURRENCY,
        )


settings = Settings()
