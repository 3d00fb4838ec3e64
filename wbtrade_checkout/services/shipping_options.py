"""
HTTP shipping options resolver

Posts the cart's packages to the storefront's per-package shipping endpoint
and parses the priced packages it returns.
"""
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from wbtrade_checkout.core.exceptions import ResolverUnavailableError
from wbtrade_checkout.core.http_client import RetryingHTTPClient, get_storefront_client
from wbtrade_checkout.modules.shipping.base import (
    PackageRequest,
    ResolvedShippingOptions,
    ShippingOptionsResolver,
)
from wbtrade_checkout.schemas.shipping import ShippingOptionsRequest, ShippingOptionsResponse

logger = logging.getLogger(__name__)

PER_PACKAGE_PATH = "/checkout/shipping/per-package"


class HttpShippingOptionsResolver(ShippingOptionsResolver):
    def __init__(self, client: Optional[RetryingHTTPClient] = None):
        self.client = client or get_storefront_client()

    async def resolve(self, requests: List[PackageRequest]) -> ResolvedShippingOptions:
        body = ShippingOptionsRequest.from_package_requests(requests)

        try:
            response = await self.client.post(
                PER_PACKAGE_PATH,
                json=body.model_dump(by_alias=True, mode="json"),
            )
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Shipping options request failed with status {status}")
            raise ResolverUnavailableError(
                f"Shipping options service returned {status}",
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Shipping options request failed: {e}")
            raise ResolverUnavailableError(f"Shipping options service unreachable: {e}") from e

        try:
            parsed = ShippingOptionsResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed shipping options response: {e}")
            raise ResolverUnavailableError(
                "Shipping options service returned a malformed response",
                status_code=response.status_code,
            ) from e

        resolved = parsed.to_domain()
        logger.info(
            f"Resolved shipping options for {len(resolved.packages_with_options)} packages "
            f"({len(resolved.warnings)} warnings)"
        )
        return resolved

    async def close(self) -> None:
        await self.client.close()
