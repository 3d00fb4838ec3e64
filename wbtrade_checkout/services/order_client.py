"""
Order submission clients
"""
import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import ValidationError

from wbtrade_checkout.core.exceptions import OrderSubmissionError
from wbtrade_checkout.core.http_client import RetryingHTTPClient, get_storefront_client
from wbtrade_checkout.schemas.order import OrderConfirmation, OrderSubmission

logger = logging.getLogger(__name__)

CHECKOUT_PATH = "/checkout"

# Order creation is not idempotent: only statuses that mean nothing was written are retried
ORDER_RETRYABLE_STATUS_CODES = (429, 503)


class OrderSubmitter(ABC):
    @abstractmethod
    async def submit(self, submission: OrderSubmission) -> OrderConfirmation:
        """
        Create the order.

        Raises:
            OrderSubmissionError: The order was not accepted
        """
        pass


class HttpOrderSubmitter(OrderSubmitter):
    """Posts order submissions to the storefront checkout endpoint."""

    def __init__(self, client: Optional[RetryingHTTPClient] = None):
        self.client = client or get_storefront_client()
        self.retry_config = dataclasses.replace(
            self.client.retry_config,
            retryable_status_codes=ORDER_RETRYABLE_STATUS_CODES,
        )

    async def submit(self, submission: OrderSubmission) -> OrderConfirmation:
        try:
            response = await self.client.post(
                CHECKOUT_PATH,
                json=submission.to_payload(),
                retry_config=self.retry_config,
            )
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = _error_detail(e.response)
            logger.error(f"Order submission rejected with status {status}: {detail}")
            raise OrderSubmissionError(
                f"Order was rejected: {detail}",
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Order submission failed: {e}")
            raise OrderSubmissionError(f"Order service unreachable: {e}") from e

        try:
            confirmation = OrderConfirmation.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed order confirmation: {e}")
            raise OrderSubmissionError(
                "Order service returned a malformed confirmation",
                status_code=response.status_code,
            ) from e

        logger.info(f"Order {confirmation.order_number} created ({confirmation.order_id})")
        return confirmation

    async def close(self) -> None:
        await self.client.close()


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
