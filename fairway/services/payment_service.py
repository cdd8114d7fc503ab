"""
Payment collaborator — talks to the payments API of the web platform.

The registration workflow only depends on the PaymentGateway protocol;
HttpPaymentGateway is the production implementation. Network and API
failures are returned as unsuccessful results, never raised, so the
workflow can always revert a registration out of ``payment_processing``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import httpx

from fairway.config import settings
from fairway.models.models import PaymentMethod

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    success:           bool
    payment_intent_id: Optional[str] = None
    error:             Optional[str] = None
    redirect_url:      Optional[str] = None


@dataclass
class RefundResult:
    success:         bool
    refund_id:       Optional[str] = None
    amount_refunded: Optional[int] = None
    error:           Optional[str] = None


class PaymentGateway(Protocol):
    async def create_payment_intent(
        self,
        amount: int,
        customer_email: str,
        metadata: Optional[Dict[str, str]] = None,
        method: str = PaymentMethod.STRIPE,
    ) -> PaymentResult: ...

    async def process_refund(self, payment_intent_id: str, reason: str) -> RefundResult: ...


class HttpPaymentGateway:
    """
    JSON-over-HTTP client for the platform's payment endpoints.

    Parameters
    ----------
    base_url  : root of the payments API (defaults to PAYMENT_API_URL)
    currency  : ISO currency code sent with every charge
    timeout   : per-request timeout in seconds
    transport : optional httpx transport (tests inject a MockTransport)
    """

    CREATE_PATHS = {
        PaymentMethod.STRIPE:        "/api/payments/create-intent",
        PaymentMethod.PAYPAL:        "/api/payments/create-paypal-order",
        PaymentMethod.BANK_TRANSFER: "/api/payments/bank-transfer",
    }
    REFUND_PATH = "/api/payments/refund"

    def __init__(
        self,
        base_url: Optional[str] = None,
        currency: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url  = (base_url or settings.PAYMENT_API_URL).rstrip("/")
        self._currency  = currency or settings.PAYMENT_CURRENCY
        self._timeout   = timeout if timeout is not None else settings.PAYMENT_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def create_payment_intent(
        self,
        amount: int,
        customer_email: str,
        metadata: Optional[Dict[str, str]] = None,
        method: str = PaymentMethod.STRIPE,
    ) -> PaymentResult:
        path = self.CREATE_PATHS.get(method)
        if path is None:
            return PaymentResult(success=False, error=f"Unsupported payment method: {method}")

        payload = {
            "amount":         amount,
            "currency":       self._currency,
            "customer_email": customer_email,
            "metadata":       metadata or {},
            "payment_method": method,
        }
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Payment request to %s failed: %s", path, e)
            return PaymentResult(success=False, error="Network error while creating payment")

        if not result.get("success"):
            return PaymentResult(
                success=False,
                error=result.get("error") or "Failed to create payment",
            )

        # PayPal answers with an order id + approval link instead of an intent
        return PaymentResult(
            success=True,
            payment_intent_id=result.get("payment_intent_id") or result.get("order_id"),
            redirect_url=result.get("approval_url"),
        )

    async def process_refund(self, payment_intent_id: str, reason: str) -> RefundResult:
        payload = {"payment_intent_id": payment_intent_id, "reason": reason}
        try:
            async with self._client() as client:
                response = await client.post(self.REFUND_PATH, json=payload)
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Refund request for %s failed: %s", payment_intent_id, e)
            return RefundResult(success=False, error="Network error while processing refund")

        return RefundResult(
            success=bool(result.get("success")),
            refund_id=result.get("refund_id"),
            amount_refunded=result.get("amount_refunded"),
            error=result.get("error"),
        )
