"""
Stripe Connect client for membership billing.

Wraps the Stripe calls used by the membership lifecycle. Every call acts
on a community's connected account. The SDK is blocking, so calls run in
a worker thread; reads are retried on connection and rate-limit errors.

Dependencies: stripe, tenacity, community_backend.core.exceptions
System role: Payment provider boundary for subscriptions, invoices and webhooks
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

import stripe
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from community_backend.core.exceptions import PaymentProviderError, WebhookVerificationError

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError)

# First API version exposing Invoice.confirmation_secret; older versions
# only expose the secret through Invoice.payment_intent.
CONFIRMATION_SECRET_API_VERSION = "2025-03-31"


def to_plain(result: Any) -> Any:
    """Recursively convert a Stripe response into plain dicts and lists."""
    if isinstance(result, stripe.StripeObject):
        return result.to_dict(recursive=True)
    return result


def _timestamp_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def subscription_period_end(subscription: Mapping[str, Any]) -> datetime | None:
    """
    End of the subscription's current billing period.

    Newer API versions report the period on the subscription items instead
    of the subscription itself; both shapes are accepted.
    """
    value = subscription.get("current_period_end")
    if value is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            value = items[0].get("current_period_end")
    return _timestamp_to_datetime(value)


def subscription_client_secret(subscription: Mapping[str, Any]) -> str | None:
    """Client secret the browser uses to pay the first invoice, if expanded."""
    invoice = subscription.get("latest_invoice")
    if not invoice or isinstance(invoice, str):
        return None
    confirmation = invoice.get("confirmation_secret")
    if confirmation and not isinstance(confirmation, str):
        return confirmation.get("client_secret")
    payment_intent = invoice.get("payment_intent")
    if payment_intent and not isinstance(payment_intent, str):
        return payment_intent.get("client_secret")
    return None


class StripeConnectClient:
    """Async facade over the Stripe SDK scoped to membership billing."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str = "",
        api_version: str | None = None,
        read_retry_attempts: int = 3,
        max_network_retries: int = 2,
    ) -> None:
        """
        Initialize Stripe client.

        Args:
            api_key: Platform secret key
            webhook_secret: Signing secret for webhook payloads
            api_version: Pinned API version (None for the account default)
            read_retry_attempts: Attempts for retrieve calls
            max_network_retries: SDK-level retries for every request
        """
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._api_version = api_version
        self._read_retry_attempts = max(1, read_retry_attempts)
        stripe.max_network_retries = max_network_retries

    def _request_options(self, account_id: str) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self._api_key, "stripe_account": account_id}
        if self._api_version:
            options["stripe_version"] = self._api_version
        return options

    def _client_secret_expand(self) -> str:
        """Invoice field carrying the first payment's client secret for the pinned version."""
        if self._api_version and self._api_version < CONFIRMATION_SECRET_API_VERSION:
            return "latest_invoice.payment_intent"
        return "latest_invoice.confirmation_secret"

    async def _call(
        self,
        operation: str,
        func: Callable[..., Any],
        account_id: str,
        *args: Any,
        **params: Any,
    ) -> Any:
        """Run a write call off the event loop, translating Stripe errors."""
        try:
            result = await asyncio.to_thread(
                func, *args, **params, **self._request_options(account_id)
            )
        except stripe.StripeError as e:
            logger.error(
                f"Stripe {operation} failed",
                extra={
                    "operation": operation,
                    "stripe_account": account_id,
                    "error_code": getattr(e, "code", None),
                    "error": str(e),
                },
            )
            raise PaymentProviderError(
                f"Stripe {operation} failed: {e.user_message or e}",
                operation=operation,
                details={"code": getattr(e, "code", None)},
            ) from e
        return to_plain(result)

    async def _read(
        self,
        operation: str,
        func: Callable[..., Any],
        account_id: str,
        *args: Any,
        **params: Any,
    ) -> Any:
        """Run a read call with retries on transient failures."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self._read_retry_attempts),
            wait=wait_exponential_jitter(initial=0.5, max=8, jitter=1),
            before_sleep=lambda retry_state: logger.warning(
                f"Stripe {operation} retry {retry_state.attempt_number}/{self._read_retry_attempts}"
            ),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await asyncio.to_thread(
                        func, *args, **params, **self._request_options(account_id)
                    )
        except stripe.StripeError as e:
            raise PaymentProviderError(
                f"Stripe {operation} failed: {e.user_message or e}",
                operation=operation,
                details={"code": getattr(e, "code", None)},
            ) from e
        return to_plain(result)

    # Customers

    async def create_customer(
        self,
        account_id: str,
        email: str,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> Any:
        params: dict[str, Any] = {"email": email, "metadata": metadata}
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        return await self._call("create_customer", stripe.Customer.create, account_id, **params)

    async def delete_customer(self, account_id: str, customer_id: str) -> Any:
        return await self._call("delete_customer", stripe.Customer.delete, account_id, customer_id)

    # Subscriptions

    async def create_subscription(
        self,
        account_id: str,
        customer_id: str,
        price_id: str,
        fee_percentage: float,
        metadata: dict[str, str],
        idempotency_key: str | None = None,
    ) -> Any:
        """
        Create an incomplete subscription whose first invoice the client confirms.

        Args:
            account_id: Connected account
            customer_id: Customer on the connected account
            price_id: Recurring price
            fee_percentage: Platform application fee percent
            metadata: Subscription metadata
            idempotency_key: Key making retries of the same join safe
        """
        params: dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price_id}],
            "application_fee_percent": fee_percentage,
            "payment_behavior": "default_incomplete",
            "payment_settings": {"save_default_payment_method": "on_subscription"},
            "expand": [self._client_secret_expand()],
            "metadata": metadata,
        }
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        return await self._call("create_subscription", stripe.Subscription.create, account_id, **params)

    async def update_subscription(self, account_id: str, subscription_id: str, **params: Any) -> Any:
        return await self._call(
            "update_subscription", stripe.Subscription.modify, account_id, subscription_id, **params
        )

    async def set_cancel_at_period_end(
        self,
        account_id: str,
        subscription_id: str,
        cancel: bool,
    ) -> Any:
        """Schedule (cancel=True) or withdraw (cancel=False) cancellation at period end."""
        return await self.update_subscription(
            account_id, subscription_id, cancel_at_period_end=cancel
        )

    async def cancel_subscription(self, account_id: str, subscription_id: str) -> Any:
        return await self._call(
            "cancel_subscription", stripe.Subscription.cancel, account_id, subscription_id
        )

    # Pre-registration: setup intents and invoices

    async def create_setup_intent(
        self,
        account_id: str,
        customer_id: str,
        metadata: dict[str, str],
    ) -> Any:
        return await self._call(
            "create_setup_intent",
            stripe.SetupIntent.create,
            account_id,
            customer=customer_id,
            payment_method_types=["card"],
            metadata=metadata,
        )

    async def retrieve_setup_intent(self, account_id: str, setup_intent_id: str) -> Any:
        return await self._read(
            "retrieve_setup_intent", stripe.SetupIntent.retrieve, account_id, setup_intent_id
        )

    async def create_invoice(
        self,
        account_id: str,
        customer_id: str,
        payment_method_id: str,
        metadata: dict[str, str],
    ) -> Any:
        return await self._call(
            "create_invoice",
            stripe.Invoice.create,
            account_id,
            customer=customer_id,
            auto_advance=True,
            collection_method="charge_automatically",
            default_payment_method=payment_method_id,
            pending_invoice_items_behavior="exclude",
            metadata=metadata,
        )

    async def add_invoice_item(
        self,
        account_id: str,
        customer_id: str,
        invoice_id: str,
        price_id: str,
        metadata: dict[str, str],
    ) -> Any:
        return await self._call(
            "add_invoice_item",
            stripe.InvoiceItem.create,
            account_id,
            customer=customer_id,
            invoice=invoice_id,
            price=price_id,
            metadata=metadata,
        )

    async def schedule_invoice_finalization(
        self,
        account_id: str,
        invoice_id: str,
        finalize_at: datetime,
    ) -> Any:
        """Let Stripe finalize (and charge) the invoice automatically at finalize_at."""
        return await self._call(
            "schedule_invoice_finalization",
            stripe.Invoice.modify,
            account_id,
            invoice_id,
            auto_advance=True,
            automatically_finalizes_at=int(finalize_at.timestamp()),
        )

    async def retrieve_invoice(self, account_id: str, invoice_id: str) -> Any:
        return await self._read("retrieve_invoice", stripe.Invoice.retrieve, account_id, invoice_id)

    async def finalize_invoice(self, account_id: str, invoice_id: str) -> Any:
        return await self._call(
            "finalize_invoice", stripe.Invoice.finalize_invoice, account_id, invoice_id
        )

    async def void_invoice(self, account_id: str, invoice_id: str) -> Any:
        return await self._call("void_invoice", stripe.Invoice.void_invoice, account_id, invoice_id)

    async def detach_payment_method(self, account_id: str, payment_method_id: str) -> Any:
        return await self._call(
            "detach_payment_method", stripe.PaymentMethod.detach, account_id, payment_method_id
        )

    # Webhooks

    def construct_event(self, payload: bytes, signature: str | None) -> Any:
        """
        Verify a webhook payload and parse it into an Event.

        Raises:
            WebhookVerificationError: Missing secret/signature, bad signature or bad payload
        """
        if not self._webhook_secret:
            raise WebhookVerificationError("Webhook secret is not configured")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError("Invalid signature") from e
        except ValueError as e:
            raise WebhookVerificationError("Invalid payload") from e
