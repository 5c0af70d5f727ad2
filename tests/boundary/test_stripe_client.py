"""
Test suite for StripeConnectClient.

Patches the stripe SDK resources to verify connected-account scoping,
error translation, read retries and webhook verification.

System role: Verification of the payment provider boundary
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import stripe

from community_backend.boundary.payments.stripe_client import (
    StripeConnectClient,
    subscription_client_secret,
    subscription_period_end,
)
from community_backend.core.exceptions import PaymentProviderError, WebhookVerificationError

MODULE = "community_backend.boundary.payments.stripe_client.stripe"


@pytest.fixture
def client() -> StripeConnectClient:
    return StripeConnectClient(
        api_key="sk_test_platform",
        webhook_secret="whsec_test",
        api_version="2024-06-20",
        read_retry_attempts=2,
    )


class TestSubscriptionCalls:
    """Test suite for subscription operations."""

    @pytest.mark.asyncio
    async def test_create_subscription_targets_connected_account(self, client) -> None:
        # Arrange
        with patch(f"{MODULE}.Subscription.create", MagicMock(return_value={"id": "sub_1"})) as create:
            # Act
            result = await client.create_subscription(
                "acct_1", "cus_1", "price_1", 6.0, {"user_id": "u1"}, idempotency_key="key-1"
            )

        # Assert
        assert result == {"id": "sub_1"}
        kwargs = create.call_args.kwargs
        assert kwargs["stripe_account"] == "acct_1"
        assert kwargs["api_key"] == "sk_test_platform"
        assert kwargs["stripe_version"] == "2024-06-20"
        assert kwargs["application_fee_percent"] == 6.0
        assert kwargs["payment_behavior"] == "default_incomplete"
        assert kwargs["idempotency_key"] == "key-1"
        assert kwargs["expand"] == ["latest_invoice.payment_intent"]

    @pytest.mark.asyncio
    async def test_current_api_version_expands_confirmation_secret(self) -> None:
        client = StripeConnectClient(api_key="sk_test_platform")

        with patch(f"{MODULE}.Subscription.create", MagicMock(return_value={"id": "sub_1"})) as create:
            await client.create_subscription("acct_1", "cus_1", "price_1", 8.0, {})

        assert create.call_args.kwargs["expand"] == ["latest_invoice.confirmation_secret"]
        assert "stripe_version" not in create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_set_cancel_at_period_end(self, client) -> None:
        with patch(f"{MODULE}.Subscription.modify", MagicMock(return_value={"id": "sub_1"})) as modify:
            await client.set_cancel_at_period_end("acct_1", "sub_1", cancel=True)

        assert modify.call_args.args == ("sub_1",)
        assert modify.call_args.kwargs["cancel_at_period_end"] is True

    @pytest.mark.asyncio
    async def test_stripe_error_is_translated(self, client) -> None:
        error = stripe.InvalidRequestError("No such subscription", "id")

        with patch(f"{MODULE}.Subscription.modify", MagicMock(side_effect=error)):
            with pytest.raises(PaymentProviderError) as exc_info:
                await client.update_subscription("acct_1", "sub_missing", application_fee_percent=4.0)

        assert exc_info.value.details["operation"] == "update_subscription"


class TestReadRetries:
    """Test suite for retried reads."""

    @pytest.mark.asyncio
    async def test_connection_error_is_retried(self, client) -> None:
        retrieve = MagicMock(side_effect=[stripe.APIConnectionError("reset"), {"id": "in_1", "status": "draft"}])

        with patch(f"{MODULE}.Invoice.retrieve", retrieve):
            invoice = await client.retrieve_invoice("acct_1", "in_1")

        assert invoice["status"] == "draft"
        assert retrieve.call_count == 2

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, client) -> None:
        retrieve = MagicMock(side_effect=stripe.APIConnectionError("reset"))

        with patch(f"{MODULE}.Invoice.retrieve", retrieve):
            with pytest.raises(PaymentProviderError):
                await client.retrieve_invoice("acct_1", "in_1")

        assert retrieve.call_count == 2


class TestWebhookVerification:
    """Test suite for construct_event()."""

    def test_missing_signature(self, client) -> None:
        with pytest.raises(WebhookVerificationError):
            client.construct_event(b"{}", None)

    def test_missing_secret(self) -> None:
        with pytest.raises(WebhookVerificationError):
            StripeConnectClient(api_key="sk").construct_event(b"{}", "t=1,v1=abc")

    def test_bad_signature(self, client) -> None:
        error = stripe.SignatureVerificationError("bad signature", "t=1,v1=abc")

        with patch(f"{MODULE}.Webhook.construct_event", MagicMock(side_effect=error)):
            with pytest.raises(WebhookVerificationError, match="Invalid signature"):
                client.construct_event(b"{}", "t=1,v1=abc")


class TestSubscriptionHelpers:
    """Test suite for subscription payload helpers."""

    def test_period_end_from_subscription(self) -> None:
        assert subscription_period_end({"current_period_end": 0}) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_period_end_from_items(self) -> None:
        subscription = {"items": {"data": [{"current_period_end": 86400}]}}

        assert subscription_period_end(subscription) == datetime(1970, 1, 2, tzinfo=timezone.utc)

    def test_period_end_missing(self) -> None:
        assert subscription_period_end({"id": "sub_1"}) is None

    def test_client_secret(self) -> None:
        expanded = {"latest_invoice": {"payment_intent": {"client_secret": "pi_secret"}}}

        assert subscription_client_secret(expanded) == "pi_secret"
        assert subscription_client_secret({"latest_invoice": "in_1"}) is None

    def test_client_secret_from_confirmation_secret(self) -> None:
        expanded = {"latest_invoice": {"id": "in_1", "confirmation_secret": {"client_secret": "cs_secret"}}}

        assert subscription_client_secret(expanded) == "cs_secret"


class TestStripeObjectResponses:
    """Test suite for responses returned as SDK resource objects."""

    @pytest.mark.asyncio
    async def test_subscription_is_returned_as_plain_data(self, client) -> None:
        # Arrange
        subscription = stripe.Subscription.construct_from(
            {
                "id": "sub_1",
                "object": "subscription",
                "items": {"object": "list", "data": [{"id": "si_1", "current_period_end": 86400}]},
                "latest_invoice": {
                    "id": "in_1",
                    "object": "invoice",
                    "confirmation_secret": {"client_secret": "cs_secret", "type": "payment_intent"},
                },
            },
            "sk_test_platform",
        )

        # Act
        with patch(f"{MODULE}.Subscription.create", MagicMock(return_value=subscription)):
            result = await client.create_subscription("acct_1", "cus_1", "price_1", 8.0, {})

        # Assert
        assert isinstance(result, dict)
        assert isinstance(result["latest_invoice"], dict)
        assert subscription_client_secret(result) == "cs_secret"
        assert subscription_period_end(result) == datetime(1970, 1, 2, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_retrieved_invoice_is_returned_as_plain_data(self, client) -> None:
        invoice = stripe.Invoice.construct_from({"id": "in_1", "status": "draft"}, "sk_test_platform")

        with patch(f"{MODULE}.Invoice.retrieve", MagicMock(return_value=invoice)):
            result = await client.retrieve_invoice("acct_1", "in_1")

        assert result == {"id": "in_1", "status": "draft"}
