"""Tests for the Stripe webhook helpers and BillingService."""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from creatorgate.billing.schemas import TierChange
from creatorgate.billing.service import BillingService
from creatorgate.billing.stripe_webhook import parse_stripe_event, verify_stripe_signature
from creatorgate.catalog.tiers import FeatureKey, Tier
from creatorgate.common.config import CreatorgateSettings
from creatorgate.common.database import DatabaseManager
from creatorgate.common.exceptions import LedgerWriteError
from creatorgate.subscriptions.service import SubscriptionService
from creatorgate.usage.ledger import UsageLedger
from creatorgate.usage.store import UsageStore

SECRET = "whsec_test"


def make_settings(**overrides) -> CreatorgateSettings:
    defaults = {"db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return CreatorgateSettings(**defaults)


def sign(payload: bytes, timestamp: int = 1700000000, secret: str = SECRET) -> str:
    sig = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"


def checkout_event(**metadata) -> dict:
    return {
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_1",
            "client_reference_id": metadata.pop("client_reference_id", None),
            "payment_status": metadata.pop("payment_status", "paid"),
            "metadata": metadata,
        }},
    }


class TestVerifySignature:
    def test_valid(self):
        payload = b'{"type":"invoice.paid"}'
        assert verify_stripe_signature(payload, sign(payload), SECRET) is True

    def test_wrong_secret(self):
        payload = b"{}"
        assert verify_stripe_signature(payload, sign(payload, secret="other"), SECRET) is False

    def test_tampered_payload(self):
        assert verify_stripe_signature(b'{"a":2}', sign(b'{"a":1}'), SECRET) is False

    def test_missing_header_or_secret(self):
        assert verify_stripe_signature(b"{}", "", SECRET) is False
        assert verify_stripe_signature(b"{}", sign(b"{}"), "") is False

    def test_malformed_header(self):
        assert verify_stripe_signature(b"{}", "garbage", SECRET) is False

    def test_any_of_several_signatures(self):
        payload = b"{}"
        header = sign(payload).replace("v1=", "v1=deadbeef,v1=")
        assert verify_stripe_signature(payload, header, SECRET) is True

    def test_tolerance(self):
        payload = b"{}"
        header = sign(payload, timestamp=1700000000)
        assert verify_stripe_signature(payload, header, SECRET, tolerance=300, now=1700000100) is True
        assert verify_stripe_signature(payload, header, SECRET, tolerance=300, now=1700000400) is False


class TestParseEvent:
    def test_checkout_completed(self):
        change = parse_stripe_event(checkout_event(user_id="u1", tier="pro"))
        assert change.action == "apply"
        assert change.user_id == "u1"
        assert change.tier == "pro"
        assert change.payment_id == "cs_test_1"
        assert change.expires_at is None

    def test_client_reference_id_wins(self):
        change = parse_stripe_event(
            checkout_event(client_reference_id="u2", user_id="u1", tier="basic"),
        )
        assert change.user_id == "u2"

    def test_unpaid_checkout_ignored(self):
        event = checkout_event(user_id="u1", tier="pro", payment_status="unpaid")
        assert parse_stripe_event(event) is None

    def test_free_or_unknown_tier_ignored(self):
        assert parse_stripe_event(checkout_event(user_id="u1", tier="free")) is None
        assert parse_stripe_event(checkout_event(user_id="u1", tier="platinum")) is None

    def test_missing_user_ignored(self):
        assert parse_stripe_event(checkout_event(tier="pro")) is None

    def test_invoice_paid_uses_period_end(self):
        event = {
            "type": "invoice.paid",
            "data": {"object": {
                "id": "in_1",
                "subscription_details": {"metadata": {"user_id": "u1", "tier": "creator"}},
                "lines": {"data": [{"period": {"end": 1775000000}}]},
            }},
        }
        change = parse_stripe_event(event)
        assert change.tier == "creator"
        assert change.payment_id == "in_1"
        assert change.expires_at == datetime.fromtimestamp(1775000000, tz=timezone.utc)

    def test_subscription_deleted_cancels(self):
        event = {
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1", "metadata": {"user_id": "u1"}}},
        }
        change = parse_stripe_event(event)
        assert change.action == "cancel"
        assert change.user_id == "u1"

    def test_unhandled_type(self):
        assert parse_stripe_event({"type": "customer.created", "data": {"object": {}}}) is None


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def subscriptions(db, clock):
    return SubscriptionService(db, clock=clock)


@pytest.fixture
def ledger(db, subscriptions, clock):
    return UsageLedger(make_settings(), UsageStore(db), subscriptions=subscriptions, clock=clock)


@pytest.fixture
def billing(subscriptions, ledger):
    return BillingService(make_settings(), subscriptions, ledger)


class TestBillingService:
    async def test_apply_upgrades_and_resets(self, billing, subscriptions, ledger):
        assert await ledger.increment("u1", FeatureKey.TITLES) is True
        result = await billing.apply(TierChange(user_id="u1", tier="basic", payment_id="cs_1"))
        assert result.success is True
        assert result.usage_reset is True
        assert result.tier == "basic"
        assert await subscriptions.tier_for("u1") is Tier.BASIC
        assert await ledger.get_usage("u1", FeatureKey.TITLES) == 0
        assert await ledger.remaining("u1", FeatureKey.TITLES, Tier.BASIC) == 30

    async def test_default_expiry_is_one_period(self, billing, subscriptions, clock):
        await billing.apply(TierChange(user_id="u1", tier="pro", payment_id="cs_1"))
        sub = await subscriptions.get("u1")
        assert sub.expires_at.replace(tzinfo=timezone.utc) == clock.now + timedelta(days=30)

    async def test_duplicate_event_does_not_reset(self, billing, ledger):
        await billing.apply(TierChange(user_id="u1", tier="basic", payment_id="cs_1"))
        await ledger.increment("u1", FeatureKey.TITLES)
        result = await billing.apply(TierChange(user_id="u1", tier="basic", payment_id="cs_1"))
        assert result.duplicate is True
        assert result.usage_reset is False
        assert await ledger.get_usage("u1", FeatureKey.TITLES) == 1

    async def test_cancel(self, billing, subscriptions):
        await billing.apply(TierChange(user_id="u1", tier="pro", payment_id="cs_1"))
        result = await billing.apply(TierChange(user_id="u1", action="cancel"))
        assert result.success is True
        assert result.action == "cancel"
        assert await subscriptions.tier_for("u1") is Tier.FREE

    async def test_cancel_unknown_user(self, billing):
        result = await billing.apply(TierChange(user_id="ghost", action="cancel"))
        assert result.success is False

    async def test_failed_reset_leaves_event_retryable(self, subscriptions, ledger):
        ledger.reset_all_for_user = AsyncMock(side_effect=LedgerWriteError())
        billing = BillingService(make_settings(), subscriptions, ledger)
        with pytest.raises(LedgerWriteError):
            await billing.apply(TierChange(user_id="u1", tier="pro", payment_id="cs_1"))
        assert await subscriptions.tier_for("u1") is Tier.FREE

        ledger.reset_all_for_user = AsyncMock()
        result = await billing.apply(TierChange(user_id="u1", tier="pro", payment_id="cs_1"))
        assert result.duplicate is False
        assert result.usage_reset is True
