"""Dependency injection singletons for Creatorgate."""

from creatorgate.billing.service import BillingService
from creatorgate.common.config import get_settings
from creatorgate.common.database import DatabaseManager
from creatorgate.entitlements.gate import EntitlementGate
from creatorgate.generation.client import GenerationClient
from creatorgate.generation.guard import GuardedGenerator
from creatorgate.subscriptions.service import SubscriptionService
from creatorgate.usage.ledger import UsageLedger
from creatorgate.usage.store import UsageStore

_db: DatabaseManager | None = None
_subscriptions: SubscriptionService | None = None
_ledger: UsageLedger | None = None
_gate: EntitlementGate | None = None
_generation_client: GenerationClient | None = None
_generator: GuardedGenerator | None = None
_billing: BillingService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_subscription_service() -> SubscriptionService:
    global _subscriptions
    if _subscriptions is None:
        _subscriptions = SubscriptionService(get_db())
    return _subscriptions


def get_usage_ledger() -> UsageLedger:
    global _ledger
    if _ledger is None:
        _ledger = UsageLedger(
            get_settings(),
            UsageStore(get_db()),
            subscriptions=get_subscription_service(),
        )
    return _ledger


def get_entitlement_gate() -> EntitlementGate:
    global _gate
    if _gate is None:
        _gate = EntitlementGate(
            get_settings(), get_usage_ledger(), get_subscription_service(),
        )
    return _gate


def get_generation_client() -> GenerationClient:
    global _generation_client
    if _generation_client is None:
        _generation_client = GenerationClient(get_settings())
    return _generation_client


def set_generation_client(client) -> None:
    """Swap the generation client (tests, alternative providers)."""
    global _generation_client, _generator
    _generation_client = client
    _generator = None


def get_guarded_generator() -> GuardedGenerator:
    global _generator
    if _generator is None:
        _generator = GuardedGenerator(
            get_entitlement_gate(), get_usage_ledger(), get_generation_client(),
        )
    return _generator


def get_billing_service() -> BillingService:
    global _billing
    if _billing is None:
        _billing = BillingService(
            get_settings(), get_subscription_service(), get_usage_ledger(),
        )
    return _billing


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _subscriptions, _ledger, _gate, _generation_client, _generator, _billing
    _db = None
    _subscriptions = None
    _ledger = None
    _gate = None
    _generation_client = None
    _generator = None
    _billing = None
