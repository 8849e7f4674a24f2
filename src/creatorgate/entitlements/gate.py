"""Entitlement gate — may this user invoke this feature right now?

The gate combines the tier catalog with the usage ledger and turns the
answer into a decision a screen can act on: render, or redirect with a
reason and exactly one next action.

    UNCHECKED → CHECKING → ALLOWED
                         → DENIED_NO_AUTH          (redirect: sign-in)
                         → DENIED_NO_ENTITLEMENT   (redirect: upgrade)
                         → DENIED_QUOTA_EXHAUSTED  (redirect: upgrade)

An unreadable ledger or subscription yields DENIED_QUOTA_EXHAUSTED with
``ledger_error`` set; access is never granted while usage is unknown.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from creatorgate.catalog.tiers import FeatureKey, Tier, limit_for, upgrade_targets
from creatorgate.common.config import CreatorgateSettings
from creatorgate.common.exceptions import (
    LedgerReadError,
    NotAuthenticatedError,
    NotEntitledError,
    QuotaExhaustedError,
)
from creatorgate.common.logging import get_logger
from creatorgate.common.security import CurrentUser

logger = get_logger("entitlements.gate")


class GateState(str, Enum):
    UNCHECKED = "unchecked"
    CHECKING = "checking"
    ALLOWED = "allowed"
    DENIED_NO_AUTH = "denied_no_auth"
    DENIED_NO_ENTITLEMENT = "denied_no_entitlement"
    DENIED_QUOTA_EXHAUSTED = "denied_quota_exhausted"


TERMINAL_STATES = frozenset({
    GateState.ALLOWED,
    GateState.DENIED_NO_AUTH,
    GateState.DENIED_NO_ENTITLEMENT,
    GateState.DENIED_QUOTA_EXHAUSTED,
})


@dataclass
class GateDecision:
    state: GateState
    feature: FeatureKey
    tier: Optional[Tier] = None
    limit: int = 0
    remaining: int = 0
    redirect: Optional[str] = None
    redirect_url: Optional[str] = None
    reason: str = ""
    message: str = ""
    action: Optional[str] = None
    ledger_error: bool = False

    @property
    def allowed(self) -> bool:
        return self.state is GateState.ALLOWED


def _tier_list(tiers: list[Tier]) -> str:
    if not tiers:
        return "no current plan"
    return f"the {tiers[0].value} plan and up"


class EntitlementGate:
    """Stateless decision function over catalog + ledger + subscriptions."""

    def __init__(self, settings: CreatorgateSettings, ledger, subscriptions):
        self.settings = settings
        self.ledger = ledger
        self.subscriptions = subscriptions

    def _deny_no_auth(self, feature: FeatureKey) -> GateDecision:
        return GateDecision(
            state=GateState.DENIED_NO_AUTH,
            feature=feature,
            redirect="sign-in",
            redirect_url=self.settings.sign_in_url,
            reason="NOT_AUTHENTICATED",
            message=f"Sign in to use the {feature.label}.",
            action="Sign in",
        )

    def _deny_no_entitlement(self, feature: FeatureKey, tier: Tier) -> GateDecision:
        return GateDecision(
            state=GateState.DENIED_NO_ENTITLEMENT,
            feature=feature,
            tier=tier,
            redirect="upgrade",
            redirect_url=self.settings.upgrade_url,
            reason="NOT_ENTITLED",
            message=(
                f"The {feature.label} is not included in the {tier.value} plan. "
                f"Upgrade to unlock it (available on {_tier_list(upgrade_targets(feature))})."
            ),
            action="Upgrade",
        )

    def _deny_exhausted(
        self, feature: FeatureKey, tier: Optional[Tier], limit: int, ledger_error: bool = False,
    ) -> GateDecision:
        if ledger_error:
            message = (
                "We couldn't confirm your remaining usage right now. "
                "Please try again in a moment."
            )
            reason = "LEDGER_READ_FAILED"
        else:
            message = (
                f"You've used this month's {feature.label} allowance ({limit}). "
                "Upgrade for a higher limit."
            )
            reason = "QUOTA_EXHAUSTED"
        return GateDecision(
            state=GateState.DENIED_QUOTA_EXHAUSTED,
            feature=feature,
            tier=tier,
            limit=limit,
            redirect="upgrade",
            redirect_url=self.settings.upgrade_url,
            reason=reason,
            message=message,
            action="Upgrade",
            ledger_error=ledger_error,
        )

    async def check(self, user: Optional[CurrentUser], feature: Any) -> GateDecision:
        feature = FeatureKey.parse(feature)
        if user is None:
            return self._deny_no_auth(feature)

        try:
            tier = await self.subscriptions.tier_for(user.id)
        except SQLAlchemyError:
            logger.exception(
                "Subscription lookup failed; denying",
                extra={"user_id": user.id, "feature": feature.value},
            )
            return self._deny_exhausted(feature, None, 0, ledger_error=True)

        limit = limit_for(tier, feature)
        if limit == 0:
            return self._deny_no_entitlement(feature, tier)

        try:
            remaining = await self.ledger.remaining(user.id, feature, tier)
        except LedgerReadError:
            logger.error(
                "Ledger unreadable; denying",
                extra={"user_id": user.id, "feature": feature.value},
            )
            return self._deny_exhausted(feature, tier, limit, ledger_error=True)

        if remaining <= 0:
            return self._deny_exhausted(feature, tier, limit)

        return GateDecision(
            state=GateState.ALLOWED,
            feature=feature,
            tier=tier,
            limit=limit,
            remaining=remaining,
        )

    async def require(self, user: Optional[CurrentUser], feature: Any) -> GateDecision:
        """Like check(), but raises the matching error for any denial."""
        decision = await self.check(user, feature)
        if decision.allowed:
            return decision
        if decision.state is GateState.DENIED_NO_AUTH:
            raise NotAuthenticatedError(decision.message)
        if decision.state is GateState.DENIED_NO_ENTITLEMENT:
            raise NotEntitledError(decision.message)
        if decision.ledger_error:
            raise LedgerReadError(decision.message)
        raise QuotaExhaustedError(decision.message)


class GateSession:
    """Walks the gate state machine for one screen.

    Call ``enter()`` on every navigation into the screen; the decision is
    recomputed each time, never reused.
    """

    def __init__(self, gate: EntitlementGate, feature: Any):
        self.gate = gate
        self.feature = FeatureKey.parse(feature)
        self.state = GateState.UNCHECKED
        self.decision: Optional[GateDecision] = None

    async def enter(self, user: Optional[CurrentUser]) -> GateDecision:
        self.state = GateState.CHECKING
        try:
            decision = await self.gate.check(user, self.feature)
        except Exception:
            self.state = GateState.UNCHECKED
            raise
        self.decision = decision
        self.state = decision.state
        return decision

    @property
    def settled(self) -> bool:
        return self.state in TERMINAL_STATES
