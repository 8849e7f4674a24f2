"""Guarded generation: gate check, generate, then record usage."""

from dataclasses import dataclass
from typing import Any, Optional

from creatorgate.catalog.tiers import FeatureKey
from creatorgate.common.logging import get_logger
from creatorgate.common.security import CurrentUser
from creatorgate.usage.ledger import IncrementOutcome

logger = get_logger("generation.guard")


@dataclass
class GenerationResult:
    feature: FeatureKey
    content: str
    outcome: IncrementOutcome
    remaining: Optional[int] = None

    @property
    def accounting_error(self) -> bool:
        """Content was delivered but the usage write did not persist."""
        return self.outcome is IncrementOutcome.FAILED

    @property
    def overage(self) -> bool:
        """Content was delivered after a concurrent request used the last unit."""
        return self.outcome is IncrementOutcome.DENIED


class GuardedGenerator:
    """Runs one generation request under the entitlement gate.

    Usage is recorded only after the generation API returned content.
    Generation errors propagate untouched and record nothing.
    """

    def __init__(self, gate, ledger, client):
        self.gate = gate
        self.ledger = ledger
        self.client = client

    async def run(self, user: Optional[CurrentUser], feature: Any, prompt: str) -> GenerationResult:
        decision = await self.gate.require(user, feature)
        feature = decision.feature

        content = await self.client.generate(feature, prompt)

        outcome = await self.ledger.try_increment(user.id, feature, decision.tier)
        remaining = None
        if outcome is IncrementOutcome.APPLIED:
            remaining = max(0, decision.remaining - 1)
        elif outcome is IncrementOutcome.FAILED:
            logger.error(
                "Accounting discrepancy: generation delivered but usage not recorded",
                extra={"user_id": user.id, "feature": feature.value},
            )
        else:
            remaining = 0
            logger.warning(
                "Generation delivered over quota after concurrent use",
                extra={"user_id": user.id, "feature": feature.value},
            )

        return GenerationResult(
            feature=feature, content=content, outcome=outcome, remaining=remaining,
        )
