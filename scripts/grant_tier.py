#!/usr/bin/env python3
"""Manually set a user's subscription tier and start a fresh quota period.

Usage:
    python scripts/grant_tier.py USER_ID pro
    python scripts/grant_tier.py USER_ID creator --days 90
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from creatorgate.catalog.tiers import Tier
from creatorgate.common.config import get_settings
from creatorgate.common.database import DatabaseManager
from creatorgate.common.models import utcnow
from creatorgate.subscriptions.service import SubscriptionService
from creatorgate.usage.ledger import UsageLedger
from creatorgate.usage.store import UsageStore


async def grant_tier(user_id: str, tier: Tier, days: int) -> None:
    settings = get_settings()
    db = DatabaseManager(settings)
    await db.init()
    await db.create_all()

    subscriptions = SubscriptionService(db)
    ledger = UsageLedger(settings, UsageStore(db), subscriptions=subscriptions)
    try:
        await ledger.reset_all_for_user(user_id)
        await subscriptions.apply_tier(
            user_id, tier, expires_at=utcnow() + timedelta(days=days),
        )
    finally:
        await db.close()
    print(f"  [granted] {user_id} → {tier.value} for {days} days")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("user_id")
    parser.add_argument("tier", choices=[t.value for t in Tier])
    parser.add_argument("--days", type=int, default=30)
    args = parser.parse_args()
    asyncio.run(grant_tier(args.user_id, Tier(args.tier), args.days))


if __name__ == "__main__":
    main()
