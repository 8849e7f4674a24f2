"""Subscription tiers, generator features, and their monthly quotas.

Every tier has a limit for every feature. A limit of 0 means the tier is not
entitled to the feature at all.

Enforcement philosophy:
- No subscription row → free
- Unknown or malformed tier → free (fail-closed)
- Unknown feature → limit 0, never unlimited
"""

from enum import Enum
from typing import Any

from creatorgate.common.exceptions import UnknownFeatureError
from creatorgate.common.logging import get_logger

logger = get_logger("catalog")


class Tier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    CREATOR = "creator"

    @classmethod
    def parse(cls, value: Any) -> "Tier":
        """Coerce a stored or user-supplied tier to a Tier, failing closed to FREE."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        if value:
            logger.warning("Unknown tier %r treated as free", value)
        return cls.FREE


class FeatureKey(str, Enum):
    TITLES = "titles"
    DESCRIPTIONS = "descriptions"
    HASHTAGS = "hashtags"
    IDEAS = "ideas"
    SCRIPTS = "scripts"
    TWEETS = "tweets"
    YOUTUBE_POSTS = "youtubePosts"
    REDDIT_POSTS = "redditPosts"
    LINKEDIN_POSTS = "linkedinPosts"

    @classmethod
    def parse(cls, value: Any) -> "FeatureKey":
        """Resolve a feature name; unlike tiers, an unknown feature is an error."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownFeatureError(f"Unknown feature: {value!r}") from None

    @property
    def label(self) -> str:
        return FEATURE_LABELS[self]


FEATURE_LABELS = {
    FeatureKey.TITLES: "Title Generator",
    FeatureKey.DESCRIPTIONS: "Description Generator",
    FeatureKey.HASHTAGS: "Hashtag Generator",
    FeatureKey.IDEAS: "Video Ideas Generator",
    FeatureKey.SCRIPTS: "Video Script Generator",
    FeatureKey.TWEETS: "Tweet Generator",
    FeatureKey.YOUTUBE_POSTS: "YouTube Community Post Generator",
    FeatureKey.REDDIT_POSTS: "Reddit Post Generator",
    FeatureKey.LINKEDIN_POSTS: "LinkedIn Post Generator",
}

# Cheapest first; upgrade suggestions walk this order.
TIER_ORDER = (Tier.FREE, Tier.BASIC, Tier.PRO, Tier.CREATOR)

# ── Monthly limits per tier ──
QUOTA_TABLE: dict[Tier, dict[FeatureKey, int]] = {
    Tier.FREE: {
        FeatureKey.TITLES: 1,
        FeatureKey.DESCRIPTIONS: 1,
        FeatureKey.HASHTAGS: 1,
        FeatureKey.IDEAS: 1,
        FeatureKey.SCRIPTS: 0,
        FeatureKey.TWEETS: 0,
        FeatureKey.YOUTUBE_POSTS: 1,
        FeatureKey.REDDIT_POSTS: 1,
        FeatureKey.LINKEDIN_POSTS: 0,
    },
    Tier.BASIC: {
        FeatureKey.TITLES: 30,
        FeatureKey.DESCRIPTIONS: 30,
        FeatureKey.HASHTAGS: 30,
        FeatureKey.IDEAS: 10,
        FeatureKey.SCRIPTS: 5,
        FeatureKey.TWEETS: 25,
        FeatureKey.YOUTUBE_POSTS: 25,
        FeatureKey.REDDIT_POSTS: 25,
        FeatureKey.LINKEDIN_POSTS: 25,
    },
    Tier.PRO: {
        FeatureKey.TITLES: 2000,
        FeatureKey.DESCRIPTIONS: 2000,
        FeatureKey.HASHTAGS: 2000,
        FeatureKey.IDEAS: 500,
        FeatureKey.SCRIPTS: 200,
        FeatureKey.TWEETS: 1000,
        FeatureKey.YOUTUBE_POSTS: 1000,
        FeatureKey.REDDIT_POSTS: 1000,
        FeatureKey.LINKEDIN_POSTS: 1000,
    },
    Tier.CREATOR: {
        FeatureKey.TITLES: 5000,
        FeatureKey.DESCRIPTIONS: 5000,
        FeatureKey.HASHTAGS: 5000,
        FeatureKey.IDEAS: 1500,
        FeatureKey.SCRIPTS: 600,
        FeatureKey.TWEETS: 3000,
        FeatureKey.YOUTUBE_POSTS: 3000,
        FeatureKey.REDDIT_POSTS: 3000,
        FeatureKey.LINKEDIN_POSTS: 3000,
    },
}


def limit_for(tier: Any, feature: Any) -> int:
    """Monthly limit for a tier/feature pair.

    Total: unknown tiers resolve to the free row, unknown features to 0.
    """
    row = QUOTA_TABLE.get(Tier.parse(tier), QUOTA_TABLE[Tier.FREE])
    try:
        key = FeatureKey(feature)
    except ValueError:
        return 0
    return row.get(key, 0)


def is_entitled(tier: Any, feature: Any) -> bool:
    return limit_for(tier, feature) > 0


def tier_limits(tier: Any) -> dict[FeatureKey, int]:
    """Full limit row for a tier, with an entry for every feature."""
    return {feature: limit_for(tier, feature) for feature in FeatureKey}


def quota_table() -> dict[Tier, dict[FeatureKey, int]]:
    return {tier: tier_limits(tier) for tier in TIER_ORDER}


def upgrade_targets(feature: Any) -> list[Tier]:
    """Tiers that entitle a feature, cheapest first."""
    return [tier for tier in TIER_ORDER if limit_for(tier, feature) > 0]
