"""Async client for the generative-language API."""

from typing import Any

import httpx

from creatorgate.catalog.tiers import FeatureKey
from creatorgate.common.config import CreatorgateSettings
from creatorgate.common.exceptions import GenerationError
from creatorgate.common.logging import get_logger

logger = get_logger("generation.client")

FEATURE_INSTRUCTIONS = {
    FeatureKey.TITLES: "Suggest video titles for",
    FeatureKey.DESCRIPTIONS: "Write a video description for",
    FeatureKey.HASHTAGS: "Suggest hashtags for",
    FeatureKey.IDEAS: "Suggest video ideas about",
    FeatureKey.SCRIPTS: "Write a video script about",
    FeatureKey.TWEETS: "Write tweets about",
    FeatureKey.YOUTUBE_POSTS: "Write a YouTube community post about",
    FeatureKey.REDDIT_POSTS: "Write a Reddit post about",
    FeatureKey.LINKEDIN_POSTS: "Write a LinkedIn post about",
}


def build_prompt(feature: FeatureKey, prompt: str) -> str:
    return f"{FEATURE_INSTRUCTIONS[feature]}: {prompt.strip()}"


def extract_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate.

    Raises GenerationError when the body is JSON but not a generateContent answer.
    """
    try:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text") or "" for part in parts).strip()
    except (AttributeError, TypeError, KeyError, IndexError) as exc:
        raise GenerationError("Generation API returned an unexpected response") from exc


class GenerationClient:
    """Thin wrapper over the ``generateContent`` endpoint.

    Every failure mode (transport error, timeout, non-2xx, empty answer)
    surfaces as GenerationError so callers never record usage for it.
    """

    def __init__(self, settings: CreatorgateSettings, http: httpx.AsyncClient | None = None):
        self.settings = settings
        self._http = http or httpx.AsyncClient(
            base_url=settings.generation_api_url.rstrip("/"),
            timeout=settings.generation_timeout,
        )

    async def generate(self, feature: Any, prompt: str) -> str:
        feature = FeatureKey.parse(feature)
        if not self.settings.generation_api_key:
            raise GenerationError("Generation API key not configured")

        body = {"contents": [{"parts": [{"text": build_prompt(feature, prompt)}]}]}
        try:
            resp = await self._http.post(
                f"/models/{self.settings.generation_model}:generateContent",
                params={"key": self.settings.generation_api_key},
                json=body,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Generation timed out", extra={"feature": feature.value})
            raise GenerationError("Content generation timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Generation request failed: %s", exc, extra={"feature": feature.value})
            raise GenerationError("Content generation service unreachable") from exc

        if resp.status_code >= 400:
            logger.warning(
                "Generation API returned %s", resp.status_code,
                extra={"feature": feature.value},
            )
            raise GenerationError(f"Content generation failed ({resp.status_code})")

        try:
            text = extract_text(resp.json())
        except ValueError as exc:
            raise GenerationError("Generation API returned invalid JSON") from exc
        if not text:
            raise GenerationError("Generation API returned no content")
        return text

    async def aclose(self) -> None:
        await self._http.aclose()
