"""Tests for the generation client and the guarded generator."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from creatorgate.catalog.tiers import FeatureKey, Tier
from creatorgate.common.config import CreatorgateSettings
from creatorgate.common.exceptions import (
    GenerationError,
    NotAuthenticatedError,
    QuotaExhaustedError,
)
from creatorgate.common.security import CurrentUser
from creatorgate.entitlements.gate import GateDecision, GateState
from creatorgate.generation.client import GenerationClient, build_prompt, extract_text
from creatorgate.generation.guard import GuardedGenerator
from creatorgate.usage.ledger import IncrementOutcome

USER = CurrentUser(id="user-1")


def make_settings(**overrides) -> CreatorgateSettings:
    defaults = {
        "db_url": "sqlite+aiosqlite://",
        "generation_api_url": "https://gen.test/v1beta",
        "generation_api_key": "gen-key",
    }
    defaults.update(overrides)
    return CreatorgateSettings(**defaults)


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_client(handler, **overrides) -> GenerationClient:
    settings = make_settings(**overrides)
    http = httpx.AsyncClient(
        base_url=settings.generation_api_url,
        transport=httpx.MockTransport(handler),
    )
    return GenerationClient(settings, http=http)


class TestPromptHelpers:
    def test_build_prompt_prefixes_instruction(self):
        assert build_prompt(FeatureKey.TWEETS, "  sourdough  ") == "Write tweets about: sourdough"

    def test_extract_text_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        assert extract_text(data) == "ab"

    def test_extract_text_empty(self):
        assert extract_text({}) == ""
        assert extract_text({"candidates": [{}]}) == ""

    def test_extract_text_unexpected_shape(self):
        for body in ([{"text": "x"}], {"candidates": ["text"]}, {"candidates": [{"content": "x"}]}):
            with pytest.raises(GenerationError):
                extract_text(body)


class TestGenerationClient:
    async def test_generate_posts_prompt(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_body("Ten titles"))

        client = make_client(handler)
        assert await client.generate("titles", "baking bread") == "Ten titles"
        assert ":generateContent" in seen["url"]
        assert "key=gen-key" in seen["url"]
        assert seen["body"]["contents"][0]["parts"][0]["text"].endswith("baking bread")
        await client.aclose()

    async def test_missing_key_raises(self):
        client = make_client(lambda r: httpx.Response(200), generation_api_key="")
        with pytest.raises(GenerationError):
            await client.generate("titles", "x")

    async def test_error_status_raises(self):
        client = make_client(lambda r: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(GenerationError, match="500"):
            await client.generate("titles", "x")

    async def test_empty_answer_raises(self):
        client = make_client(lambda r: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(GenerationError):
            await client.generate("titles", "x")

    async def test_invalid_json_raises(self):
        client = make_client(lambda r: httpx.Response(200, content=b"not json"))
        with pytest.raises(GenerationError):
            await client.generate("titles", "x")

    async def test_unexpected_json_shape_raises(self):
        client = make_client(lambda r: httpx.Response(200, json=[{"text": "x"}]))
        with pytest.raises(GenerationError, match="unexpected"):
            await client.generate("titles", "x")

    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(GenerationError, match="timed out"):
            await client.generate("titles", "x")

    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(GenerationError):
            await client.generate("titles", "x")


def allowed(feature=FeatureKey.TITLES, remaining=5) -> GateDecision:
    return GateDecision(
        state=GateState.ALLOWED, feature=feature, tier=Tier.BASIC,
        limit=30, remaining=remaining,
    )


def make_generator(outcome=IncrementOutcome.APPLIED, content="generated"):
    gate = MagicMock()
    gate.require = AsyncMock(return_value=allowed())
    ledger = MagicMock()
    ledger.try_increment = AsyncMock(return_value=outcome)
    client = MagicMock()
    client.generate = AsyncMock(return_value=content)
    return GuardedGenerator(gate, ledger, client), gate, ledger, client


class TestGuardedGenerator:
    async def test_success_records_usage(self):
        generator, _, ledger, _ = make_generator()
        result = await generator.run(USER, "titles", "bread")
        assert result.content == "generated"
        assert result.outcome is IncrementOutcome.APPLIED
        assert result.remaining == 4
        assert result.accounting_error is False
        ledger.try_increment.assert_awaited_once_with("user-1", FeatureKey.TITLES, Tier.BASIC)

    async def test_denied_by_gate_never_generates(self):
        generator, gate, ledger, client = make_generator()
        gate.require = AsyncMock(side_effect=QuotaExhaustedError())
        with pytest.raises(QuotaExhaustedError):
            await generator.run(USER, "titles", "bread")
        client.generate.assert_not_called()
        ledger.try_increment.assert_not_called()

    async def test_no_user_never_generates(self):
        generator, gate, _, client = make_generator()
        gate.require = AsyncMock(side_effect=NotAuthenticatedError())
        with pytest.raises(NotAuthenticatedError):
            await generator.run(None, "titles", "bread")
        client.generate.assert_not_called()

    async def test_generation_failure_records_nothing(self):
        generator, _, ledger, client = make_generator()
        client.generate = AsyncMock(side_effect=GenerationError())
        with pytest.raises(GenerationError):
            await generator.run(USER, "titles", "bread")
        ledger.try_increment.assert_not_called()

    async def test_failed_write_still_delivers(self):
        generator, _, _, _ = make_generator(outcome=IncrementOutcome.FAILED)
        result = await generator.run(USER, "titles", "bread")
        assert result.content == "generated"
        assert result.accounting_error is True
        assert result.remaining is None

    async def test_concurrent_overage_flagged(self):
        generator, _, _, _ = make_generator(outcome=IncrementOutcome.DENIED)
        result = await generator.run(USER, "titles", "bread")
        assert result.overage is True
        assert result.remaining == 0
