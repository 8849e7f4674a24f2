"""
EntitlementClient SDK — sync client for Creatorgate.

Used by the web back-end and other services to ask whether a user may run a
generator, read their usage, and run gated generations.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx


@dataclass
class ClientDecision:
    """Gate decision returned by the SDK. Anything but ``allowed`` means deny."""

    allowed: bool
    state: str = ""
    feature: str = ""
    tier: Optional[str] = None
    limit: int = 0
    remaining: int = 0
    redirect: Optional[str] = None
    redirect_url: Optional[str] = None
    message: str = ""
    code: str = ""


@dataclass
class ClientFeatureUsage:
    feature: str
    limit: int
    used: int
    remaining: int
    entitled: bool = False
    reset_at: Optional[str] = None


@dataclass
class ClientUsageSummary:
    success: bool
    tier: str = ""
    features: list[ClientFeatureUsage] = field(default_factory=list)
    code: str = ""


@dataclass
class ClientIncrementResult:
    success: bool
    outcome: str = ""
    remaining: Optional[int] = None
    code: str = ""


@dataclass
class ClientGenerationResult:
    success: bool
    content: str = ""
    remaining: Optional[int] = None
    usage_recorded: bool = False
    accounting_error: bool = False
    redirect: Optional[str] = None
    message: str = ""
    code: str = ""


class EntitlementClient:
    """
    Synchronous HTTP client for Creatorgate.

    Reads retry connection failures, timeouts, 429 and 5xx with exponential
    backoff. Usage-recording POSTs retry only failed connects, so one call
    never charges twice. Other 4xx answers are never retried.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8080",
        api_key: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
    ):
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self.user_id = user_id
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
        )

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["X-Creatorgate-Api-Key"] = self.api_key
        if self.user_id:
            headers["X-Creatorgate-User"] = self.user_id
        return headers

    def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Central HTTP method with retry and structured error handling.

        Returns parsed JSON on success, or a dict with ``error`` and ``code``
        on failure (the server's own error body for 4xx answers).

        GETs retry on connection errors, timeouts, 429 and 5xx. POSTs record
        usage, so they retry only when the connection was never established.
        """
        kwargs.setdefault("headers", self._headers())
        idempotent = method == "get"
        last_error = None
        for attempt in range(self.max_retries):
            retries_left = attempt < self.max_retries - 1
            try:
                resp = getattr(self._http, method)(path, **kwargs)
                if resp.status_code >= 500 or resp.status_code == 429:
                    last_error = f"HTTP {resp.status_code}"
                    if idempotent and retries_left:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                    return {
                        "error": f"Server error: {resp.status_code}",
                        "code": "SERVER_ERROR",
                    }
                if resp.status_code >= 400:
                    try:
                        body = resp.json()
                    except (json.JSONDecodeError, ValueError):
                        body = {}
                    if not isinstance(body, dict):
                        body = {}
                    body.setdefault("error", f"Client error: {resp.status_code}")
                    body.setdefault("code", "CLIENT_ERROR")
                    return body
                return resp.json()
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                last_error = str(e) or "connect failed"
                if retries_left:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except httpx.TimeoutException:
                last_error = "timeout"
                if not idempotent:
                    return {"error": "Request timed out", "code": "TIMEOUT"}
                if retries_left:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except httpx.HTTPError as e:
                last_error = str(e)
                if not idempotent:
                    return {"error": f"Request failed: {e}", "code": "CONNECTION_ERROR"}
                if retries_left:
                    time.sleep(self.retry_backoff_base * (2 ** attempt))
                    continue
            except json.JSONDecodeError:
                return {"error": "Invalid JSON response", "code": "JSON_ERROR"}

        return {"error": f"All {self.max_retries} retries exhausted: {last_error}", "code": "CONNECTION_ERROR"}

    # ── Gate ──

    def check(self, feature: str) -> ClientDecision:
        """Ask whether the configured user may use a feature now."""
        data = self._request("get", f"/entitlements/{feature}")
        if "error" in data:
            return ClientDecision(
                allowed=False, feature=feature,
                message=data.get("error", ""), code=data.get("code", "ERROR"),
                redirect=data.get("redirect"),
            )
        return ClientDecision(
            allowed=data.get("allowed", False),
            state=data.get("state", ""),
            feature=data.get("feature", feature),
            tier=data.get("tier"),
            limit=data.get("limit", 0),
            remaining=data.get("remaining", 0),
            redirect=data.get("redirect"),
            redirect_url=data.get("redirect_url"),
            message=data.get("message", ""),
            code=data.get("reason", ""),
        )

    # ── Usage ──

    def usage(self) -> ClientUsageSummary:
        data = self._request("get", "/usage")
        if "error" in data:
            return ClientUsageSummary(success=False, code=data.get("code", "ERROR"))
        return ClientUsageSummary(
            success=True,
            tier=data.get("tier", ""),
            features=[
                ClientFeatureUsage(
                    feature=f.get("feature", ""),
                    limit=f.get("limit", 0),
                    used=f.get("used", 0),
                    remaining=f.get("remaining", 0),
                    entitled=f.get("entitled", False),
                    reset_at=f.get("reset_at"),
                )
                for f in data.get("features", [])
            ],
        )

    def increment(self, feature: str) -> ClientIncrementResult:
        data = self._request("post", f"/usage/{feature}/increment")
        if "error" in data:
            return ClientIncrementResult(success=False, code=data.get("code", "ERROR"))
        return ClientIncrementResult(
            success=data.get("success", False),
            outcome=data.get("outcome", ""),
            remaining=data.get("remaining"),
        )

    # ── Generation ──

    def generate(self, feature: str, prompt: str) -> ClientGenerationResult:
        data = self._request("post", f"/generate/{feature}", json={"prompt": prompt})
        if "error" in data:
            return ClientGenerationResult(
                success=False,
                redirect=data.get("redirect"),
                message=data.get("error", ""),
                code=data.get("code", "ERROR"),
            )
        return ClientGenerationResult(
            success=True,
            content=data.get("content", ""),
            remaining=data.get("remaining"),
            usage_recorded=data.get("usage_recorded", False),
            accounting_error=data.get("accounting_error", False),
        )

    # ── Lifecycle ──

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()
