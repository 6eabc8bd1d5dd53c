"""
Claude AI Client: Anthropic Messages API integration for content generation.

Used by the ai_generate action to draft outreach messages and scripts.

Features:
- Connection pooling via a shared httpx.AsyncClient
- Retry on rate limiting (429) and overload (529) with backoff
- Token usage reporting per call
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import structlog

from app.config import Settings, get_settings

logger = structlog.get_logger(__name__)


class ClaudeAPIError(Exception):
    """Claude API call failed after all retries."""


@dataclass
class GenerationResult:
    """Text produced by one Messages API call."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


class ClaudeClient:
    """Thin async client for the Anthropic Messages API."""

    API_BASE = "https://api.anthropic.com/v1"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.ANTHROPIC_API_KEY)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE,
                headers={
                    "x-api-key": self.settings.ANTHROPIC_API_KEY,
                    "anthropic-version": self.API_VERSION,
                    "content-type": "application/json",
                },
                timeout=httpx.Timeout(
                    connect=10.0,
                    read=float(self.settings.CLAUDE_TIMEOUT),
                    write=30.0,
                    pool=10.0,
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Gracefully close connections."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _make_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /messages with retry on 429/529."""
        client = self._get_client()
        max_retries = max(1, self.settings.CLAUDE_MAX_RETRIES)
        last_error = None

        for attempt in range(max_retries):
            try:
                response = await client.post("/messages", json=payload)
            except httpx.TimeoutException:
                logger.warning("Claude request timeout", attempt=attempt)
                last_error = "Request timed out"
            except httpx.HTTPError as e:
                logger.warning("Claude request failed", error=str(e), attempt=attempt)
                last_error = str(e)
            else:
                if response.status_code == 200:
                    return response.json()
                if response.status_code == 429:
                    retry_after = float(response.headers.get("retry-after", 5))
                    logger.warning("Claude rate limited", retry_after=retry_after)
                    last_error = "Rate limited"
                    if attempt < max_retries - 1:
                        await asyncio.sleep(retry_after)
                    continue
                if response.status_code == 529:
                    last_error = "API overloaded"
                    logger.warning("Claude API overloaded", attempt=attempt)
                else:
                    body = response.text
                    logger.error("Claude API error", status=response.status_code, body=body[:500])
                    raise ClaudeAPIError(f"API error {response.status_code}: {body[:200]}")

            if attempt < max_retries - 1:
                await asyncio.sleep(min(2 ** (attempt + 1), 30))

        raise ClaudeAPIError(f"Claude API failed after {max_retries} attempts: {last_error}")

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> GenerationResult:
        """Send a single-turn prompt and return the generated text."""
        settings = self.settings
        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        payload: Dict[str, Any] = {
            "model": model or settings.CLAUDE_MODEL,
            "max_tokens": max_tokens or settings.CLAUDE_MAX_TOKENS,
            "temperature": temperature if temperature is not None else settings.CLAUDE_TEMPERATURE,
            "messages": messages,
        }
        system = system or settings.CLAUDE_SYSTEM_PROMPT
        if system:
            payload["system"] = system

        data = await self._make_request(payload)
        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        usage = data.get("usage", {})
        return GenerationResult(
            text=text,
            model=data.get("model", payload["model"]),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )


# ─── Singleton ─────────────────────────────────────────────────

_claude_client: Optional[ClaudeClient] = None


def get_claude_client() -> ClaudeClient:
    """Get or create the singleton Claude client."""
    global _claude_client
    if _claude_client is None:
        _claude_client = ClaudeClient()
    return _claude_client
