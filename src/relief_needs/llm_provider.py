"""LLM provider abstraction layer.

Provides a unified completion interface so the extraction escalation path
never depends on a specific vendor endpoint.

Providers
---------
- **OpenAIResponsesProvider**: OpenAI ``/v1/responses`` API
- **AnthropicMessagesProvider**: Anthropic ``/v1/messages`` API

Selection is driven by the ``LLM_PROVIDER`` environment variable.  When it
is unset, the first provider with an API key wins (OpenAI, then Anthropic).

Usage
-----
::

    from .llm_provider import get_provider

    provider = get_provider()
    if provider.is_configured():
        result = provider.complete(
            system="You extract disaster needs.",
            user="Need 20 tents at the temple",
            json_schema={"type": "object", ...},
            schema_name="incident_extraction",
            timeout=30.0,
        )

Transport and HTTP failures raise :class:`~relief_needs.errors.LLMProviderError`
so callers can retry; an empty or unparseable body returns ``None``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .errors import LLMProviderError
from .settings import (
    get_anthropic_api_key,
    get_anthropic_model,
    get_openai_api_key,
    get_openai_model,
)

_log = logging.getLogger(__name__)

# ── Base class ───────────────────────────────────────────────────────


class LLMProvider(ABC):
    """Abstract base for LLM completions."""

    @abstractmethod
    def complete(
        self,
        *,
        system: str,
        user: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        timeout: float = 30.0,
        model: str | None = None,
    ) -> dict[str, Any] | str | None:
        """Run an LLM completion and return parsed output.

        Returns a ``dict`` when *json_schema* is set and parsing succeeds,
        a ``str`` for free-form completions and ``None`` when the provider
        is unconfigured or the body holds no usable text.
        """

    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present."""

    @staticmethod
    def _extract_json_fallback(text: str) -> dict[str, Any] | None:
        """Try to extract a JSON object from possibly messy text."""
        raw = text.strip()
        if raw.startswith("```"):
            raw = re.sub(r"^```(?:json)?", "", raw, flags=re.IGNORECASE).strip()
            raw = re.sub(r"```$", "", raw).strip()
        m = re.search(r"\{.*\}", raw, re.DOTALL)
        if m:
            try:
                data = json.loads(m.group())
                return data if isinstance(data, dict) else None
            except (json.JSONDecodeError, TypeError):
                pass
        return None

    def _post(self, url: str, *, headers: dict[str, str], body: dict[str, Any], timeout: float) -> dict[str, Any]:
        try:
            with httpx.Client(timeout=timeout) as client:
                r = client.post(url, headers=headers, json=body)
                r.raise_for_status()
                return r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMProviderError(f"{self.name()} request failed: {exc}") from exc

    def _parse(self, text: str, json_schema: dict[str, Any] | None) -> dict[str, Any] | str | None:
        if not text:
            return None
        if json_schema is None:
            return text
        try:
            data = json.loads(text)
            return data if isinstance(data, dict) else None
        except (json.JSONDecodeError, TypeError):
            return self._extract_json_fallback(text)


# ── OpenAI Responses API provider ────────────────────────────────────


class OpenAIResponsesProvider(LLMProvider):
    """Provider backed by OpenAI ``/v1/responses``."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.openai.com",
    ) -> None:
        self._api_key = get_openai_api_key() if api_key is None else api_key
        self._model = model or get_openai_model()
        self._endpoint = f"{base_url.rstrip('/')}/v1/responses"

    def name(self) -> str:
        return f"openai_responses ({self._model})"

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def complete(
        self,
        *,
        system: str,
        user: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        timeout: float = 30.0,
        model: str | None = None,
    ) -> dict[str, Any] | str | None:
        if not self._api_key:
            _log.warning("No OpenAI API key configured, skipping LLM call")
            return None

        body: dict[str, Any] = {
            "model": model or self._model,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": system}]},
                {"role": "user", "content": [{"type": "input_text", "text": user}]},
            ],
        }
        if json_schema is not None:
            body["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "schema": json_schema,
                    "strict": True,
                }
            }

        data = self._post(
            self._endpoint,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            body=body,
            timeout=timeout,
        )
        return self._parse(self._extract_text(data), json_schema)

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        """Extract text content from Responses API output."""
        if data.get("output_text"):
            return str(data["output_text"])
        for block in data.get("output", []) or []:
            for content in block.get("content", []) or []:
                t = content.get("text")
                if isinstance(t, str) and t.strip():
                    return t.strip()
        return ""


# ── Anthropic Messages API provider ──────────────────────────────────


class AnthropicMessagesProvider(LLMProvider):
    """Provider backed by Anthropic ``/v1/messages``."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.anthropic.com",
        max_tokens: int = 1000,
    ) -> None:
        self._api_key = get_anthropic_api_key() if api_key is None else api_key
        self._model = model or get_anthropic_model()
        self._endpoint = f"{base_url.rstrip('/')}/v1/messages"
        self._max_tokens = max_tokens

    def name(self) -> str:
        return f"anthropic_messages ({self._model})"

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def complete(
        self,
        *,
        system: str,
        user: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        timeout: float = 30.0,
        model: str | None = None,
    ) -> dict[str, Any] | str | None:
        if not self._api_key:
            _log.warning("No Anthropic API key configured, skipping LLM call")
            return None

        prompt = user
        if json_schema is not None:
            # No native structured output here; the schema travels in the prompt.
            prompt = (
                f"{user}\n\nRespond with a single JSON object named {schema_name} "
                f"matching this JSON schema:\n{json.dumps(json_schema)}"
            )
        body = {
            "model": model or self._model,
            "max_tokens": self._max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        data = self._post(
            self._endpoint,
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
            body=body,
            timeout=timeout,
        )
        return self._parse(self._extract_text(data), json_schema)

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        chunks = [
            block.get("text", "")
            for block in data.get("content", []) or []
            if block.get("type") == "text"
        ]
        return "".join(chunks).strip()


# ── Provider registry ────────────────────────────────────────────────

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai_responses": OpenAIResponsesProvider,
    "anthropic_messages": AnthropicMessagesProvider,
}

_provider_instance: LLMProvider | None = None


def _auto_provider_name() -> str:
    if get_openai_api_key():
        return "openai_responses"
    if get_anthropic_api_key():
        return "anthropic_messages"
    return "openai_responses"


def get_provider(
    *,
    provider_name: str | None = None,
    reset: bool = False,
    **kwargs: Any,
) -> LLMProvider:
    """Return the configured LLM provider singleton.

    Parameters
    ----------
    provider_name:
        Override environment-based selection.  One of the keys in
        ``_PROVIDERS``.
    reset:
        Force re-creation of the singleton (useful for tests).
    **kwargs:
        Passed to the provider constructor.
    """
    global _provider_instance

    if _provider_instance is not None and not reset:
        return _provider_instance

    name = provider_name or os.environ.get("LLM_PROVIDER", "").strip() or _auto_provider_name()
    cls = _PROVIDERS.get(name)
    if cls is None:
        raise ValueError(
            f"Unknown LLM provider {name!r}. "
            f"Available: {', '.join(sorted(_PROVIDERS))}"
        )

    _provider_instance = cls(**kwargs)
    _log.info("LLM provider initialised: %s", _provider_instance.name())
    return _provider_instance


def register_provider(name: str, cls: type[LLMProvider]) -> None:
    """Register a custom LLM provider class."""
    _PROVIDERS[name] = cls
    _log.info("Registered LLM provider: %s → %s", name, cls.__name__)
