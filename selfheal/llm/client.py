from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from typing import Any
from urllib import error, request

from selfheal.config.schema import SuggestionConfig, SuggestionMode
from selfheal.core.exceptions import CollaboratorUnavailable
from selfheal.llm.prompts import SYSTEM_PROMPT, build_user_prompt


class SuggestionClient(ABC):
    """Provider-neutral interface for locator suggestions."""

    provider_name = "unknown"

    @abstractmethod
    def suggest(self, selector: str, dom_excerpt: str, context: str) -> str:
        raise NotImplementedError


class MockSuggestionClient(SuggestionClient):
    """Offline stand-in that proposes a test-id locator without network calls."""

    provider_name = "mock"

    def suggest(self, selector: str, dom_excerpt: str, context: str) -> str:
        return f'[data-testid="{selector}"]'


class OpenAISuggestionClient(SuggestionClient):
    provider_name = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.model = model or "gpt-4o-mini"
        self.timeout = timeout

    def suggest(self, selector: str, dom_excerpt: str, context: str) -> str:
        body = {
            "model": self.model,
            "temperature": 0.1,
            "max_tokens": 100,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(selector, dom_excerpt, context)},
            ],
        }
        response = _post_json(
            self.endpoint,
            body,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        try:
            return response["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise CollaboratorUnavailable("OpenAI returned an unexpected payload") from exc


class AnthropicSuggestionClient(SuggestionClient):
    provider_name = "anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.model = model or "claude-3-5-sonnet-latest"
        self.timeout = timeout

    def suggest(self, selector: str, dom_excerpt: str, context: str) -> str:
        body = {
            "model": self.model,
            "max_tokens": 128,
            "temperature": 0,
            "system": SYSTEM_PROMPT,
            "messages": [
                {"role": "user", "content": build_user_prompt(selector, dom_excerpt, context)},
            ],
        }
        response = _post_json(
            self.endpoint,
            body,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        try:
            return response["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CollaboratorUnavailable("Anthropic returned an unexpected payload") from exc


class GeminiSuggestionClient(SuggestionClient):
    provider_name = "gemini"
    endpoint_template = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.model = model or "gemini-2.5-flash"
        self.timeout = timeout

    def suggest(self, selector: str, dom_excerpt: str, context: str) -> str:
        body = {
            "system_instruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": build_user_prompt(selector, dom_excerpt, context)}],
                }
            ],
            "generationConfig": {"temperature": 0},
        }
        response = _post_json(
            self.endpoint_template.format(model=self.model),
            body,
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )
        candidates = response.get("candidates", [])
        if not candidates:
            raise CollaboratorUnavailable("Gemini returned no candidates")
        parts = candidates[0].get("content", {}).get("parts", [])
        content = "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()
        if not content:
            raise CollaboratorUnavailable("Gemini returned an empty response")
        return content


_PROVIDERS: dict[SuggestionMode, tuple[type[SuggestionClient], str]] = {
    SuggestionMode.OPENAI: (OpenAISuggestionClient, "OPENAI_API_KEY"),
    SuggestionMode.ANTHROPIC: (AnthropicSuggestionClient, "ANTHROPIC_API_KEY"),
    SuggestionMode.GEMINI: (GeminiSuggestionClient, "GEMINI_API_KEY"),
}


def create_suggestion_client(config: SuggestionConfig) -> SuggestionClient | None:
    """Builds the client for ``config.mode``; ``None`` when suggestions are disabled."""

    if config.mode is SuggestionMode.DISABLED:
        return None
    if config.mode is SuggestionMode.MOCK:
        return MockSuggestionClient()
    client_class, key_variable = _PROVIDERS[config.mode]
    api_key = config.api_key or os.getenv(key_variable)
    if not api_key:
        raise RuntimeError(f"{key_variable} is required when suggestion mode is {config.mode.value}")
    return client_class(api_key, model=config.model, timeout=config.timeout_seconds)


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float) -> dict[str, Any]:
    encoded = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=encoded, headers=headers, method="POST")
    try:
        with request.urlopen(req, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise CollaboratorUnavailable(f"Suggestion request failed with status {exc.code}: {detail}") from exc
    except error.URLError as exc:
        raise CollaboratorUnavailable(f"Suggestion request could not be completed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise CollaboratorUnavailable(f"Suggestion request timed out after {timeout}s") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CollaboratorUnavailable("Suggestion service returned invalid JSON") from exc
