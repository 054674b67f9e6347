from __future__ import annotations

import json
import logging
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from config import get_settings
from encryption import EncryptionError, decrypt
from models import AIService, AIToken
from prompts import (
    CONNECTION_TEST_PROMPT,
    DEFAULT_SYSTEM_PROMPT,
    INSIGHTS_SYSTEM_PROMPT,
    insights_prompt,
)
from schemas import InsightOut


logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


class LLMError(Exception):
    pass


class NoProvidersConfigured(LLMError):
    pass


class ProviderError(Exception):
    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


@dataclass(frozen=True)
class CompletionOptions:
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_tokens: int = 1500
    temperature: float = 0.7
    top_p: float = 0.9
    model: Optional[str] = None


@dataclass(frozen=True)
class CompletionResult:
    text: str
    provider: str
    model: str
    token_estimate: int

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "provider": self.provider,
            "model": self.model,
            "token_estimate": self.token_estimate,
        }


class Provider:
    """One hosted model API. Subclasses build the request and read the reply."""

    name: str = ""
    url: str = ""
    default_model: str = ""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout or get_settings().llm_timeout_secs

    def complete(self, token: str, prompt: str, options: CompletionOptions) -> str:
        model = options.model or self.default_model
        payload = self.build_payload(model, prompt, options)
        data = self._post_json(self.endpoint(model), payload, self.headers(token))
        try:
            text = self.parse(data)
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, "Unexpected response format") from exc
        return (text or "").strip()

    def endpoint(self, model: str) -> str:
        return self.url

    def headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_payload(
        self, model: str, prompt: str, options: CompletionOptions
    ) -> dict[str, object]:
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": options.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "top_p": options.top_p,
        }

    def parse(self, data: object) -> str:
        return data["choices"][0]["message"]["content"]

    def _post_json(self, url: str, payload: dict[str, object], headers: dict[str, str]):
        body = json.dumps(payload).encode("utf-8")
        req = Request(url, data=body, headers=headers, method="POST")
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            raise ProviderError(self.name, f"HTTP {exc.code}") from exc
        except (URLError, OSError) as exc:
            raise ProviderError(self.name, f"Request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProviderError(self.name, "Response was not JSON") from exc


class GroqProvider(Provider):
    name = AIService.groq.value
    url = "https://api.groq.com/openai/v1/chat/completions"
    default_model = "llama-3.3-70b-versatile"


class HuggingFaceProvider(Provider):
    name = AIService.huggingface.value
    url = "https://api-inference.huggingface.co/models/"
    default_model = "meta-llama/Llama-3.2-3B-Instruct"

    def endpoint(self, model: str) -> str:
        return self.url + model

    def build_payload(
        self, model: str, prompt: str, options: CompletionOptions
    ) -> dict[str, object]:
        return {
            "inputs": f"{options.system_prompt}\n\n{prompt}",
            "parameters": {
                "max_new_tokens": min(options.max_tokens, 1000),
                "temperature": options.temperature,
                "top_p": options.top_p,
                "return_full_text": False,
            },
        }

    def parse(self, data: object) -> str:
        if isinstance(data, list):
            return data[0]["generated_text"]
        return data["generated_text"]


class TogetherProvider(Provider):
    name = AIService.together.value
    url = "https://api.together.xyz/v1/completions"
    default_model = "meta-llama/Llama-3.3-70B-Instruct-Turbo"

    def build_payload(
        self, model: str, prompt: str, options: CompletionOptions
    ) -> dict[str, object]:
        return {
            "model": model,
            "prompt": f"{options.system_prompt}\n\n{prompt}",
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "top_p": options.top_p,
        }

    def parse(self, data: object) -> str:
        return data["choices"][0]["text"]


class OpenRouterProvider(Provider):
    name = AIService.openrouter.value
    url = "https://openrouter.ai/api/v1/chat/completions"
    default_model = "meta-llama/llama-3.3-70b-instruct"

    def headers(self, token: str) -> dict[str, str]:
        headers = super().headers(token)
        headers["HTTP-Referer"] = "https://financial-app.local"
        headers["X-Title"] = "Financial Growth Tracker"
        return headers


class AnthropicProvider(Provider):
    name = AIService.anthropic.value
    url = "https://api.anthropic.com/v1/messages"
    default_model = "claude-3-5-haiku-latest"

    def headers(self, token: str) -> dict[str, str]:
        return {
            "x-api-key": token,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_payload(
        self, model: str, prompt: str, options: CompletionOptions
    ) -> dict[str, object]:
        return {
            "model": model,
            "system": options.system_prompt,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }

    def parse(self, data: object) -> str:
        return "".join(
            block.get("text", "")
            for block in data["content"]
            if block.get("type") == "text"
        )


PROVIDER_CLASSES: tuple[type[Provider], ...] = (
    GroqProvider,
    HuggingFaceProvider,
    TogetherProvider,
    OpenRouterProvider,
    AnthropicProvider,
)


def default_providers(timeout: Optional[float] = None) -> list[Provider]:
    return [cls(timeout) for cls in PROVIDER_CLASSES]


class CompletionCache:
    """Bounded TTL cache for completions keyed by (user, prompt, options)."""

    def __init__(self, ttl_secs: float, max_size: int) -> None:
        self.ttl_secs = ttl_secs
        self.max_size = max_size
        self._entries: OrderedDict[tuple, tuple[float, CompletionResult]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: tuple) -> Optional[CompletionResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, result = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return result

    def put(self, key: tuple, result: CompletionResult) -> None:
        if self.max_size <= 0 or self.ttl_secs <= 0:
            return
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (time.monotonic() + self.ttl_secs, result)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache(maxsize=1)
def get_completion_cache() -> CompletionCache:
    settings = get_settings()
    return CompletionCache(settings.llm_cache_ttl_secs, settings.llm_cache_max_size)


def fallback_insight(text: str) -> dict[str, object]:
    return {
        "type": "info",
        "title": "AI Financial Analysis",
        "message": text,
        "recommendation": "Review the analysis above for financial guidance.",
        "impact": "medium",
    }


def parse_insights(text: str) -> list[dict[str, object]]:
    """Validate the model's JSON array, or wrap the raw text as one insight."""
    match = _JSON_ARRAY.search(text or "")
    if match:
        try:
            raw = json.loads(match.group(0))
            if isinstance(raw, list) and raw:
                return [InsightOut.model_validate(item).model_dump() for item in raw]
            logger.info("llm_parse: reason=empty_or_not_list")
        except json.JSONDecodeError:
            logger.info("llm_parse: reason=invalid_json")
        except ValidationError as exc:
            logger.info(f"llm_parse: reason=schema errors={exc.error_count()}")
    return [fallback_insight(text)]


class LLMService:
    def __init__(
        self,
        session: Session,
        user_id: int,
        providers: Optional[Sequence[Provider]] = None,
        *,
        max_retries: Optional[int] = None,
        retry_delay_secs: Optional[float] = None,
        timeout: Optional[float] = None,
        cache: Optional[CompletionCache] = None,
    ) -> None:
        settings = get_settings()
        self.session = session
        self.user_id = user_id
        self.providers = (
            list(providers) if providers is not None else default_providers(timeout)
        )
        self.max_retries = max(
            1, max_retries if max_retries is not None else settings.llm_max_retries
        )
        self.retry_delay_secs = (
            retry_delay_secs
            if retry_delay_secs is not None
            else settings.llm_retry_delay_secs
        )
        self.cache = cache if cache is not None else get_completion_cache()
        self.last_provider: Optional[str] = None

    def _active_tokens(self) -> dict[str, tuple[AIToken, str]]:
        rows = self.session.scalars(
            select(AIToken).where(
                AIToken.user_id == self.user_id, AIToken.is_active.is_(True)
            )
        ).all()
        tokens: dict[str, tuple[AIToken, str]] = {}
        for row in rows:
            try:
                tokens[row.service.value] = (row, decrypt(row.token_encrypted))
            except EncryptionError as exc:
                logger.warning(
                    f"llm_tokens: user={self.user_id} service={row.service.value} "
                    f"skipped={exc}"
                )
        return tokens

    def _call_with_retries(
        self, provider: Provider, token: str, prompt: str, options: CompletionOptions
    ) -> str:
        attempt = 1
        while True:
            try:
                return provider.complete(token, prompt, options)
            except ProviderError as exc:
                logger.warning(
                    f"llm_attempt: user={self.user_id} provider={provider.name} "
                    f"attempt={attempt} error={exc}"
                )
                if attempt >= self.max_retries:
                    raise
            time.sleep(self.retry_delay_secs * attempt)
            attempt += 1

    def generate_completion(
        self, prompt: str, options: Optional[CompletionOptions] = None
    ) -> CompletionResult:
        options = options or CompletionOptions()
        tokens = self._active_tokens()
        if not tokens:
            raise NoProvidersConfigured(
                "No AI tokens configured. Please add at least one token in AI Settings."
            )

        key = (self.user_id, prompt, options)
        cached = self.cache.get(key)
        if cached is not None and cached.provider in tokens:
            row, _ = tokens[cached.provider]
            row.last_used = datetime.utcnow()
            self.session.flush()
            self.last_provider = cached.provider
            return cached

        last_error: Optional[Exception] = None
        for provider in self.providers:
            entry = tokens.get(provider.name)
            if entry is None:
                continue
            row, token = entry
            try:
                text = self._call_with_retries(provider, token, prompt, options)
            except ProviderError as exc:
                last_error = exc
                continue

            row.last_used = datetime.utcnow()
            self.session.flush()
            self.last_provider = provider.name
            result = CompletionResult(
                text=text,
                provider=provider.name,
                model=options.model or provider.default_model,
                token_estimate=len(text) // 4,
            )
            self.cache.put(key, result)
            logger.info(
                f"llm_completion: user={self.user_id} provider={provider.name} "
                f"chars={len(text)}"
            )
            return result

        if last_error is None:
            raise NoProvidersConfigured(
                "None of the configured AI tokens match a supported provider."
            )
        raise LLMError(f"All AI providers failed. Last error: {last_error}")

    def generate_financial_insights(self, snapshot: dict[str, object]) -> dict[str, object]:
        result = self.generate_completion(
            insights_prompt(snapshot),
            CompletionOptions(
                system_prompt=INSIGHTS_SYSTEM_PROMPT, max_tokens=2000, temperature=0.3
            ),
        )
        return {
            "insights": parse_insights(result.text),
            "provider": result.provider,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }


def check_connection(
    service: str,
    token: str,
    providers: Optional[Sequence[Provider]] = None,
    timeout: Optional[float] = None,
) -> dict[str, object]:
    service = service.value if isinstance(service, AIService) else service
    candidates = providers if providers is not None else default_providers(timeout)
    provider = next((p for p in candidates if p.name == service), None)
    if provider is None:
        return {
            "success": False,
            "message": "Connection failed: Unknown service",
            "provider": service,
        }
    try:
        text = provider.complete(
            token, CONNECTION_TEST_PROMPT, CompletionOptions(max_tokens=50)
        )
    except ProviderError as exc:
        logger.info(f"llm_test: provider={service} ok=false")
        return {
            "success": False,
            "message": f"Connection failed: {exc}",
            "provider": service,
        }
    logger.info(f"llm_test: provider={service} ok=true")
    return {
        "success": True,
        "message": "Connection successful! Token is valid.",
        "response": text[:100],
        "provider": service,
    }

