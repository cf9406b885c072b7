"""Pluggable LLM provider abstraction layer.

Usage:
  from app.services.llm_providers import get_llm
  llm = get_llm(settings)
  result = llm.generate(messages=[{"role": "user", "content": "Hello"}], model="gemini-1.5-flash")

Providers:
    - GeminiProvider: Gemini generateContent (API key as query parameter)
    - OpenAICompatibleProvider: Chat Completions for OpenAI / Groq (Bearer key, per-profile base_url)

generate() performs exactly one call with a fixed timeout and never retries.
It never raises for upstream problems; it returns a tagged result instead:
    - ProviderResponse: an HTTP response was received (any status)
    - ProviderFailure: nothing came back (timeout / connection / unexpected)
Interpretation of the result is the job of response_translator.

Add new provider by implementing BaseLLMProvider and registering a ProviderProfile.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
import abc
import time

import httpx
import openai
import requests

from app.domain.provider_profiles import ProviderProfile, get_profile
from app.scripts.logging_config import get_logger, log_provider_call

logger = get_logger("provider")

ChatMessage = Dict[str, str]  # {role: <provider role>, content: str}

TIMEOUT = "timeout"
CONNECTION = "connection"
UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ProviderResponse:
    status_code: int
    content_type: str
    body: Any  # parsed JSON when is_json, raw text otherwise
    is_json: bool


@dataclass(frozen=True)
class ProviderFailure:
    kind: str  # TIMEOUT | CONNECTION | UNEXPECTED
    message: str
    timeout: Optional[float] = None


AdapterResult = Union[ProviderResponse, ProviderFailure]


def _is_json_type(content_type: str) -> bool:
    return "json" in (content_type or "").lower()


def _to_response(resp: Union[requests.Response, httpx.Response]) -> ProviderResponse:
    ctype = resp.headers.get("content-type", "")
    if _is_json_type(ctype):
        try:
            return ProviderResponse(resp.status_code, ctype, resp.json(), True)
        except ValueError:
            pass
    return ProviderResponse(resp.status_code, ctype, resp.text, False)


class BaseLLMProvider(abc.ABC):
    name: str

    def __init__(self, profile: ProviderProfile, api_key: str, base_url: str):
        self.profile = profile
        self.name = profile.name
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    @abc.abstractmethod
    def generate(self, messages: List[ChatMessage], model: str, timeout: float) -> AdapterResult:
        ...

    def _log_done(self, model: str, messages: List[ChatMessage], start: float, result: AdapterResult):
        status = result.status_code if isinstance(result, ProviderResponse) else result.kind
        log_provider_call(self.name, model, len(messages), time.time() - start, status, logger=logger)


class GeminiProvider(BaseLLMProvider):
    def to_contents(self, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
        return [{"role": m["role"], "parts": [{"text": m["content"]}]} for m in messages]

    def build_payload(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        return {
            "contents": self.to_contents(messages),
            "generationConfig": dict(self.profile.generation_config),
            "safetySettings": self.profile.safety_settings(),
        }

    def generate(self, messages: List[ChatMessage], model: str, timeout: float) -> AdapterResult:
        url = f"{self._base_url}/models/{model}:generateContent"
        start = time.time()
        try:
            resp = requests.post(
                url,
                params={"key": self._api_key},
                json=self.build_payload(messages),
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
            result: AdapterResult = _to_response(resp)
        except requests.exceptions.Timeout as e:
            result = ProviderFailure(TIMEOUT, str(e), timeout)
        except requests.exceptions.ConnectionError as e:
            result = ProviderFailure(CONNECTION, str(e))
        except requests.exceptions.RequestException as e:
            result = ProviderFailure(UNEXPECTED, str(e))
        self._log_done(model, messages, start, result)
        return result


# one SDK client (connection pool) per host + key, shared across requests
_clients: Dict[Tuple[str, str], openai.OpenAI] = {}


class OpenAICompatibleProvider(BaseLLMProvider):
    """Chat Completions over the openai SDK; Groq is the same API on another host."""

    def _client(self) -> openai.OpenAI:
        key = (self._base_url, self._api_key)
        client = _clients.get(key)
        if client is None:
            client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url, max_retries=0)
            _clients[key] = client
        return client

    def generate(self, messages: List[ChatMessage], model: str, timeout: float) -> AdapterResult:
        params = dict(self.profile.generation_config)
        start = time.time()
        try:
            raw = self._client().chat.completions.with_raw_response.create(
                model=model,
                messages=messages,
                timeout=timeout,
                **params,
            )
            result: AdapterResult = _to_response(raw.http_response)
        except openai.APITimeoutError as e:
            result = ProviderFailure(TIMEOUT, str(e), timeout)
        except openai.APIStatusError as e:
            # non-2xx: keep the response as data for the translator
            result = _to_response(e.response)
        except openai.APIConnectionError as e:
            result = ProviderFailure(CONNECTION, str(e))
        except openai.OpenAIError as e:
            result = ProviderFailure(UNEXPECTED, str(e))
        self._log_done(model, messages, start, result)
        return result


_ADAPTERS = {
    "query": GeminiProvider,
    "bearer": OpenAICompatibleProvider,
}


def get_llm(settings, provider: Optional[str] = None) -> BaseLLMProvider:
    """Build the adapter for the configured provider.

    Raises RuntimeError when the API key is missing; callers check the key first
    so this only guards direct use.
    """
    profile = get_profile(provider or settings.LLM_PROVIDER)
    api_key = settings.api_key_for(profile)
    if not api_key:
        raise RuntimeError(f"{profile.settings_prefix}_API_KEY missing")
    cls = _ADAPTERS[profile.auth_scheme]
    return cls(profile, api_key, settings.base_url_for(profile))
