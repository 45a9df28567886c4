"""
Model providers — one class per provider API.

- GeminiProvider: structured-tool provider. Function declarations go out,
  `functionCall` parts come back; no parsing of text needed.
- OllamaGenerateProvider / OpenAICompatibleProvider: free-text providers.
  The conversation is serialized into one prompt and the raw completion is
  handed to the tool-call parser.

Every provider owns a pooled httpx.Client and maps transport faults onto the
provider error taxonomy. Nothing here retries.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from models.prompts import FREE_TEXT_SYSTEM_PROMPT, STRUCTURED_SYSTEM_PROMPT, build_free_text_prompt
from models.tool_call_parser import parse_model_output
from registry.action_registry import ActionRegistry
from shared.errors import ProviderConfigError, ProviderTimeoutError, ProviderUnavailableError
from shared.models import Message, ModelPolicy, Segment, TextSegment, ToolCall

logger = logging.getLogger(__name__)


class ModelProvider(ABC):
    """One model backend reachable over HTTP."""

    provider_id: str = ""
    structured: bool = False

    def __init__(self, base_url: str, policy: ModelPolicy, client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self.policy = policy
        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=policy.timeout_seconds,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )

    @property
    def default_system_prompt(self) -> str:
        return STRUCTURED_SYSTEM_PROMPT if self.structured else FREE_TEXT_SYSTEM_PROMPT

    @abstractmethod
    def generate(self, history: list[Message], system_prompt: str, registry: ActionRegistry) -> list[Segment]:
        """Run one model call and return the normalized segment sequence."""

    def _post_json(
        self,
        path: str,
        payload: dict[str, Any],
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._client.post(
                path,
                json=payload,
                params=params,
                headers=headers,
                timeout=self.policy.timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                self.provider_id,
                f"{self.provider_id} did not answer within {self.policy.timeout_seconds:.0f}s",
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code if e.response is not None else "?"
            logger.error("%s API error (status %s): %s", self.provider_id, status, _safe_body(e.response))
            raise ProviderUnavailableError(
                self.provider_id, f"{self.provider_id} request failed with status {status}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(self.provider_id, f"{self.provider_id} is unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableError(self.provider_id, f"{self.provider_id} returned non-JSON body") from e
        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.provider_id, f"{self.provider_id} returned unexpected payload")
        return data

    def close(self) -> None:
        self._client.close()


def _safe_body(response: httpx.Response | None) -> str:
    if response is None:
        return ""
    try:
        return response.text[:500]
    except Exception:
        return ""


class GeminiProvider(ModelProvider):
    """Google Gemini `generateContent` with native function calling."""

    provider_id = "gemini"
    structured = True

    def __init__(
        self,
        api_key: str,
        base_url: str,
        policy: ModelPolicy,
        client: httpx.Client | None = None,
    ):
        super().__init__(base_url=base_url, policy=policy, client=client)
        self.api_key = api_key

    def generate(self, history: list[Message], system_prompt: str, registry: ActionRegistry) -> list[Segment]:
        if not self.api_key:
            raise ProviderConfigError(self.provider_id, "Gemini API key not configured (GEMINI_API_KEY).")

        contents = [
            {
                "role": "model" if message.role == "assistant" else "user",
                "parts": [{"text": message.content}],
            }
            for message in history
            if message.content
        ]
        payload = {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "tools": [{"function_declarations": registry.function_declarations()}],
            "generationConfig": {"temperature": self.policy.temperature},
        }
        data = self._post_json(
            f"/v1beta/models/{self.policy.model_name}:generateContent",
            payload,
            params={"key": self.api_key},
        )

        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates and isinstance(candidates[0], dict) else {}
        parts = (candidate.get("content") or {}).get("parts")
        if not isinstance(parts, list) or not parts:
            raise ProviderUnavailableError(self.provider_id, "Invalid response structure from Gemini API")

        segments: list[Segment] = []
        for part in parts:
            if not isinstance(part, dict):
                continue
            call = part.get("functionCall")
            if isinstance(call, dict) and isinstance(call.get("name"), str):
                args = call.get("args")
                segments.append(ToolCall(name=call["name"], args=args if isinstance(args, dict) else {}))
                continue
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                segments.append(TextSegment(text=text.strip()))
        return segments


class OllamaGenerateProvider(ModelProvider):
    """Ollama `/api/generate` (locally hosted Llama)."""

    provider_id = "llama"

    def generate(self, history: list[Message], system_prompt: str, registry: ActionRegistry) -> list[Segment]:
        prompt = build_free_text_prompt(history, system_prompt, registry.catalog())
        payload = {
            "model": self.policy.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self.policy.temperature},
        }
        if self.policy.json_mode:
            payload["format"] = "json"
        data = self._post_json("/api/generate", payload)
        return parse_model_output(str(data.get("response") or ""))


class OpenAICompatibleProvider(ModelProvider):
    """OpenAI-compatible `/v1/chat/completions` (locally hosted DeepSeek)."""

    provider_id = "deepseek"

    def __init__(
        self,
        base_url: str,
        policy: ModelPolicy,
        api_key: str = "",
        client: httpx.Client | None = None,
    ):
        super().__init__(base_url=base_url, policy=policy, client=client)
        self.api_key = api_key

    def generate(self, history: list[Message], system_prompt: str, registry: ActionRegistry) -> list[Segment]:
        prompt = build_free_text_prompt(history, system_prompt, registry.catalog())
        payload = {
            "model": self.policy.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.policy.temperature,
            "stream": False,
        }
        if self.policy.json_mode:
            payload["response_format"] = {"type": "json_object"}
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
        data = self._post_json("/v1/chat/completions", payload, headers=headers)
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise ProviderUnavailableError(self.provider_id, "OpenAI-compatible response missing choices")
        message = choices[0].get("message") or {}
        return parse_model_output(str(message.get("content") or ""))
