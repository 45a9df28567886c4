from __future__ import annotations

import httpx
import pytest

from models.adapter import ModelAdapter
from models.prompts import FREE_TEXT_SYSTEM_PROMPT, STRUCTURED_SYSTEM_PROMPT
from models.providers import GeminiProvider, OllamaGenerateProvider, OpenAICompatibleProvider
from registry.catalog import build_default_registry
from shared.config import AppSettings
from shared.errors import ProviderConfigError, ProviderTimeoutError, ProviderUnavailableError
from shared.models import Message, ModelPolicy, TextSegment, ToolCall


class DummyResponse:
    def __init__(self, payload: dict, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("POST", "http://test")
            raise httpx.HTTPStatusError(
                "error",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )
        return None

    def json(self) -> dict:
        return self._payload


class DummyClient:
    def __init__(self, payload: dict | None = None, status_code: int = 200, exc: Exception | None = None):
        self.payload = payload or {}
        self.status_code = status_code
        self.exc = exc
        self.calls: list[dict] = []

    def post(self, path, json=None, params=None, headers=None, timeout=None):
        self.calls.append(
            {
                "path": path,
                "json": json,
                "params": params or {},
                "headers": headers or {},
                "timeout": timeout,
            }
        )
        if self.exc is not None:
            raise self.exc
        return DummyResponse(self.payload, status_code=self.status_code)

    def close(self) -> None:
        return None


HISTORY = [
    Message(role="user", content="show all departments"),
    Message(role="assistant", content="Here is the data you asked for:"),
    Message(role="user", content="delete Teknik Sipil"),
]


def _policy(name: str = "test-model") -> ModelPolicy:
    return ModelPolicy(model_name=name, timeout_seconds=5.0)


def test_gemini_function_calls_and_text_are_returned_in_order():
    client = DummyClient(
        {
            "candidates": [
                {
                    "content": {
                        "parts": [
                            {"text": "Sure, deleting it."},
                            {"functionCall": {"name": "deleteJurusan", "args": {"name": "Teknik Sipil"}}},
                        ]
                    }
                }
            ]
        }
    )
    provider = GeminiProvider(api_key="k", base_url="https://gemini.test", policy=_policy("gemini-x"), client=client)
    registry = build_default_registry()

    segments = provider.generate(HISTORY, STRUCTURED_SYSTEM_PROMPT, registry)

    assert segments == [
        TextSegment(text="Sure, deleting it."),
        ToolCall(name="deleteJurusan", args={"name": "Teknik Sipil"}),
    ]
    call = client.calls[0]
    assert call["path"] == "/v1beta/models/gemini-x:generateContent"
    assert call["params"] == {"key": "k"}
    assert [item["role"] for item in call["json"]["contents"]] == ["user", "model", "user"]
    declared = {item["name"] for item in call["json"]["tools"][0]["function_declarations"]}
    assert "deleteJurusan" in declared
    assert call["json"]["systemInstruction"]["parts"][0]["text"] == STRUCTURED_SYSTEM_PROMPT


def test_gemini_without_candidates_is_unavailable():
    provider = GeminiProvider(api_key="k", base_url="https://gemini.test", policy=_policy(), client=DummyClient({}))
    with pytest.raises(ProviderUnavailableError):
        provider.generate(HISTORY, "sys", build_default_registry())


def test_gemini_without_api_key_is_config_error():
    client = DummyClient({})
    provider = GeminiProvider(api_key="", base_url="https://gemini.test", policy=_policy(), client=client)
    with pytest.raises(ProviderConfigError):
        provider.generate(HISTORY, "sys", build_default_registry())
    assert client.calls == []


def test_ollama_generate_builds_prompt_and_parses_json():
    client = DummyClient({"response": '{"tool_calls": [{"name": "showJurusan", "args": {}}]}'})
    provider = OllamaGenerateProvider(base_url="http://ollama.test", policy=_policy("llama3.1"), client=client)

    segments = provider.generate(HISTORY, FREE_TEXT_SYSTEM_PROMPT, build_default_registry())

    assert segments == [ToolCall(name="showJurusan", args={})]
    call = client.calls[0]
    assert call["path"] == "/api/generate"
    assert call["json"]["format"] == "json"
    assert call["json"]["stream"] is False
    prompt = call["json"]["prompt"]
    assert "AVAILABLE ACTIONS:" in prompt
    assert 'LATEST USER REQUEST:\n"delete Teknik Sipil"' in prompt
    assert "user: show all departments" in prompt


def test_openai_compatible_sends_bearer_and_parses_text_response():
    client = DummyClient({"choices": [{"message": {"content": '{"text_response": "Hello!"}'}}]})
    provider = OpenAICompatibleProvider(
        base_url="http://deepseek.test",
        policy=_policy("deepseek-r1:8b"),
        api_key="secret",
        client=client,
    )

    segments = provider.generate(HISTORY, FREE_TEXT_SYSTEM_PROMPT, build_default_registry())

    assert segments == [TextSegment(text="Hello!")]
    call = client.calls[0]
    assert call["path"] == "/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["json"]["model"] == "deepseek-r1:8b"
    assert call["json"]["response_format"] == {"type": "json_object"}


def test_json_mode_off_sends_no_format_constraint():
    ollama_client = DummyClient({"response": "plain answer"})
    plain = ModelPolicy(model_name="llama3.1", json_mode=False)
    provider = OllamaGenerateProvider(base_url="http://ollama.test", policy=plain, client=ollama_client)

    assert provider.generate(HISTORY, "sys", build_default_registry()) == [TextSegment(text="plain answer")]
    assert "format" not in ollama_client.calls[0]["json"]

    chat_client = DummyClient({"choices": [{"message": {"content": "plain answer"}}]})
    provider = OpenAICompatibleProvider(base_url="http://deepseek.test", policy=plain, client=chat_client)
    provider.generate(HISTORY, "sys", build_default_registry())
    assert "response_format" not in chat_client.calls[0]["json"]


def test_timeout_maps_to_provider_timeout():
    client = DummyClient(exc=httpx.ReadTimeout("slow"))
    provider = OllamaGenerateProvider(base_url="http://ollama.test", policy=_policy(), client=client)
    with pytest.raises(ProviderTimeoutError):
        provider.generate(HISTORY, "sys", build_default_registry())


def test_http_status_and_connection_errors_map_to_unavailable():
    provider = OllamaGenerateProvider(
        base_url="http://ollama.test", policy=_policy(), client=DummyClient({}, status_code=503)
    )
    with pytest.raises(ProviderUnavailableError):
        provider.generate(HISTORY, "sys", build_default_registry())

    provider = OllamaGenerateProvider(
        base_url="http://ollama.test", policy=_policy(), client=DummyClient(exc=httpx.ConnectError("refused"))
    )
    with pytest.raises(ProviderUnavailableError):
        provider.generate(HISTORY, "sys", build_default_registry())


def test_adapter_uses_default_provider_and_system_prompt():
    registry = build_default_registry()
    client = DummyClient({"response": '{"text_response": "hi"}'})
    adapter = ModelAdapter(
        registry=registry,
        providers={"llama": OllamaGenerateProvider(base_url="http://ollama.test", policy=_policy(), client=client)},
        default_provider="llama",
    )

    assert adapter.converse(HISTORY) == [TextSegment(text="hi")]
    assert client.calls[0]["json"]["prompt"].startswith(FREE_TEXT_SYSTEM_PROMPT)

    adapter.converse(HISTORY, system_prompt="CUSTOM PROMPT", provider_id="LLAMA")
    assert client.calls[1]["json"]["prompt"].startswith("CUSTOM PROMPT")


def test_adapter_unknown_provider_is_config_error():
    adapter = ModelAdapter(registry=build_default_registry(), providers={}, default_provider="gemini")
    with pytest.raises(ProviderConfigError):
        adapter.converse(HISTORY, provider_id="gpt-9")


def test_adapter_from_settings_builds_three_providers():
    settings = AppSettings(gemini_api_key="k", default_provider="deepseek")
    adapter = ModelAdapter.from_settings(settings, build_default_registry())
    try:
        assert sorted(adapter.provider_ids) == ["deepseek", "gemini", "llama"]
        assert adapter.resolve_provider(None).provider_id == "deepseek"
        assert adapter.resolve_provider("gemini").structured is True
    finally:
        adapter.close()
