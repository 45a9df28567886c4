"""
Model Adapter — single entry point for every LLM call.

Responsibility:
- Pick the provider for the turn (explicit id or configured default)
- Choose the default system prompt for the provider class
- Return an ordered list of TextSegment | ToolCall

This is the ONLY place where LLMs are called. Provider faults are raised as
ProviderError subclasses; the conversation loop turns them into envelopes.
"""

import logging

from models.providers import (
    GeminiProvider,
    ModelProvider,
    OllamaGenerateProvider,
    OpenAICompatibleProvider,
)
from observability.logger import Observability
from registry.action_registry import ActionRegistry
from shared.config import AppSettings
from shared.errors import ProviderConfigError
from shared.models import Message, ModelPolicy, Segment

logger = logging.getLogger(__name__)


class ModelAdapter:
    """Normalizes heterogeneous model backends into one segment sequence."""

    def __init__(
        self,
        registry: ActionRegistry,
        providers: dict[str, ModelProvider],
        default_provider: str,
    ):
        self.registry = registry
        self.providers = dict(providers)
        self.default_provider = default_provider

    @classmethod
    def from_settings(cls, settings: AppSettings, registry: ActionRegistry) -> "ModelAdapter":
        """Construct every configured provider once, at startup."""
        timeout = settings.model_timeout_seconds
        providers: dict[str, ModelProvider] = {
            "gemini": GeminiProvider(
                api_key=settings.gemini_api_key,
                base_url=settings.gemini_base_url,
                policy=ModelPolicy(model_name=settings.gemini_model, timeout_seconds=timeout),
            ),
            "llama": OllamaGenerateProvider(
                base_url=settings.llama_api_url,
                policy=ModelPolicy(model_name=settings.llama_model, timeout_seconds=timeout),
            ),
            "deepseek": OpenAICompatibleProvider(
                base_url=settings.deepseek_base_url,
                api_key=settings.deepseek_api_key,
                policy=ModelPolicy(model_name=settings.deepseek_model, timeout_seconds=timeout),
            ),
        }
        return cls(registry=registry, providers=providers, default_provider=settings.default_provider)

    @property
    def provider_ids(self) -> list[str]:
        return list(self.providers.keys())

    def resolve_provider(self, provider_id: str | None) -> ModelProvider:
        key = (provider_id or self.default_provider or "").strip().lower()
        provider = self.providers.get(key)
        if provider is None:
            raise ProviderConfigError(key or "?", f"Unknown model provider '{key}'.")
        return provider

    def converse(
        self,
        history: list[Message],
        system_prompt: str | None = None,
        provider_id: str | None = None,
        session_id: str | None = None,
    ) -> list[Segment]:
        """Send the conversation to a provider; return its segments in order."""
        provider = self.resolve_provider(provider_id)
        prompt = system_prompt or provider.default_system_prompt
        obs = Observability(session_id)

        with obs.measure(
            "model_call",
            {"provider": provider.provider_id, "model": provider.policy.model_name},
        ) as metric:
            segments = provider.generate(history, prompt, self.registry)
            metric["segments"] = len(segments)

        logger.info("Provider %s returned %d segment(s)", provider.provider_id, len(segments))
        return segments

    def close(self) -> None:
        """Close persistent provider connections."""
        for provider in self.providers.values():
            provider.close()
