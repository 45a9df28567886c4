"""
Error taxonomy for the assistant core.

Registry and provider errors are raised inside their layer and converted
into a ResponseEnvelope at the layer boundary. Only RegistryConfigError is
allowed to escape (startup wiring).
"""

from __future__ import annotations


class AssistantError(Exception):
    """Base class for all assistant errors."""


# ─── Registry ──────────────────────────────────────────────────

class UnknownActionError(AssistantError):
    """Tool call names an action that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown action '{name}'.")


class InvalidArgumentError(AssistantError):
    """Tool call arguments do not match the declared schema."""

    def __init__(self, action: str, parameter: str, reason: str):
        self.action = action
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"Invalid argument '{parameter}' for '{action}': {reason}")


class RegistryConfigError(AssistantError):
    """Registry and data store capability disagree at startup."""


# ─── Model providers ───────────────────────────────────────────

class ProviderError(AssistantError):
    """Base class for model provider faults."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(ProviderError):
    """Provider answered without usable candidate content, or with an HTTP error."""


class ProviderConfigError(ProviderError):
    """Provider is unknown or missing credentials/configuration."""


class ProviderTimeoutError(ProviderError):
    """Provider call exceeded the request timeout."""


# ─── Data layer ────────────────────────────────────────────────

class DataError(AssistantError):
    """Data store operation failed (not found, constraint violation, ...)."""
