"""
Process-wide configuration.

Built once at startup from the environment (after load_dotenv) and passed
down explicitly. Nothing else reads model credentials from os.environ.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_YES_WORDS = (
    "yes", "y", "ok", "okay", "sure", "confirm", "confirmed", "proceed", "go ahead",
    "ya", "iya", "yakin", "lanjut", "lanjutkan", "setuju", "boleh",
    "sim", "s", "confirmo", "confirmar",
)
DEFAULT_NO_WORDS = (
    "no", "n", "nope", "cancel", "stop", "abort",
    "tidak", "tdk", "batal", "batalkan", "jangan",
    "nao", "cancelar", "cancela",
)


def _env_words(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


class AppSettings(BaseModel):
    """Runtime configuration for the whole process."""
    model_config = {"frozen": True}

    # Structured-tool provider
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash-latest"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"

    # Free-text providers
    llama_api_url: str = "http://localhost:11434"
    llama_model: str = "llama3.1"
    deepseek_base_url: str = "http://localhost:11434"
    deepseek_model: str = "deepseek-r1:8b"
    deepseek_api_key: str = ""

    default_provider: str = "gemini"
    model_timeout_seconds: float = Field(default=60.0, gt=0.0)

    # Storage
    academic_db_path: str = "academic.db"
    conversation_db_path: str = "conversations.db"
    history_limit: int = Field(default=20, ge=1)

    # Confirmation
    confirm_yes_words: tuple[str, ...] = DEFAULT_YES_WORDS
    confirm_no_words: tuple[str, ...] = DEFAULT_NO_WORDS

    # Runtime
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> AppSettings:
        """Read settings from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest").strip(),
            gemini_base_url=os.getenv(
                "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com"
            ).strip().rstrip("/"),
            llama_api_url=os.getenv("LLAMA_API_URL", "http://localhost:11434").strip().rstrip("/"),
            llama_model=os.getenv("LLAMA_MODEL_NAME", "llama3.1").strip(),
            deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", "http://localhost:11434").strip().rstrip("/"),
            deepseek_model=os.getenv("DEEPSEEK_MODEL_NAME", "deepseek-r1:8b").strip(),
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY", "").strip(),
            default_provider=os.getenv("DEFAULT_PROVIDER", "gemini").strip().lower() or "gemini",
            model_timeout_seconds=float(os.getenv("MODEL_TIMEOUT_SECONDS", "60")),
            academic_db_path=os.getenv("ACADEMIC_DB_PATH", "academic.db"),
            conversation_db_path=os.getenv("CONVERSATION_DB_PATH", "conversations.db"),
            history_limit=int(os.getenv("HISTORY_LIMIT", "20")),
            confirm_yes_words=_env_words("CONFIRM_YES_WORDS", DEFAULT_YES_WORDS),
            confirm_no_words=_env_words("CONFIRM_NO_WORDS", DEFAULT_NO_WORDS),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            api_host=os.getenv("API_HOST", "127.0.0.1").strip(),
            api_port=int(os.getenv("API_PORT", "8000")),
        )
