from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env.local", env_file_encoding="utf-8", extra="ignore", frozen=True)

    # Server
    PORT: int = 3000
    CORS_ALLOW_ORIGINS: str = "*"  # comma separated
    LOG_JSON: bool = False
    LOG_DIR: str = "logs"

    # LLM 선택 (한 프로세스 = 한 provider)
    LLM_PROVIDER: Literal["gemini", "groq", "openai"] = "gemini"

    # Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL_NAME: str = "gemini-1.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Groq (OpenAI compatible host)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL_NAME: str = "llama-3.3-70b-versatile"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL_NAME: str = "gpt-4o-mini"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"

    # Timeouts (seconds)
    LLM_TIMEOUT_SECONDS: float = 30.0
    LLM_PROBE_TIMEOUT_SECONDS: float = 10.0

    # prompt
    # Acknowledgement turn inserted after the financial context for turn-alternating providers
    CONTEXT_ACK_TEXT: str = "Tôi hiểu. Tôi sẽ giúp bạn với vai trò trợ lý tài chính dựa trên thông tin này."
    DEFAULT_SYSTEM_PROMPT: str = "You are a helpful personal finance assistant. Answer clearly and concisely."
    PROBE_MESSAGE: str = "Hello! Please reply with a short greeting."

    @field_validator("LLM_PROVIDER", mode="before")
    @classmethod
    def _lower_provider(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def api_key_for(self, profile) -> Optional[str]:
        return getattr(self, f"{profile.settings_prefix}_API_KEY", None)

    def model_for(self, profile) -> str:
        return getattr(self, f"{profile.settings_prefix}_MODEL_NAME")

    def base_url_for(self, profile) -> str:
        return getattr(self, f"{profile.settings_prefix}_BASE_URL").rstrip("/")


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency; tests replace it through app.dependency_overrides."""
    return settings
