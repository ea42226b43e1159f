"""TaskHive configuration — loaded from environment / .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="TASKHIVE_", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"

    # Managed backend (Supabase Postgres + auth API)
    database_url: str = "sqlite+aiosqlite:///./taskhive.db"
    supabase_url: str = ""
    supabase_service_key: str = ""

    # Upstream chat-completions gateway
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_gateway_api_key: str = ""
    ai_model: str = "google/gemini-3-flash-preview"
    upstream_timeout: float = 120.0

    cors_origins: list[str] = ["*"]

    @property
    def auth_user_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1/user"


settings = Settings()
