from typing import Optional

from pydantic import AnyHttpUrl, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Generative model provider (Gemini REST API)
    gemini_api_key: SecretStr
    gemini_model: str = "gemini-2.0-flash"
    gemini_embedding_model: str = "text-embedding-004"
    gemini_api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Vector search (Pinecone index host)
    pinecone_api_key: SecretStr
    pinecone_base_url: AnyHttpUrl
    pinecone_index_name: str = ""

    # Assistant persona
    profile_name: str
    profile_role: str
    profile_style: str
    prompt_template_path: Optional[str] = None

    # Newsletter (Listmonk)
    listmonk_base_url: Optional[AnyHttpUrl] = None
    listmonk_username: Optional[str] = None
    listmonk_api_key: Optional[SecretStr] = None

    # Rate limiting is off unless a per-IP maximum is configured
    rate_limit_max_per_ip: Optional[int] = None
    rate_limit_window_hours: float = 24.0
    redis_url: Optional[str] = None

    # Optional answer persistence
    database_url: Optional[str] = None

    cors_allow_origin: str = "*"
    log_level: str = "INFO"
    http_timeout_seconds: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def pinecone_url(self) -> str:
        return str(self.pinecone_base_url).rstrip("/")

    @property
    def rate_limiting_enabled(self) -> bool:
        return bool(self.rate_limit_max_per_ip) and self.rate_limit_max_per_ip > 0


settings = Settings()
