from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    ledger_api_url: str = "http://localhost:5000/api"
    ledger_api_token: Optional[str] = None
    request_timeout_seconds: float = 10.0
    source_cache_ttl_seconds: float = 45.0
    feature_cross_project_dashboard: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context):
        # Older deployments configured the base URL with a trailing slash
        self.ledger_api_url = self.ledger_api_url.rstrip("/")

settings = Settings()
