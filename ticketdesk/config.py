"""
TicketDesk - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_db_password: str = ""
    supabase_db_host: str = ""
    supabase_db_port: int = 6543
    supabase_db_name: str = "postgres"
    supabase_db_user: str = ""

    # Freshdesk (integration is disabled when domain or key is empty)
    freshdesk_domain: str = ""
    freshdesk_api_key: str = ""
    freshdesk_timeout: float = 30.0
    freshdesk_max_retries: int = 3

    # Tickets
    ticket_number_prefix: str = "ET"
    sync_interval_minutes: int = 15

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def freshdesk_enabled(self) -> bool:
        """True when both Freshdesk credentials are configured"""
        return bool(self.freshdesk_domain and self.freshdesk_api_key)

    @property
    def FRESHDESK_BASE_URL(self) -> str:
        """Freshdesk REST API v2 root"""
        return f"https://{self.freshdesk_domain}/api/v2"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
