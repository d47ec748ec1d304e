"""
Application Settings for AllCare Subscriptions

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    STORE_BACKEND controls where subscription documents live:
    - memory: Process-local dict (default for dev and tests)
    - supabase: Supabase table addressed by document path
    - database: SQLModel table over DATABASE_URL
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Document Store Configuration
    store_backend: Literal["memory", "supabase", "database"] = "memory"

    # Supabase Configuration (for store_backend=supabase)
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    supabase_documents_table: str = "documents"

    # Database Configuration (for store_backend=database)
    database_url: Optional[str] = None
    database_echo: bool = False

    # Wallet Configuration
    default_wallet_balance: float = 100.00
    transaction_history_limit: int = 10

    # Simulated payment processing
    # The wallet top-up and the plan checkout flows keep separate rates
    top_up_success_rate: float = 0.9
    account_creation_success_rate: float = 0.8
    payment_processing_delay_seconds: float = 1.5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_store_backend(self) -> "Settings":
        """Validate store credentials based on selected store_backend."""
        if self.store_backend == "supabase":
            if not self.supabase_url or not self.supabase_service_role_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required when STORE_BACKEND=supabase"
                )

        elif self.store_backend == "database":
            if not self.database_url:
                raise ValueError("DATABASE_URL required when STORE_BACKEND=database")

        for name in ("top_up_success_rate", "account_creation_success_rate"):
            rate = getattr(self, name)
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"{name.upper()} must be between 0 and 1, got {rate}")

        if self.payment_processing_delay_seconds < 0:
            raise ValueError("PAYMENT_PROCESSING_DELAY_SECONDS cannot be negative")

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
