# app/core/config.py
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret of the identity provider)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (only used for Storage uploads)
      - ADMIN_USER_IDS (comma-separated identity ids allowed into /admin)
      - PAYMENT_SECRET_KEY (payment provider secret, server-side only)
    """

    PROJECT_NAME: str = "Storefront API"
    API_V1_STR: str = "/api/v1"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "uploads"

    # e.g. ADMIN_USER_IDS=user_abc123,user_def456
    ADMIN_USER_IDS: str = ""

    # Payment provider (server-to-server confirm)
    PAYMENT_SECRET_KEY: str | None = None
    PAYMENT_CONFIRM_URL: str = "https://api.tosspayments.com/v1/payments/confirm"
    PAYMENT_TIMEOUT_SECONDS: float = 10.0

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def admin_user_ids(self) -> frozenset[str]:
        """Parsed allow-list; blanks are dropped."""
        return frozenset(
            part.strip() for part in self.ADMIN_USER_IDS.split(",") if part.strip()
        )


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
