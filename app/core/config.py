from pydantic_settings import BaseSettings
from typing import Optional, List


def _parse_allowed_origins(v: str) -> List[str]:
    """Parse comma-separated origins string; strip whitespace; keep non-empty."""
    if not v or not v.strip():
        return []
    return [o.strip() for o in v.split(",") if o.strip()]


_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql://postgres:postgres@db:5432/saas_starter"

    # CORS: comma-separated extra origins for production (e.g. https://app.example.com)
    ALLOWED_ORIGINS_EXTRA: str = ""

    def get_allowed_origins(self) -> List[str]:
        """Return CORS allowed origins: default localhost + ALLOWED_ORIGINS_EXTRA."""
        return _DEFAULT_CORS_ORIGINS + _parse_allowed_origins(self.ALLOWED_ORIGINS_EXTRA)

    # Auth provider: access tokens are HS256 JWTs signed with the project's JWT secret
    AUTH_JWT_SECRET: str = "super-secret-jwt-token-change-in-production"
    AUTH_JWT_AUDIENCE: str = "authenticated"

    # Polar
    POLAR_API_URL: str = "https://api.polar.sh/v1"
    POLAR_ACCESS_TOKEN: Optional[str] = None
    POLAR_ORGANIZATION_ID: Optional[str] = None
    POLAR_WEBHOOK_SECRET: Optional[str] = None  # Shared secret for webhook HMAC verification
    POLAR_TIMEOUT_SECONDS: float = 30.0

    # Frontend
    APP_URL: str = "http://localhost:3000"  # Used for checkout success redirects

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        # Environment variables take precedence over .env


settings = Settings()
