"""
Configuration management for the bulletin service
"""
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


INSECURE_JWT_SECRET = "change-this-secret-in-prod"


class SeedAccount(BaseModel):
    """Account provisioned at startup when no user with its email exists."""
    name: str
    email: str
    password: str


class Settings(BaseSettings):
    """Service configuration loaded from environment variables"""

    # Server Configuration
    APP_ENV: str = "development"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    SERVERLESS: bool = False

    # Database Configuration
    DATABASE_URL: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DATABASE: str = "verceldb"
    POSTGRES_USER: str = "default"
    POSTGRES_PASSWORD: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    # Token Configuration
    JWT_SECRET: str = INSECURE_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_HOURS: int = 24

    # Password Configuration
    # Accept unhashed passwords left over from the first deployment.
    # Turn off once every account has logged in (and been re-hashed).
    LEGACY_PLAINTEXT_PASSWORDS: bool = False

    # Accounts created at startup, e.g.
    # SEED_ACCOUNTS='[{"name": "Ana", "email": "ana@example.com", "password": "..."}]'
    SEED_ACCOUNTS: List[SeedAccount] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def database_url(self) -> str:
        """DATABASE_URL when set, otherwise a Postgres URL built from POSTGRES_*."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{quote_plus(self.POSTGRES_USER)}:"
            f"{quote_plus(self.POSTGRES_PASSWORD)}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"
        )

    @property
    def uses_insecure_secret(self) -> bool:
        return self.JWT_SECRET == INSECURE_JWT_SECRET


# Global settings instance
settings = Settings()
