# duka/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
    ]

    # Auth (tokens are issued by the identity provider)
    AUTH_SECRET_KEY: str
    AUTH_ALGORITHM: Literal["HS256", "HS512"] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Database
    DATABASE_URL: str = "sqlite:///./duka.db"

    # Object storage (product images)
    S3_ENDPOINT: str | None = None
    S3_ACCESS_KEY: str | None = None
    S3_SECRET_KEY: str | None = None
    S3_BUCKET: str = "duka-images"
    S3_REGION: str = "us-east-1"
    S3_PUBLIC_URL: str | None = None

    # Shop
    LOW_STOCK_THRESHOLD: int = 10
    CURRENCY: str = "Ksh"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
    )


settings = Settings()
