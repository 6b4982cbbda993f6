from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]   # dashboard Vite

    # MongoDB (registre des tokens partenaires)
    MONGO_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "tookan_bridge"

    # JWT (utilisateurs internes)
    JWT_SECRET: str = "changeme_minimum_32_chars_here_please"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120

    # Tookan
    TOOKAN_API_KEY: Optional[str] = None
    TOOKAN_BASE_URL: str = "https://api.tookanapp.com/v2"
    TOOKAN_TIMEOUT_SECONDS: float = 15.0
    TOOKAN_TIMEZONE: Optional[int] = None   # décalage en minutes envoyé avec create_task

    # Cache wallets : 5 min par défaut, borné à 10 min (services/wallet_cache.py)
    WALLET_CACHE_TTL_SECONDS: float = 300.0

    # EDI
    EDI_RATE_LIMIT: str = "60/minute"

    model_config = SettingsConfigDict(
        env_file=[".env", "../.env"],  # cherche dans backend/ puis dans la racine
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
