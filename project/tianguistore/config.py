# tianguistore/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    AUTH_SECRET_KEY: str
    AUTH_TOKEN_EXPIRE_MINUTES: int = 60
    AUTH_LOGIN: str = "admin@tianguistore.mx"     # seeded administrator
    AUTH_PASSWORD: str = "admin"

    DATABASE_URL: str = "sqlite+aiosqlite:///./tianguistore.db"
    DB_ECHO: bool = False

    ORDERS_PER_USER_LIMIT: int = 25
    CORS_ORIGINS: list[str] = ["*"]

    LOG_DIR: str = "tianguistore/log"
    LOG_PRINT: str = "1"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
