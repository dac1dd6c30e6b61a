# mindspace/config.py
from pydantic_settings import BaseSettings
from envparse import env

env.read_envfile()


class Settings(BaseSettings):
    DEBUG: bool = True
    DATABASE_URL: str = env("DATABASE_URL", "sqlite:///./mindspace.db")

    # HOST
    HOST: str = env("HOST", "localhost")
    PORT: int = env.int("PORT", default=8000)
    RELOAD: bool = env.bool("RELOAD", default=False)

    LOG_LEVEL: str = env("LOG_LEVEL", "INFO")

    # CORS Settings
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Tokens are issued by the external auth service and shared-secret signed
    SECRET_KEY: str = env("AUTH_JWT_SECRET", "your-secret-key-change-in-production")
    ALGORITHM: str = "HS256"
    REFRESH_TOKEN_EXPIRE_DAYS: int = 60
    AUTH_REFRESH_URL: str = env("AUTH_REFRESH_URL", "http://localhost:9999/token?grant_type=refresh_token")

    # Matchmaking
    OPEN_ROOMS_PAGE_SIZE: int = 10
    STALE_ROOM_MINUTES: int = env.int("STALE_ROOM_MINUTES", default=120)


settings = Settings()
