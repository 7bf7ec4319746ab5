from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Unset means "no store configured": reads come back empty and
    # mutations fail with 503 instead of crashing at startup.
    DATABASE_URL: str | None = None
    DB_ECHO: bool = False
    REDIS_URL: str | None = None
    LOG_LEVEL: str = "INFO"
    SECRET_KEY: str = "change-me-in-production"

    # Browser origins allowed to call with the session cookie.
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Identity that is granted the admin role on upsert.
    OWNER_OPEN_ID: str | None = None

    # Session cookie
    SESSION_COOKIE_NAME: str = "app_session_id"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 365

    # Cache TTLs
    CACHE_TTL_TAXONOMY: int = 300

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
