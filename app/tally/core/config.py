from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "TALLY-CLOUD"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    DATABASE_URL: str = "sqlite+pysqlite:///./tally.db"
    MAX_PARTICIPANTS_PER_SESSION: int = 10
    MAX_OPEN_SESSIONS_PER_HOST: int = 3
    MAX_SESSIONS_PER_DAY: int = 10
    ACCESS_CODE_LENGTH: int = 6
    ACCESS_CODE_ALPHABET: str = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
    ACCESS_CODE_MAX_ATTEMPTS: int = 5
    JOIN_INVALID_CODE_DELAY_SECONDS: float = 2.0
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    JOIN_RATE_LIMIT: str = "10/minute"
    SYNC_MAX_BATCH: int = 1000
    PENDING_SYNC_WINDOW_SECONDS: int = 30
    ABANDONED_SESSION_DAYS: int = 30
    RETENTION_DAYS: int = 180
    PRODUCTS_MAX_PAGE_SIZE: int = 200
    MAINTENANCE_TOKEN: str = ""
    METRICS_ENABLED: bool = True

settings = Settings()
