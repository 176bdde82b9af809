from pydantic_settings import BaseSettings

APP_NAME = "Amity"
ACCESS_CODE_LENGTH = 6
MAX_CAPTION_LENGTH = 1000
MAX_BOARD_NAME_LENGTH = 100
DEFAULT_FETCH_LIMIT = 100
BOARD_LIST_LIMIT = 50


class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    FRONTEND_URL: str = "http://localhost:5173"
    FRONTEND_URLS: str | None = None
    REDIS_URL: str | None = None
    DRAFTS_DIR: str = ".drafts"
    DRAFTS_STORAGE_KEY: str = "thisisus_memory_drafts"
    DRAFT_SYNC_INTERVAL_MINUTES: int = 5
    RETRY_INITIAL_DELAY_SECONDS: float = 1.0
    FETCH_CHUNK_SIZE: int = 5
    R2_ACCOUNT_ID: str | None = None
    R2_ACCESS_KEY_ID: str | None = None
    R2_SECRET_ACCESS_KEY: str | None = None
    R2_BUCKET_NAME: str | None = None
    R2_ENDPOINT_URL: str | None = None
    R2_REGION: str = "auto"
    MEDIA_PUBLIC_BASE_URL: str | None = None
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    NOTIFY_WEBHOOK_URL: str | None = None

    class Config:
        env_file = ".env"

settings = Settings()
