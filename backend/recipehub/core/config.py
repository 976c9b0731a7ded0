# recipehub/core/config.py
# Settings loaded from environment variables and .env
from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MONGODB_URI: str = "mongodb://localhost:27017"  # override per deployment
    MONGODB_DB: str = "recipe_hub"

    # catalog pagination
    DEFAULT_PAGE_SIZE: int = 12
    MAX_PAGE_SIZE: int = 100

    # new recipes skip moderation unless turned off
    AUTO_APPROVE: bool = True
    # optimistic write attempts for rating submissions
    RATING_WRITE_RETRIES: int = 3

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    class Config:
        env_file = ".env"

settings = Settings()
