from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./restaurant.db"
    database_echo: bool = False

    jwt_secret: str = "change-me"  # 🔐 set JWT_SECRET in production
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "restaurant:auth"

    # Max outstanding variant/group fetches per list_items call
    hydration_concurrency: int = Field(8, ge=1)

    spaces_key: str | None = None
    spaces_secret: str | None = None
    spaces_region: str = "nyc3"
    spaces_bucket: str = "menu-items"
    spaces_endpoint: str | None = None  # e.g. https://nyc3.digitaloceanspaces.com
    spaces_cdn_base: str | None = None  # e.g. https://<bucket>.nyc3.cdn.digitaloceanspaces.com
    spaces_prefix: str = "prod"

    max_image_bytes: int = 5 * 1024 * 1024
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
