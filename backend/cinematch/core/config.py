from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "postgresql+psycopg2://cinematch:cinematch@db:5432/cinematch"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # TMDB (external metadata source)
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p"
    tmdb_timeout_seconds: float = 10.0

    # Upper bound on pages one sync call may walk through
    sync_max_pages: int = 5

    default_page_size: int = 20
    max_page_size: int = 100

    # Comma-separated
    cors_origins: str = "*"
    log_level: str = "INFO"

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
