from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "query-crud-engine"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000"

    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    QUERY_DEFAULT_PER_PAGE: int = 15
    QUERY_MAX_PER_PAGE: int = 100
    # Rows fetched per round-trip when streaming a whole table (delete_all).
    QUERY_CHUNK_SIZE: int = 200

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def clamp_per_page(self, per_page: int | None) -> int:
        value = int(per_page or self.QUERY_DEFAULT_PER_PAGE)
        return max(1, min(value, self.QUERY_MAX_PER_PAGE))

settings = Settings()
