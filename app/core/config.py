from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # PostgreSQL Configuration
    postgres_user: str = Field(default="admin")
    postgres_password: str = Field(default="admin")
    postgres_db: str = Field(default="storefront")
    postgres_host: str = Field(default="db")
    postgres_port: int = Field(default=5432)

    # Redis Configuration
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_pool_size: int = Field(default=10)

    # Application Configuration
    app_env: str = Field(default="dev")
    api_port: int = Field(default=8000)
    api_base_url: str = Field(default="http://localhost:8000")  # used by the worker cron jobs

    # Catalog collaborator (storefront catalog API)
    catalog_api_url: str = Field(default="http://localhost:3000/api/catalog")
    catalog_timeout_seconds: float = Field(default=5.0)

    # Trending defaults (TrendingConfig is initialised from these at startup)
    trending_update_interval_minutes: int = Field(default=5)
    trending_enabled: bool = Field(default=True)
    trending_window_hours: int = Field(default=24)
    trending_new_item_window_hours: int = Field(default=24)
    trending_max_ranked_items: int = Field(default=10)
    trending_retention_days: int = Field(default=30)
    trending_recent_log_size: int = Field(default=1000)

    # Scoring weights
    weight_product_view: float = Field(default=3.0)
    weight_result_click: float = Field(default=5.0)
    weight_search: float = Field(default=1.5)

    # Persistence / snapshot mirror
    persistence_enabled: bool = Field(default=True)
    persistence_timeout_seconds: float = Field(default=5.0)
    persistence_queue_size: int = Field(default=10000)
    snapshot_mirror_enabled: bool = Field(default=True)
    snapshot_mirror_ttl: int = Field(default=86400)  # 1 day

    # Worker
    refresh_cron_minutes: List[int] = Field(default=[0, 10, 20, 30, 40, 50])

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS - allow storefront origins (filter out None values)
    allowed_origins: List[str] = [
        origin for origin in [
            "http://localhost:3000",   # Next.js storefront
            os.getenv("FRONTEND_URL")
        ] if origin is not None
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
