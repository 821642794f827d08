from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    env: str = "dev"
    database_url: str = "sqlite:///./data/farewatch.db"
    redis_url: str = "redis://localhost:6379/0"

    cors_origin: str = "http://localhost:5173"

    amadeus_api_key: str = ""
    amadeus_api_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"
    amadeus_currency: str = "BRL"
    amadeus_max_offers: int = 50

    # 0 disables the monthly quota check
    amadeus_monthly_call_limit: int = 2000

    scheduler_interval_seconds: int = 60
    price_check_concurrency: int = 3
    price_check_max_retries: int = 2
    price_check_backoff_seconds: int = 60
    price_check_backoff_max_seconds: int = 900
    dedup_ttl_seconds: int = 3600

    def model_post_init(self, __context):
        if self.env == "prod" and self.database_url.startswith("sqlite"):
            raise ValueError(
                "Production requires explicit DATABASE_URL (not SQLite)"
            )

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
