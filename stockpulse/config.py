from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "SP_", "env_file": ".env", "env_file_encoding": "utf-8"}

    twelve_data_api_key: str = Field(default="demo", min_length=1)
    twelve_data_base_url: str = Field(default="https://api.twelvedata.com")

    rate_limit_delay_ms: int = Field(default=2000, ge=0)
    max_daily_calls: int = Field(default=800, gt=0)
    search_cache_ttl_seconds: float = Field(default=300.0, gt=0)

    refresh_interval_seconds: float = Field(default=30.0, gt=0)
    market_status_interval_seconds: float = Field(default=60.0, gt=0)
    market_utc_offset_hours: int = Field(default=-5, ge=-12, le=14)

    series_interval: str = Field(default="1day")
    series_outputsize: int = Field(default=30, gt=0)
    default_symbol: str = Field(default="AAPL")

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    cors_origins: str = Field(default="http://localhost:3000")


settings = Settings()
