"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./healcoin_ledger.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class CapsSettings(BaseModel):
    """Usage ceilings; changing them is a deploy-time operation."""

    daily_earn_cap: int = Field(default=1000, gt=0)
    daily_redeem_cap: int = Field(default=2000, gt=0)
    monthly_redeem_cap: int = Field(default=10000, gt=0)
    timezone: str = "UTC"


class FraudSettings(BaseModel):
    block_suspicious: bool = False

    velocity_window_seconds: int = 60
    velocity_threshold: int = 5
    velocity_sample: int = 10

    outlier_sample: int = 20
    outlier_floor: int = 50
    outlier_sigma: float = 3.0

    device_sample: int = 5
    device_threshold: int = 3
    geo_window_minutes: int = 60

    duplicate_window_minutes: int = 60
    duplicate_sample: int = 5


class LedgerSettings(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = 0.05
    max_delay: float = 1.0
    idempotency_window_hours: int = 24


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    project_name: str = "HealCoin Ledger"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    caps: CapsSettings = CapsSettings()
    fraud: FraudSettings = FraudSettings()
    ledger: LedgerSettings = LedgerSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port


@lru_cache()
def get_settings() -> Settings:
    return Settings()
