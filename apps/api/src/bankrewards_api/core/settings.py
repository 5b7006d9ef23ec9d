from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production", "test"] = "development"
    database_url: str = "sqlite+aiosqlite:///./bankrewards.db"
    database_echo: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Persistence wiring
    repository_backend: Literal["memory", "sql"] = "memory"
    database_auto_create: bool = False
    seed_demo_data: bool = False

    # Internal API security
    admin_api_key: str = ""

    # Earning
    default_currency: str = "ETB"
    tier_auto_promotion_enabled: bool = False

    # Redemption
    voucher_code_prefix: str = "CBO"
    voucher_validity_days: int = 180
    # Comma separated in the environment, e.g. VOUCHER_REWARD_TYPES=voucher,giftcard
    voucher_reward_types: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["voucher"])

    @field_validator("voucher_reward_types", mode="before")
    @classmethod
    def _parse_reward_types(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    # History / dashboard windows
    history_default_limit: int = 50
    history_max_limit: int = 200
    recent_activity_limit: int = 10
    customer_list_default_limit: int = 50


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
