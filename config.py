"""
Application settings for the Twenty-Two storefront API.

Every recognised option lives on ``Settings``; secrets have no fallback
values, so a misconfigured process fails at startup instead of running
with demo credentials.
"""

import logging
import sys
from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(..., description="MongoDB connection string")
    database_name: str = Field(..., description="MongoDB database name")

    admin_username: str = Field(..., min_length=1)
    admin_password: str = Field(..., min_length=1)
    token_secret: str = Field(..., min_length=16, description="HMAC key for session tokens")
    admin_token_ttl_seconds: int = Field(24 * 60 * 60, gt=0)
    user_token_ttl_seconds: int = Field(7 * 24 * 60 * 60, gt=0)
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    rate_limit_window_seconds: int = Field(15 * 60, gt=0)
    rate_limit_max_requests: int = Field(100, gt=0)
    rate_limit_backend: Literal["memory", "mongo"] = "memory"

    strict_query_options: bool = False

    free_shipping_threshold: float = Field(100, ge=0)
    base_shipping_fee: float = Field(12, ge=0)
    premium_cities: str = ""
    premium_city_surcharge: float = Field(3, ge=0)
    delivery_days: int = Field(5, ge=0)

    offline_queue_path: str = ""

    cors_origins: str = "*"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @property
    def premium_city_list(self) -> List[str]:
        return [c.strip() for c in self.premium_cities.split(",") if c.strip()]

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(h, "_storefront", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"
    ))
    handler._storefront = True
    root.addHandler(handler)
