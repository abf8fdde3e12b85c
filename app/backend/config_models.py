from __future__ import annotations

import math
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from errors import PriceError
from pricing import normalize_area_code
from services.price_fetcher import DEFAULT_API_BASE_URL, DEFAULT_REQUEST_TIMEOUT


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class AppConfigModel(StrictModel):
    area_code: str | None = None
    max_price: float | None = None
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, pattern=r"^https?://")
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0.0, le=300.0)
    cache_dir: str | None = None
    timezone: str | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @field_validator("area_code", mode="before")
    @classmethod
    def normalize_area(cls, value):
        if value is None or value == "":
            return None
        try:
            return normalize_area_code(value)
        except PriceError as exc:
            raise ValueError(exc.message) from None

    @field_validator("max_price")
    @classmethod
    def validate_max_price(cls, value):
        if value is not None and not math.isfinite(value):
            raise ValueError("max_price must be a finite number.")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value):
        if not value:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {value}.") from exc
        return value
