"""
Configuration
=============

`PipelineConfig` collects the knobs of one session: where the three data
files live, the initial time range, and logging. Values come from the field
defaults, then `FIRA_*` environment variables (e.g. `FIRA_FIRES_PATH`,
`FIRA_START`, `FIRA_LENIENT`), then CLI flags via `with_overrides`.
"""

from __future__ import annotations
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .loader import parse_datetime
from .models import DEFAULT_END, DEFAULT_START


class PipelineConfig(BaseSettings):
    """Settings for one session."""

    fires_path: str = Field(default="fire_info.csv", description="Incident CSV")
    weather_path: str = Field(default="weather_info.csv", description="Weather CSV")
    socio_path: str = Field(default="other_info.json", description="Socio-economic JSON array")

    start: datetime = Field(default=DEFAULT_START, description="Initial range start")
    end: datetime = Field(default=DEFAULT_END, description="Initial range end")

    lenient: bool = Field(
        default=False,
        description="Skip (and report) malformed incident rows instead of rejecting the file"
    )

    log_level: str = Field(default="INFO", description="Level for the fira loggers")

    model_config = SettingsConfigDict(env_prefix="FIRA_", frozen=True, extra="ignore")

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_dates(cls, v: Any, info):
        """Dates go through the same ISO 8601 parser as the data files."""
        if isinstance(v, str):
            return parse_datetime(v, info.field_name)
        return v

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.strip().upper()

    def with_overrides(self, **kwargs) -> "PipelineConfig":
        """Apply non-None keyword overrides (e.g. parsed CLI flags), validated like any other source."""
        values = self.model_dump()
        values.update({k: v for k, v in kwargs.items() if v is not None})
        return type(self)(**values)
