"""Pydantic configuration models for relmem."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "claude", "openai"}


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = cheap extraction model for the provider
    api_key: Optional[str] = None
    max_tokens: int = 2000
    temperature: float = 0.1

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"temperature must be 0-2, got {v}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    db_path: Path = Path("~/.relmem/relmem.db")
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db_path = self.db_path.expanduser()
        if self.log_file:
            self.log_file = self.log_file.expanduser()
        return self


class ReconcileConfig(BaseModel):
    """Fact reconciliation configuration."""

    batch_size: Optional[int] = None  # None = every pending observation
    delay_seconds: float = 0.5
    max_context_facts: int = 25
    strict_evidence: bool = False

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError(f"batch_size must be positive, got {v}")
        return v

    @field_validator("delay_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {v}")
        return v


class TimelineConfig(BaseModel):
    """Synthetic timestamp settings for scenario seeding."""

    business_start_hour: int = 9
    business_end_hour: int = 18
    weekday_bias: float = 0.8
    min_event_gap_days: int = 7
    max_event_gap_days: int = 30
    note_offset_minutes: int = 4
    max_collision_attempts: int = 100
    seed: Optional[int] = None  # fixed RNG seed for reproducible histories

    @field_validator("weekday_bias")
    @classmethod
    def validate_bias(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"weekday_bias must be 0-1, got {v}")
        return v

    @model_validator(mode="after")
    def validate_windows(self):
        if not 0 <= self.business_start_hour < self.business_end_hour <= 24:
            raise ValueError(
                f"Invalid business hours: {self.business_start_hour}-{self.business_end_hour}"
            )
        if self.min_event_gap_days > self.max_event_gap_days:
            raise ValueError("min_event_gap_days must not exceed max_event_gap_days")
        return self


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class PipelineConfig(BaseModel):
    """Main configuration model."""

    user_id: int = 1
    llm: LLMConfig = Field(default_factory=LLMConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        if self.llm.api_key:
            key = self.llm.api_key
            if key.startswith("${") and key.endswith("}"):
                env_var = key[2:-1]
                self.llm.api_key = os.getenv(env_var, "")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineConfig":
        """Create config from dict; string paths become Path objects."""
        if "paths" in data and isinstance(data["paths"], dict):
            for key in ["db_path", "log_file"]:
                if isinstance(data["paths"].get(key), str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
