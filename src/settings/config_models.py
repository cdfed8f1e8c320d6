"""Pydantic configuration models for rapport."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "claude", "openai", "gemini", "stepfun"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Expand a ``${VAR}`` placeholder into the environment value."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LLMConfig(BaseModel):
    """Text-generation provider configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = provider's cheap default
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 1500

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class TranscriptionConfig(BaseModel):
    """Speech-to-text endpoint (OpenAI-compatible /audio/transcriptions)."""

    base_url: str = "https://api.stepfun.com/v1"
    api_key: Optional[str] = "${STEPFUN_API_KEY}"
    model: str = "step-asr"
    timeout_seconds: float = 60.0


class CaptureConfig(BaseModel):
    """Capture pipeline tunables."""

    uncategorized_tag: str = "uncategorized"
    new_contact_tag: str = "new-contact"
    max_tags: int = 5
    max_text_chars: int = 6000
    self_aliases: list[str] = Field(default_factory=list)
    normalize_temperature: float = 0.3
    people_temperature: float = 0.3
    tags_temperature: float = 0.5
    summary_temperature: float = 0.5

    @field_validator("max_tags", "max_text_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be positive, got {v}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    db_path: Path = Path("~/rapport/rapport.db")
    log_file: Path = Path("~/rapport/rapport.log")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db_path = self.db_path.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


class RetryConfig(BaseModel):
    """Retry/backoff configuration."""

    max_attempts: int = 3
    min_wait: float = 2.0
    llm_max_wait: float = 30.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class RapportConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        self.llm.api_key = _expand_env(self.llm.api_key)
        self.transcription.api_key = _expand_env(self.transcription.api_key)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "RapportConfig":
        """Create config from dict, coercing string paths."""
        if "paths" in data:
            for key in ["db_path", "log_file"]:
                if key in data["paths"] and isinstance(data["paths"][key], str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
