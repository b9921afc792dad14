"""Runtime settings read from the environment."""

import logging
import os

from pydantic import BaseModel, Field, field_validator

from undercover.rules import VOCABULARIES, Vocabulary

ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_PRESENCE_TIMEOUT_SEC = "PRESENCE_TIMEOUT_SEC"
ENV_CODE_MAX_ATTEMPTS = "CODE_MAX_ATTEMPTS"
ENV_CAS_MAX_RETRIES = "CAS_MAX_RETRIES"
ENV_CORS_ORIGINS = "CORS_ORIGINS"
ENV_VOCABULARY = "VOCABULARY"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseModel):
    log_level: str = "INFO"
    presence_timeout_sec: float = Field(default=30.0, gt=0)
    code_max_attempts: int = Field(default=50, ge=1)
    cas_max_retries: int = Field(default=5, ge=1)
    cors_origins: str = "*"
    vocabulary: str = Field(default="classic", pattern="^(classic|alt)$")

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def vocab(self) -> Vocabulary:
        return VOCABULARIES[self.vocabulary]

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def get_settings() -> Settings:
    """Settings from env vars; raw strings are parsed and checked by the model."""
    return Settings(
        log_level=os.getenv(ENV_LOG_LEVEL, "INFO"),
        presence_timeout_sec=os.getenv(ENV_PRESENCE_TIMEOUT_SEC, "30"),
        code_max_attempts=os.getenv(ENV_CODE_MAX_ATTEMPTS, "50"),
        cas_max_retries=os.getenv(ENV_CAS_MAX_RETRIES, "5"),
        cors_origins=os.getenv(ENV_CORS_ORIGINS, "*"),
        vocabulary=os.getenv(ENV_VOCABULARY, "classic").strip().lower(),
    )
