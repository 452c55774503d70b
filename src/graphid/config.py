"""Configuration for identifier generation.

The namespace constants are not settings: they are hash inputs and live in
:mod:`graphid.constants`.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, PositiveFloat, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentifierSettings(BaseSettings):
    """Settings model driven by environment variables.

    Environment variables are prefixed with ``GRAPHID_``. For example, set
    ``GRAPHID_LOOKUP_TIMEOUT_SECONDS=2.5`` to bound cross-reference lookups.
    """

    model_config = SettingsConfigDict(
        env_prefix="GRAPHID_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    lookup_timeout_seconds: Optional[PositiveFloat] = Field(
        default=10.0,
        description="Upper bound on a single cross-reference lookup. Unset to wait indefinitely.",
    )
    dsn: Optional[PostgresDsn] = Field(
        default=None,
        description="PostgreSQL connection string of the store used to resolve cross-references.",
    )
    db_schema: str = Field(
        default="graphid",
        description="Database schema holding the entities table.",
        min_length=1,
    )
    entities_table: str = Field(
        default="entities",
        description="Table mapping internal entity ids to their standard ids.",
        min_length=1,
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level applied by the command-line interface.",
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"log_level must be a standard logging level name, got {value!r}")
        return normalized


@lru_cache(maxsize=1)
def get_settings() -> IdentifierSettings:
    """Return a cached ``IdentifierSettings`` instance."""

    return IdentifierSettings()


__all__ = ["IdentifierSettings", "get_settings"]
