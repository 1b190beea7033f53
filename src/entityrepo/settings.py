"""Repository settings.

Both policies the repository applies uniformly to every entity type, the
existence check and the log severity, live here. A repository reads them
once, at construction, so two repositories with different settings never
interfere with each other.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at construction
    - **Environment-driven:** Reads ``ENTITYREPO_*`` env vars and ``.env``
    - **Immutable:** Frozen once built; build a new instance to change policy

Features:
    - **check_found:** Existence check policy (default off)
    - **log_level:** Severity of repository log records (default DEBUG)
    - **database_url / echo:** Engine defaults for ``create_engine_from_settings``

Examples:
    >>> from entityrepo.settings import RepositorySettings
    >>> RepositorySettings(check_found=True).check_found
    True
    >>> RepositorySettings(log_level="info").log_level_number
    20

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositorySettings(BaseSettings):
    """Settings for :class:`~entityrepo.repository.EntityRepository`.

    Fields
    ──────
    log_level     : Severity for repository log records (stdlib level name)
    check_found   : Raise NotFoundError for absent by-id targets
    database_url  : SQLAlchemy async URL for the default engine
    echo          : Log all SQL emitted by the default engine
    """

    model_config = SettingsConfigDict(
        env_prefix="ENTITYREPO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Policy ───────────────────────────────────────────────────
    log_level: str = "DEBUG"
    check_found: bool = False

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite+aiosqlite:///:memory:",
        description="SQLAlchemy async database URL",
    )
    echo: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        name = value.strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level: {value!r}")
        return name

    @property
    def log_level_number(self) -> int:
        """Numeric stdlib level for ``log_level``."""
        return logging.getLevelName(self.log_level)
