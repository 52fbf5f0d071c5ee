"""
Centralized settings for tagmap.

All fields can be set via ``TAGMAP_*`` environment variables (e.g.
``TAGMAP_PAGINATION_MAX_LENGTH=500``) or a ``.env`` file.  Pagination
bounds are read by :class:`~tagmap.core.query.Pagination` every time a
length is clamped, so tests can override them with ``monkeypatch`` and
:func:`reset_settings`.

Tags:
    tagmap, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PAGINATION_DEFAULT_OFFSET = 0
PAGINATION_DEFAULT_LENGTH = 16
PAGINATION_MIN_LENGTH = 1
PAGINATION_MAX_LENGTH = 256


class TagmapSettings(BaseSettings):
    """tagmap configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TAGMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── SQL ──────────────────────────────────────────────────────
    dialect: str = Field(default="mysql", description="Dialect name for get_dialect()")

    # ── Pagination ───────────────────────────────────────────────
    pagination_default_length: int = Field(default=PAGINATION_DEFAULT_LENGTH)
    pagination_min_length: int = Field(default=PAGINATION_MIN_LENGTH, ge=1)
    pagination_max_length: int = Field(default=PAGINATION_MAX_LENGTH, ge=1)

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="mysql+pymysql://localhost:3306/tagmap")
    database_echo: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @model_validator(mode="after")
    def _validate_pagination(self) -> TagmapSettings:
        """Default length must fall inside [min, max]."""
        if self.pagination_min_length > self.pagination_max_length:
            raise ValueError(
                f"pagination_min_length ({self.pagination_min_length}) exceeds "
                f"pagination_max_length ({self.pagination_max_length})"
            )
        if not (
            self.pagination_min_length
            <= self.pagination_default_length
            <= self.pagination_max_length
        ):
            raise ValueError(
                f"pagination_default_length ({self.pagination_default_length}) "
                "is outside the configured bounds"
            )
        return self


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, TagmapSettings] = {}


def get_settings(*, _force_reload: bool = False) -> TagmapSettings:
    """Load, validate, and cache a :class:`TagmapSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = TagmapSettings()
    _settings_cache["default"] = settings
    return settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    _settings_cache.clear()


__all__ = [
    "PAGINATION_DEFAULT_OFFSET",
    "PAGINATION_DEFAULT_LENGTH",
    "PAGINATION_MIN_LENGTH",
    "PAGINATION_MAX_LENGTH",
    "TagmapSettings",
    "get_settings",
    "reset_settings",
]
