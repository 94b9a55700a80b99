"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, opsconsole.toml only contains
overrides. A fresh install needs only ``[store] url``.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    url: str | None = None  # None → sqlite file beside the config
    echo: bool = False


class HierarchyConfig(BaseModel):
    """[hierarchy] section."""

    model_config = {"frozen": True}

    group_type_name: str | None = "GROUP_MANAGEMENT"
    group_type_ids: list[str] = Field(default_factory=list)


class LoaderConfig(BaseModel):
    """[loader] section."""

    model_config = {"frozen": True}

    max_workers: int = Field(default=4, ge=1)
    sync: bool = False


class NavigationConfig(BaseModel):
    """[navigation] section."""

    model_config = {"frozen": True}

    seed_expanded: list[str] = Field(default_factory=list)


class LoggingConfig(BaseModel):
    """[logging] section."""

    model_config = {"frozen": True}

    store_timings: bool = False
    levels: dict[str, str] = Field(default_factory=dict)

    @field_validator("levels")
    @classmethod
    def _known_level_names(cls, value: dict[str, str]) -> dict[str, str]:
        known = logging.getLevelNamesMapping()
        for name, level in value.items():
            if level.upper() not in known:
                msg = f"unknown log level {level!r} for logger {name!r}"
                raise ValueError(msg)
        return {name: level.upper() for name, level in value.items()}
