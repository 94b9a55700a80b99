"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``OPSCONSOLE_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``opsconsole.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from opsconsole.config.discovery import find_config
from opsconsole.config.models import (
    HierarchyConfig,
    LoaderConfig,
    LoggingConfig,
    NavigationConfig,
    StoreConfig,
)

DEFAULT_DB_FILENAME = "opsconsole.db"


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``opsconsole.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class ConsoleSettings(BaseSettings):
    """Unified settings for the opsconsole CLI.

    Stored on the :class:`AppContext` at the CLI root.

    Attributes:
        root: Directory holding ``opsconsole.toml`` (or CWD if none found);
            the default SQLite store lives here.
        config_path: The TOML file in effect, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "OPSCONSOLE_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    store: StoreConfig = Field(default_factory=StoreConfig)
    hierarchy: HierarchyConfig = Field(default_factory=HierarchyConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @property
    def database_url(self) -> str:
        """Configured store URL, or a SQLite file under :attr:`root`."""
        if self.store.url:
            return self.store.url
        return f"sqlite:///{self.root / DEFAULT_DB_FILENAME}"

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        database_url: str | None = None,
        sync: bool | None = None,
        **cli_flags: Any,
    ) -> ConsoleSettings:
        """Construct settings from a CLI invocation.

        Discovers ``opsconsole.toml`` via walk-up (or explicit
        *config_path*) and merges CLI flags as highest-priority overrides.
        ``--database-url`` and ``--sync`` override their TOML sections.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            settings = cls(root=resolved_root, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

        updates: dict[str, Any] = {}
        if database_url:
            updates["store"] = settings.store.model_copy(update={"url": database_url})
        if sync:
            updates["loader"] = settings.loader.model_copy(update={"sync": True})
        return settings.model_copy(update=updates) if updates else settings
