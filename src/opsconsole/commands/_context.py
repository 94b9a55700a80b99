"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Owns the one ConsoleSession of the process and
centralizes result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from opsconsole.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from opsconsole.config.settings import ConsoleSettings
    from opsconsole.core.session import ConsoleSession
    from opsconsole.services.console import ConsoleService
    from opsconsole.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The session (and its database engine) is created lazily on first use
    so ``--help`` and ``--version`` never touch the store.
    """

    def __init__(self, settings: ConsoleSettings) -> None:
        self.settings = settings
        self._engine: Engine | None = None
        self._session: ConsoleSession | None = None

        from opsconsole.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            store_timings=settings.logging.store_timings,
            levels=settings.logging.levels,
        )

        if settings.verbose:
            from opsconsole.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def session(self) -> ConsoleSession:
        """The console session (created lazily on first access)."""
        if self._session is None:
            from opsconsole.core.session import ConsoleSession
            from opsconsole.infrastructure.database.engine import create_db_engine
            from opsconsole.infrastructure.store import SqlRecordStore

            self._engine = create_db_engine(
                self.settings.database_url, echo=self.settings.store.echo
            )
            self._session = ConsoleSession(
                SqlRecordStore(self._engine),
                group_type_ids=self.settings.hierarchy.group_type_ids,
                group_type_name=self.settings.hierarchy.group_type_name,
                seed_expanded=self.settings.navigation.seed_expanded,
                max_workers=self.settings.loader.max_workers,
                sync=self.settings.loader.sync,
            )
        return self._session

    @property
    def service(self) -> ConsoleService:
        from opsconsole.services.console import ConsoleService

        return ConsoleService(self.session)

    def close(self) -> None:
        """Drop session state and release pooled connections."""
        if self._session is not None:
            self._session.reset()
            self._session = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
