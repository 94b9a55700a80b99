"""Core layer — caches and loaders that shape store rows into views.

Components here return domain values and raise typed errors. They may
import from domain, infrastructure and ``services.telemetry``; the
ServiceResult facade in :mod:`opsconsole.services` wraps them for the
outer surfaces.
"""
