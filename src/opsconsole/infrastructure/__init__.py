"""Infrastructure layer — database schema, engine, record store.

This layer depends on stdlib and SQLAlchemy only.
It must never import from domain, core, services, commands, or output.
"""
