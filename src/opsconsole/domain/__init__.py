"""Domain layer — slugs, record models, composed views, expansion state.

This layer depends only on stdlib and pydantic.
It must never import from core, services, infrastructure, commands, or config.
"""
