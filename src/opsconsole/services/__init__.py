"""Service layer — the ServiceResult facade over the core components.

Services may import from domain, core and infrastructure.
They must never import from commands or output.
"""
