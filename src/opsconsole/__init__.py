"""opsconsole — multi-tenant operations console read models."""

__version__ = "0.3.0"
