"""Typed, cached-statement query helpers, array encoding and templates for PostgreSQL clients."""

__version__ = "0.4.0"
__all__ = ["pgtypes", "statement", "query", "aquery", "template", "models", "workload", "aworkload"]