"""Versioned PostgreSQL schema migrations for an encrypted chat service."""

__version__ = "0.1.0"