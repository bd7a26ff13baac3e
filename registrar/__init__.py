"""Registrar: user accounts with a runtime-configurable password policy."""

__version__ = "0.1.0"
