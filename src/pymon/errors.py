"""Exceptions raised by pymon."""


class PymonError(Exception):
    """Base class for pymon errors."""


class ConfigError(PymonError):
    """Raised when a configuration value cannot be used."""


class StoreInaccessible(PymonError):
    """Raised when the report store cannot be created or written."""
