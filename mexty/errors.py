"""Error hierarchy for mexty.

Every failure a sync run can report derives from :class:`MextyError`, so
callers can catch one type per stage and keep the message.
"""

from __future__ import annotations


class MextyError(Exception):
    """Base class for all mexty errors."""


class ConfigError(MextyError):
    """The configuration file could not be read or contains invalid keys."""


class FetchError(MextyError):
    """The registry could not be retrieved or deserialized."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(MextyError):
    """Registry data cannot be turned into generated code."""

    def __init__(self, message: str, location: str = ""):
        super().__init__(f"{location}: {message}" if location else message)
        self.location = location


class InvalidIdentifierError(ValidationError):
    """A component name is not a valid TypeScript identifier."""

    def __init__(self, name: str, location: str = ""):
        super().__init__(f"'{name}' is not a valid identifier", location)
        self.name = name


class InvalidNamespaceError(ValidationError):
    """An author name cannot be used as a module directory."""

    def __init__(self, author: str, location: str = ""):
        super().__init__(f"'{author}' is not a valid author namespace", location)
        self.author = author


class MalformedRegistryError(ValidationError):
    """The registry document does not have the expected shape."""


class MaterializationError(MextyError):
    """Writing generated files to disk failed."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(f"{message} ({path})" if path else message)
        self.path = path
