"""
Construction-time errors.

Request failures never surface as exceptions: they come back as
Outcome.fail(...). These types cover the only places the package raises,
which is building a client from missing or invalid configuration.
"""


class WorkbookError(Exception):
    """Base class for errors raised by the workbook package."""


class ConfigurationError(WorkbookError):
    """
    Raised when a client cannot be configured.

    Carries the names of the missing settings so callers can report them.
    """

    def __init__(self, message: str, missing: tuple = ()):
        self.missing = tuple(missing)
        super().__init__(message)
