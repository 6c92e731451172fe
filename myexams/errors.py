"""
Error hierarchy for the exam schedule core.

Parsing errors are absorbed (logged and skipped) by the loader and the
projector. Everything else propagates to the immediate caller; nothing is
retried automatically.
"""

from __future__ import annotations


class ExamsError(Exception):
    """
    Base exception for all exam schedule errors.
    """


class ParseError(ExamsError):
    """
    A row or a composed date/time string could not be parsed.

    Non-fatal: the offending row or record is skipped for the operation.
    """

    def __init__(self, message: str, value: str | None = None) -> None:
        super().__init__(message)
        self.value = value


class ValidationError(ExamsError):
    """
    Malformed input at a request boundary, e.g. a broken user token.
    """


class NotFoundError(ExamsError):
    """
    Unknown user token or unknown exam id.
    """


class SourceError(ExamsError, OSError):
    """
    The schedule resource cannot be opened or fetched.

    Fatal to the load operation.
    """


class StorageError(ExamsError):
    """
    The selection store cannot be read or written.

    Fatal to the single operation; callers must not assume success.
    """
