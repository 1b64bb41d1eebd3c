# logmerge/utils/errors.py
from __future__ import annotations


class LogMergeError(RuntimeError):
    """Base class for every error raised by logmerge itself."""


class UserInputError(LogMergeError):
    """
    Raised for invalid user-provided config (buffer size, source count, etc).
    Should NOT print traceback.
    """


class SourceFetchError(LogMergeError):
    """
    A source failed while producing its next entry.

    The merge is aborted; the original exception is kept as ``__cause__``.
    """

    def __init__(self, source_index: int, cause: BaseException):
        self.source_index = source_index
        super().__init__(f"source #{source_index} fetch failed: {cause!r}")


class SinkError(LogMergeError):
    """The output sink failed in print() or done()."""


class OrderViolationError(LogMergeError):
    """An entry arrived at a sink with a timestamp earlier than its predecessor."""
