"""
Exception types raised by the fiddlekit kernel and its adapters.

Transport- and parse-level problems are handled at their own layer; anything
that means "no trustworthy result" reaches the caller of
FiddleExecutionService.execute as one of the ExecutionError subclasses.
"""
from typing import Optional


class FiddleError(Exception):
    """Base class for all fiddlekit errors."""


class TransportError(FiddleError):
    """
    The fiddle API could not be reached, answered with an error status,
    or did not return the JSON data the caller needs.
    """
    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExecutionError(FiddleError):
    """An execution could not produce a result snapshot."""


class CompletionConditionError(ExecutionError):
    """A completion predicate raised while evaluating a snapshot."""


class StreamClosedError(ExecutionError):
    """The result stream ended or failed before any snapshot arrived."""


class ResultTimeoutError(ExecutionError):
    """No snapshot arrived before the hard deadline."""
