"""Errors raised while decoding and encoding problem details."""

from typing import Any, Dict, Optional

from pydantic import ValidationError


class ProblemDetailsError(Exception):
    """Base class for all problem details errors."""


class DecodeError(ProblemDetailsError, ValueError):
    """A problem details field could not be decoded.

    Args:
        value: The offending input value.
        field: The wire-level name of the field being decoded, if known.
        reason: A short description of why the value was rejected.
    """

    def __init__(self, value: Any, field: Optional[str] = None, reason: str = 'invalid value') -> None:
        self.value = value
        self.field = field
        self.reason = reason
        super(DecodeError, self).__init__(self._message())

    def _message(self) -> str:
        if self.field:
            return f'invalid {self.field!r}: {self.reason} (got {self.value!r})'
        return f'{self.reason} (got {self.value!r})'

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> 'DecodeError':
        """Convert the first error of a pydantic ValidationError into a DecodeError.

        Errors raised by the field codecs are surfaced as-is (keeping their
        InvalidStatus/InvalidUri kind); other validation failures become a
        generic DecodeError naming the field and pydantic's message.
        """
        error = exc.errors()[0]
        loc = tuple(error.get('loc', ()))
        if loc and loc[0] == 'extensions':
            loc = loc[1:]
        field = '.'.join(str(part) for part in loc) or None

        cause = (error.get('ctx') or {}).get('error')
        if isinstance(cause, DecodeError):
            return type(cause)(cause.value, field=cause.field or field, reason=cause.reason)
        return DecodeError(error.get('input'), field=field, reason=error['msg'])


class InvalidStatus(DecodeError):
    """The value is not an integer HTTP status code in [100, 599]."""

    def __init__(self, value: Any, field: Optional[str] = 'status', reason: str = 'invalid status code') -> None:
        super(InvalidStatus, self).__init__(value, field=field, reason=reason)


class InvalidUri(DecodeError):
    """The value is not a syntactically valid URI reference."""

    def __init__(self, value: Any, field: Optional[str] = None, reason: str = 'invalid uri') -> None:
        super(InvalidUri, self).__init__(value, field=field, reason=reason)


class EncodeError(ProblemDetailsError):
    """A problem details value could not be encoded."""


class SerializationError(EncodeError):
    """The extension payload is not representable in the target wire format."""


class ProblemDetailsException(Exception):
    """An exception carrying a ProblemDetails value.

    Raise this (or a subclass) from application code to have the error
    handlers in `problem_details.middleware` turn it into a problem
    response. The string form of the exception is the human-readable
    summary of the problem.

    Subclasses may set `headers` to add headers to the generated response.
    """

    headers: Dict[str, str] = {}

    def __init__(self, problem: Any, headers: Optional[Dict[str, str]] = None) -> None:
        self.problem = problem
        if headers is not None:
            self.headers = headers
        super(ProblemDetailsException, self).__init__(str(problem))

    def __str__(self) -> str:
        return str(self.problem)
