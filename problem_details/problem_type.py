"""The problem type: a URI reference identifying the kind of problem."""

from typing import Any

from pydantic import ConfigDict, RootModel, field_validator

from . import fields
from .errors import InvalidUri

ABOUT_BLANK = 'about:blank'


class ProblemType(RootModel[str]):
    """A URI reference identifying a problem type.

    The absence of a type is equivalent to `about:blank` (see
    https://www.rfc-editor.org/rfc/rfc9457.html#name-type). The URI is
    only checked for syntax and is compared verbatim, so no normalization
    of case or trailing slashes is applied.
    """

    model_config = ConfigDict(frozen=True)

    @field_validator('root', mode='before')
    @classmethod
    def _check_uri(cls, value: Any) -> str:
        if isinstance(value, ProblemType):
            return value.root
        return fields.decode_uri(value, field='type')

    @classmethod
    def from_uri(cls, uri: Any) -> 'ProblemType':
        """Create a ProblemType, raising InvalidUri for a malformed URI."""
        if isinstance(uri, ProblemType):
            return uri
        if uri is None:
            raise InvalidUri(uri, field='type', reason='expected a uri string')
        return cls.model_construct(fields.decode_uri(uri, field='type'))

    @classmethod
    def default(cls) -> 'ProblemType':
        return cls.model_construct(ABOUT_BLANK)

    @property
    def uri(self) -> str:
        return self.root

    def __str__(self) -> str:
        return self.root
