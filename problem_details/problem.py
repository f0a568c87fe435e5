"""The RFC 9457 problem details model.

For details on the Problem Details format, see:
https://www.rfc-editor.org/rfc/rfc9457.html (which obsoletes RFC 7807).
"""

import json
from typing import Any, Dict, Generic, Mapping, Optional, Type, TypeVar

import structlog
from pydantic import (BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler,
                      ValidationError, field_validator, model_serializer,
                      model_validator)
from pydantic_core import PydanticSerializationError

from . import encoders, fields
from .errors import DecodeError, SerializationError
from .problem_type import ProblemType

logger = structlog.get_logger(__name__)

Ext = TypeVar('Ext')
NewExt = TypeVar('NewExt')

RESERVED_FIELDS = ('type', 'status', 'title', 'detail', 'instance')

DEFAULT_STATUS = 500

_FIELD_ENCODERS = {
    'type': fields.encode_uri,
    'status': fields.encode_status,
    'instance': fields.encode_uri,
}


class ProblemDetails(BaseModel, Generic[Ext]):
    """An RFC 9457 problem details object.

    Every reserved field is optional; an absent field is omitted entirely
    from the encoded representations. The `extensions` payload is
    caller-defined and its fields are flattened into the same top-level
    object as the reserved fields when encoding.

    Instances are immutable. Use `new()` or `from_status_code()` to create
    a problem, then the `with_*` builders to derive updated copies:

        problem = (
            ProblemDetails.from_status_code(404)
            .with_type('https://example.com/probs/missing')
            .with_detail('No widget with id 7')
        )

    Extensions can be a pydantic model, a dataclass, or a plain dict of
    JSON-compatible values. `with_extensions` returns a problem
    parameterized by the new extension type:

        class OutOfCredit(BaseModel):
            balance: int

        problem = ProblemDetails.new().with_extensions(OutOfCredit(balance=30))
        # problem is a ProblemDetails[OutOfCredit]
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: Optional[ProblemType] = None
    status: Optional[int] = None
    title: Optional[str] = None
    detail: Optional[str] = None
    instance: Optional[str] = None
    extensions: Ext = Field(default_factory=dict)

    @field_validator('type', mode='before')
    @classmethod
    def _decode_type(cls, value: Any) -> Optional[ProblemType]:
        if value is None:
            return None
        return ProblemType.from_uri(value)

    @field_validator('status', mode='before')
    @classmethod
    def _decode_status(cls, value: Any) -> Optional[int]:
        return fields.decode_status(value)

    @field_validator('instance', mode='before')
    @classmethod
    def _decode_instance(cls, value: Any) -> Optional[str]:
        return fields.decode_uri(value, field='instance')

    @model_validator(mode='before')
    @classmethod
    def _unflatten(cls, data: Any) -> Any:
        # The flattened wire form has no `extensions` key: every unreserved
        # key belongs to the extensions. A mapping whose only unreserved key
        # is `extensions` is the structured form and is left alone.
        if not isinstance(data, Mapping):
            return data
        unreserved = {key: value for key, value in data.items() if key not in RESERVED_FIELDS}
        if set(unreserved) == {'extensions'}:
            return data
        unflattened = {key: data[key] for key in RESERVED_FIELDS if key in data}
        unflattened['extensions'] = unreserved
        return unflattened

    @model_serializer(mode='wrap')
    def _flatten(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        extensions = data.pop('extensions', {})
        if not isinstance(extensions, dict):
            raise SerializationError(
                f'extensions must serialize to an object, got {type(extensions).__name__}',
            )

        d = {}
        for key in RESERVED_FIELDS:
            value = data.get(key)
            if value is not None:
                d[key] = _FIELD_ENCODERS.get(key, str)(value)

        shadowed = [key for key in extensions if key in RESERVED_FIELDS]
        if shadowed:
            logger.warning('extension_fields_shadowed', fields=shadowed)
        for key, value in extensions.items():
            if key not in RESERVED_FIELDS:
                d[key] = value
        return d

    @classmethod
    def new(cls) -> 'ProblemDetails':
        """Create an empty problem details object.

        The result always has the default (empty dict) extensions, even when
        called on a parameterized class such as `ProblemDetails[MyExt]`.
        Use `with_extensions` to attach typed extensions.
        """
        return cls._unparameterized()()

    @classmethod
    def from_status_code(cls, status: int) -> 'ProblemDetails':
        """Create a problem details object from a status code.

        This sets the `status` field to the given status code and the
        `title` field to the canonical reason phrase of that status code
        (if it has one). The `type` field is left unset, which is
        equivalent to `about:blank`. Like `new()`, the extensions are the
        default empty dict.

        Raises:
            InvalidStatus: The status code is not in [100, 599].
        """
        status = fields.decode_status(status)
        return cls._unparameterized()(status=status, title=fields.canonical_reason(status))

    @classmethod
    def _unparameterized(cls) -> Type['ProblemDetails']:
        return cls.__pydantic_generic_metadata__['origin'] or cls

    def with_type(self, type: Any) -> 'ProblemDetails[Ext]':
        return self.model_copy(update={'type': ProblemType.from_uri(type)})

    def with_status(self, status: int) -> 'ProblemDetails[Ext]':
        return self.model_copy(update={'status': fields.decode_status(status)})

    def with_title(self, title: str) -> 'ProblemDetails[Ext]':
        return self.model_copy(update={'title': str(title)})

    def with_detail(self, detail: str) -> 'ProblemDetails[Ext]':
        return self.model_copy(update={'detail': str(detail)})

    def with_instance(self, instance: str) -> 'ProblemDetails[Ext]':
        return self.model_copy(update={'instance': fields.decode_uri(instance, field='instance')})

    def with_extensions(self, extensions: NewExt) -> 'ProblemDetails[NewExt]':
        """Replace the extensions, returning a problem of the new extension type.

        The reserved fields are carried over unchanged.
        """
        origin = self.__pydantic_generic_metadata__['origin'] or self.__class__
        problem_cls = origin[type(extensions)]
        return problem_cls.model_construct(
            type=self.type,
            status=self.status,
            title=self.title,
            detail=self.detail,
            instance=self.instance,
            extensions=extensions,
        )

    @property
    def status_code(self) -> int:
        """The status to use for the HTTP response; 500 if no status is set."""
        if self.status is None:
            return DEFAULT_STATUS
        return self.status

    @property
    def type_or_default(self) -> ProblemType:
        if self.type is None:
            return ProblemType.default()
        return self.type

    def to_dict(self) -> Dict[str, Any]:
        """Get the flattened representation of the problem.

        Reserved fields which are not set are omitted. Extension fields are
        merged in at the same level, after the reserved fields, under their
        serialization aliases. If an extension field has the same name as a
        reserved field, the reserved field wins.

        This is the same shape pydantic produces for `model_dump()` and
        `model_dump_json()`, so a problem nested in another model or
        returned from a FastAPI route encodes the same way.

        Raises:
            SerializationError: The extensions are not object-shaped, or
                contain values which cannot be serialized.
        """
        try:
            return self.model_dump(mode='json', by_alias=True)
        except PydanticSerializationError as e:
            raise SerializationError(f'could not serialize problem details: {e}') from e

    def to_json(self, debug: bool = False) -> str:
        """Encode the problem as an `application/problem+json` document."""
        return encoders.to_json(self, debug=debug)

    def to_xml(self) -> str:
        """Encode the problem as an `application/problem+xml` document."""
        return encoders.to_xml(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProblemDetails':
        """Decode a problem from its flattened representation.

        The reserved fields are decoded by their codecs, and all remaining
        keys are handed to the extension type. Keys which the extension type
        does not claim are ignored.

        Raises:
            DecodeError: A field could not be decoded. InvalidStatus and
                InvalidUri are raised for malformed status and URI fields.
        """
        if not isinstance(data, Mapping):
            raise DecodeError(data, reason='expected a problem details object')

        unreserved = {key: value for key, value in data.items() if key not in RESERVED_FIELDS}
        if set(unreserved) == {'extensions'}:
            # Keep a lone `extensions` wire key from being read as the
            # structured form.
            data = {**{key: data[key] for key in RESERVED_FIELDS if key in data}, 'extensions': unreserved}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DecodeError.from_validation_error(e) from e

    @classmethod
    def from_json(cls, body: Any) -> 'ProblemDetails':
        """Decode a problem from an `application/problem+json` document."""
        try:
            data = json.loads(body)
        except ValueError as e:
            raise DecodeError(body, reason=f'malformed JSON: {e}') from e
        return cls.from_dict(data)

    def __str__(self) -> str:
        s = f'[{self.type_or_default}'
        if self.status is not None:
            s += f' {self.status}]'
        else:
            s += ']'

        title = self.title
        if title is None:
            title = fields.canonical_reason(self.status)
        if title is not None:
            s += f' {title}'

        if self.detail is not None:
            if title is not None:
                s += ':'
            s += f' {self.detail}'
        return s
