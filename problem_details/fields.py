"""Codecs for the optional `status` and URI-valued problem details fields.

Every decoder distinguishes three outcomes: `None` means the field is
absent, a returned value means it is present and valid, and a raised
DecodeError means it is present but invalid.
"""

import http
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from .errors import InvalidStatus, InvalidUri

MIN_STATUS = 100
MAX_STATUS = 599

# RFC 3986 URI-reference alphabet: unreserved, reserved and percent-escapes.
_URI_RE = re.compile(r"(?:[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=]|%[0-9A-Fa-f]{2})*")
_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*$')


def decode_status(value: Any, field: str = 'status') -> Optional[int]:
    """Decode an optional HTTP status code.

    Args:
        value: The raw value. `None` is treated as an absent status.
        field: The field name reported in errors.

    Returns:
        The status code as a plain int, or None if absent.

    Raises:
        InvalidStatus: The value is not an integer, or is outside [100, 599].
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidStatus(value, field=field, reason='expected an integer status code')
    if not MIN_STATUS <= value <= MAX_STATUS:
        raise InvalidStatus(
            value, field=field,
            reason=f'status code must be between {MIN_STATUS} and {MAX_STATUS}',
        )
    return int(value)


def encode_status(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def decode_uri(value: Any, field: Optional[str] = None) -> Optional[str]:
    """Decode an optional URI reference.

    Only the syntax is checked; the URI is never resolved and no scheme
    whitelist is applied. Relative references and scheme-only forms such
    as `about:blank` are accepted.

    Args:
        value: The raw value. `None` is treated as an absent URI.
        field: The field name reported in errors.

    Returns:
        The URI string unchanged, or None if absent.

    Raises:
        InvalidUri: The value is not a string or not a valid URI reference.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidUri(value, field=field, reason='expected a uri string')
    if not value:
        raise InvalidUri(value, field=field, reason='uri is empty')
    if not _URI_RE.fullmatch(value):
        raise InvalidUri(value, field=field, reason='uri contains invalid characters')
    if value.count('#') > 1:
        raise InvalidUri(value, field=field, reason='uri contains more than one fragment')

    head = re.split(r'[/?#]', value, maxsplit=1)[0]
    if ':' in head and not _SCHEME_RE.match(head.split(':', 1)[0]):
        raise InvalidUri(value, field=field, reason='uri has an invalid scheme')

    try:
        parts = urlsplit(value)
        # Accessing the port validates it.
        parts.port
    except ValueError as e:
        raise InvalidUri(value, field=field, reason=str(e)) from e
    return value


def encode_uri(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def canonical_reason(status: Optional[int]) -> Optional[str]:
    """Get the canonical reason phrase for a status code, if it has one."""
    if status is None:
        return None
    try:
        return http.HTTPStatus(status).phrase
    except ValueError:
        return None
