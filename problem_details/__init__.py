"""RFC 9457 / RFC 7807 problem details for HTTP APIs."""

from .encoders import JSON_CONTENT_TYPE, XML_CONTENT_TYPE
from .errors import (DecodeError, EncodeError, InvalidStatus, InvalidUri,
                     ProblemDetailsError, ProblemDetailsException,
                     SerializationError)
from .problem import ProblemDetails
from .problem_type import ProblemType

__title__ = 'problem-details'
__version__ = '0.6.0'
__description__ = 'RFC 9457 / RFC 7807 problem details for HTTP APIs.'
__author__ = 'Vapor IO'
__author_email__ = 'vapor@vapor.io'
__url__ = 'https://github.com/vapor-ware/fastapi-rfc7807'
__license__ = 'GNU General Public License v3.0'

__all__ = [
    'DecodeError',
    'EncodeError',
    'InvalidStatus',
    'InvalidUri',
    'JSON_CONTENT_TYPE',
    'ProblemDetails',
    'ProblemDetailsError',
    'ProblemDetailsException',
    'ProblemType',
    'SerializationError',
    'XML_CONTENT_TYPE',
]
