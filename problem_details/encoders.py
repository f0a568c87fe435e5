"""JSON and XML wire encodings for problem details.

Both encoders work from the flattened envelope produced by
`ProblemDetails.to_dict()`: the present reserved fields in the order
`type`, `status`, `title`, `detail`, `instance`, followed by the
extension fields.
"""

import json
import re
import xml.etree.ElementTree as ET
from typing import Any, Mapping

from .errors import SerializationError

JSON_CONTENT_TYPE = 'application/problem+json'
XML_CONTENT_TYPE = 'application/problem+xml'

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
XML_ROOT = 'problem'

# XML 1.0 (5th edition) Name production, without the namespace separator ':'.
_NAME_START = (
    'A-Z_a-z\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D\u037F-\u1FFF'
    '\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF\uF900-\uFDCF'
    '\uFDF0-\uFFFD\U00010000-\U000EFFFF'
)
_NAME_CHAR = _NAME_START + '\\-.0-9\u00B7\u0300-\u036F\u203F-\u2040'
_XML_NAME_RE = re.compile(f'[{_NAME_START}][{_NAME_CHAR}]*')
_XML_ILLEGAL_CHAR_RE = re.compile('[^\u0009\u000A\u000D\u0020-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]')


def to_json(problem: Any, debug: bool = False) -> str:
    """Encode a problem as a JSON document.

    Args:
        problem: The ProblemDetails to encode.
        debug: Pretty-print the output, making it easier for humans to read.

    Raises:
        SerializationError: The extensions are not object-shaped or
            contain values JSON cannot represent.
    """
    data = problem.to_dict()
    try:
        if debug:
            return json.dumps(data, ensure_ascii=False, allow_nan=False, indent=2)
        return json.dumps(
            data,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(',', ':'),
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f'could not encode problem details as JSON: {e}') from e


def to_xml(problem: Any) -> str:
    """Encode a problem as an XML document rooted at a `problem` element.

    The XML declaration is followed directly by the root element, with no
    whitespace in between.

    Raises:
        SerializationError: An extension field name is not a valid XML element
            name, or a value contains characters XML cannot represent.
    """
    root = ET.Element(XML_ROOT)
    for name, value in problem.to_dict().items():
        _append(root, name, value)
    body = ET.tostring(root, encoding='unicode', short_empty_elements=False)
    return XML_DECLARATION + body


def _append(parent: ET.Element, name: Any, value: Any) -> None:
    if value is None:
        return
    if not isinstance(name, str) or not _XML_NAME_RE.fullmatch(name):
        raise SerializationError(f'{name!r} is not a valid XML element name')

    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, (list, tuple)):
                raise SerializationError(f'nested sequences in {name!r} cannot be represented as XML')
            _append(parent, name, item)
        return

    element = ET.SubElement(parent, name)
    if isinstance(value, Mapping):
        for key, item in value.items():
            _append(element, key, item)
    elif isinstance(value, bool):
        element.text = 'true' if value else 'false'
    else:
        text = str(value)
        if _XML_ILLEGAL_CHAR_RE.search(text):
            raise SerializationError(f'value of {name!r} contains characters not allowed in XML')
        element.text = text
