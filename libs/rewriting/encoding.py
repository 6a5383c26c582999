# =============================================================================
# Stored Value Encodings
# =============================================================================
# Tagged union describing how a stored field value is encoded, decoded once at
# the value rewriter boundary:
# - Scalar: plain text (HTML, CSS, URLs)
# - Composite: PHP serialize() payload (arrays, objects, serialized strings)
# - Json: JSON object or array document
# - Native: structured BSON value (dict/list) stored directly in MongoDB
# - Opaque: anything else (numbers, booleans, None, bytes); never touched
# =============================================================================

import io
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import phpserialize

logger = logging.getLogger(__name__)

__all__ = [
    "Composite",
    "Json",
    "Native",
    "Opaque",
    "Scalar",
    "StoredValue",
    "decode_value",
    "encode_value",
    "looks_like_json",
]

# a:N:{  O:N:"Class"  s:N:"text"
_COMPOSITE_RE = re.compile(r'^(?:a:\d+:\{|O:\d+:"|s:\d+:")')


@dataclass(frozen=True)
class Scalar:
    text: str


@dataclass(frozen=True)
class Composite:
    data: Any


@dataclass(frozen=True)
class Json:
    data: Any


@dataclass(frozen=True)
class Native:
    data: Any


@dataclass(frozen=True)
class Opaque:
    value: Any


StoredValue = Union[Scalar, Composite, Json, Native, Opaque]


def looks_like_json(text: str) -> bool:
    """True when the text starts like a JSON object or array."""
    return text.lstrip()[:1] in ("{", "[")


def _php_loads(text: str) -> Any:
    """
    Decode a PHP serialize() payload, rejecting trailing data.

    Raises:
        ValueError: If the payload is malformed or not fully consumed
    """
    raw = text.encode("utf-8")
    fp = io.BytesIO(raw)
    data = phpserialize.load(
        fp,
        charset="utf-8",
        errors="strict",
        decode_strings=True,
        object_hook=phpserialize.phpobject,
    )
    if fp.tell() != len(raw):
        raise ValueError("trailing data after serialized value")
    return data


def decode_value(value: Any) -> StoredValue:
    """
    Classify a stored value and decode its structure.

    Strings that look serialized but fail to decode are returned as Opaque so
    a later text substitution can never break their length prefixes.
    """
    if isinstance(value, (dict, list)):
        return Native(value)
    if not isinstance(value, str):
        return Opaque(value)

    if _COMPOSITE_RE.match(value):
        try:
            return Composite(_php_loads(value))
        except (ValueError, UnicodeError, EOFError) as e:
            logger.debug(f"Serialized-looking value failed to decode: {e}")
            return Opaque(value)

    if looks_like_json(value):
        try:
            data = json.loads(value)
        except ValueError:
            return Scalar(value)
        if isinstance(data, (dict, list)):
            return Json(data)

    return Scalar(value)


def _same_shape(a: Any, b: Any) -> bool:
    if isinstance(a, phpserialize.phpobject):
        return isinstance(b, phpserialize.phpobject) and a.__name__ == b.__name__
    return type(a) is type(b)


def encode_value(decoded: StoredValue) -> Optional[Any]:
    """
    Re-encode a decoded value into its stored form.

    Composite payloads are verified by decoding the result again. Returns None
    when the value cannot be reproduced in a structurally valid form.
    """
    if isinstance(decoded, Scalar):
        return decoded.text
    if isinstance(decoded, (Native, Opaque)):
        return decoded.data if isinstance(decoded, Native) else decoded.value
    if isinstance(decoded, Json):
        try:
            return json.dumps(decoded.data, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            logger.warning(f"JSON re-encoding failed: {e}")
            return None

    try:
        text = phpserialize.dumps(decoded.data, charset="utf-8").decode("utf-8")
        check = _php_loads(text)
    except (ValueError, TypeError, UnicodeError, EOFError) as e:
        logger.warning(f"Serialized re-encoding failed: {e}")
        return None
    if not _same_shape(decoded.data, check):
        logger.warning("Serialized re-encoding changed the value shape")
        return None
    return text
