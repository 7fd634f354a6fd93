"""
Wire normalization helpers shared by the resource modules.

The Imperva API is inconsistent across versions: identifiers arrive as
integers or strings, flags as booleans or strings, single values or arrays,
and list responses under different envelope keys. Each helper here accepts an
explicit, fixed set of wire shapes and raises DecodeError for anything else.
No helper coerces between numbers and strings.
"""

import json
from typing import Any, Callable, Optional, Sequence, TypeVar

from .exceptions import DecodeError, ResultCodeError
from .models import ActiveFlag, ApiResult, Identifier


T = TypeVar("T")

# (shape name, decoder) tried in order; the first decoder that does not
# raise DecodeError wins
Candidate = tuple[str, Callable[[Any], T]]


def parse_json(raw: bytes, operation: str) -> Any:
    """Parse a response body, classifying invalid JSON as a DecodeError."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"failed to parse {operation} response: {e}") from e


def _type_name(value: Any) -> str:
    return type(value).__name__


def decode_int(value: Any, field_name: str, default: int = 0) -> int:
    """Decode an integer field; null means ``default``, booleans are rejected."""
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"field {field_name!r}: expected integer, got {_type_name(value)}")
    return value


def decode_optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None:
        return None
    return decode_int(value, field_name)


def decode_str(value: Any, field_name: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise DecodeError(f"field {field_name!r}: expected string, got {_type_name(value)}")
    return value


def decode_optional_bool(value: Any, field_name: str) -> Optional[bool]:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise DecodeError(f"field {field_name!r}: expected boolean, got {_type_name(value)}")
    return value


def decode_identifier(value: Any, field_name: str) -> Optional[Identifier]:
    """
    Decode an identifier that is an integer in one API generation and a
    string in another.

    Shapes tried in order: null, integer, string. Booleans and floats are
    rejected rather than coerced.
    """
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value
    raise DecodeError(
        f"field {field_name!r}: expected integer or string identifier, "
        f"got {_type_name(value)}"
    )


def decode_active(value: Any) -> ActiveFlag:
    """
    Keep the site ``active`` flag in its wire shape (boolean or string).

    Any other shape is recorded as None, which reads as "not active".
    """
    if isinstance(value, (bool, str)):
        return value
    return None


def decode_str_list(value: Any, field_name: str) -> tuple[str, ...]:
    """Decode a field the API emits either as one string or as an array of strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        for item in value:
            if not isinstance(item, str):
                raise DecodeError(
                    f"field {field_name!r}: expected string items, got {_type_name(item)}"
                )
        return tuple(value)
    raise DecodeError(
        f"field {field_name!r}: expected string or array of strings, got {_type_name(value)}"
    )


def decode_list(value: Any, field_name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"field {field_name!r}: expected array, got {_type_name(value)}")
    return value


def require_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise DecodeError(f"{what}: expected object, got {_type_name(value)}")
    return value


def decode_items(items: Any, field_name: str, decoder: Callable[[Any], T]) -> tuple[T, ...]:
    return tuple(decoder(item) for item in decode_list(items, field_name))


def extract_result(payload: Any) -> Optional[ApiResult]:
    """
    Read the ``res``/``res_message`` result envelope from a payload.

    Returns None when the payload carries no ``res`` field.
    """
    if not isinstance(payload, dict) or "res" not in payload:
        return None
    return ApiResult(
        res=decode_int(payload.get("res"), "res"),
        res_message=decode_str(payload.get("res_message"), "res_message"),
        debug_info=payload.get("debug_info"),
    )


def check_result_code(payload: Any, operation: str) -> Optional[ApiResult]:
    """Raise ResultCodeError when the payload reports a non-zero result code."""
    result = extract_result(payload)
    if result is not None and result.res != 0:
        raise ResultCodeError(operation, result.res, result.res_message)
    return result


def keyed_list(key: str, item_decoder: Callable[[Any], T]) -> Candidate:
    """Candidate matching an object whose ``key`` holds an array of records."""

    def decode(payload: Any) -> tuple[T, ...]:
        if not isinstance(payload, dict) or key not in payload:
            raise DecodeError(f"key {key!r} not present")
        value = payload[key]
        if not isinstance(value, list):
            raise DecodeError(f"key {key!r} is not an array")
        return tuple(item_decoder(item) for item in value)

    return (key, decode)


def bare_list(item_decoder: Callable[[Any], T]) -> Candidate:
    """Candidate matching a top-level array of records."""

    def decode(payload: Any) -> tuple[T, ...]:
        if not isinstance(payload, list):
            raise DecodeError("payload is not an array")
        return tuple(item_decoder(item) for item in payload)

    return ("<top-level array>", decode)


def match_envelope(
    payload: Any,
    candidates: Sequence[Candidate],
    what: str,
) -> tuple[str, Any]:
    """
    Try each candidate envelope in order and return the first match.

    Args:
        payload: Parsed JSON response
        candidates: Ordered (shape name, decoder) pairs
        what: Description of the expected data, used in the error message

    Returns:
        Tuple of (matched shape name, decoded value)

    Raises:
        DecodeError: If no candidate decodes the payload; ``tried`` lists
            every shape name attempted
    """
    tried = []
    for name, decoder in candidates:
        tried.append(name)
        try:
            return name, decoder(payload)
        except DecodeError:
            continue
    raise DecodeError(
        f"could not find {what} in response: shapes checked {tried}",
        tried=tried,
    )
