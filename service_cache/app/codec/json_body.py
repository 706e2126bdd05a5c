"""
Strict JSON request decoding and JSON response encoding.

``decode_json_body`` turns an untrusted request into a model instance or
raises :class:`MalformedRequest` carrying the HTTP status and a message that
is safe to return to the caller. The checks run in a fixed order:

1. ``Content-Type``, when present, must be ``application/json`` (415).
2. The body is read through a byte ceiling (413).
3. Exactly one JSON object is decoded, matching field names
   case-insensitively. Unknown fields, type mismatches, syntax errors,
   truncation and an empty body are each classified (400).
4. Anything after the first object is rejected (400).

Any other failure propagates unclassified and surfaces as a 500.
"""

import json
from json.decoder import WHITESPACE
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from fastapi import Request, Response
from pydantic import BaseModel, ValidationError

from shared.errors import MalformedRequest, ServiceError

M = TypeVar("M", bound=BaseModel)

JSON_MEDIA_TYPE = "application/json"

MSG_CONTENT_TYPE = "Content-Type header is not application/json"
MSG_BADLY_FORMED = "Request body contains badly-formed JSON"
MSG_EMPTY = "request body must not be empty"
MSG_SINGLE_OBJECT = "request body must only contain a single JSON object"

_decoder = json.JSONDecoder()


class BodyTooLargeError(Exception):
    """Raised by the limited reader once the body passes its ceiling."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"request body exceeds {limit} bytes")


def _too_large(limit: int) -> MalformedRequest:
    return MalformedRequest(413, f"Request body must not be larger than {limit} bytes")


def media_type(content_type: str) -> str:
    """``application/json; charset=utf-8`` -> ``application/json``."""
    return content_type.split(";", 1)[0].strip().lower()


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, raising BodyTooLargeError past ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise BodyTooLargeError(limit)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise BodyTooLargeError(limit)
    return bytes(body)


async def decode_json_body(
    request: Request,
    model: Type[M],
    max_body_size: int,
    defaults: Optional[Dict[str, Any]] = None,
) -> M:
    """Validate and decode the request body into ``model``.

    ``defaults`` pre-fill fields before the JSON is overlaid on top of them.
    """
    content_type = request.headers.get("content-type")
    if content_type and media_type(content_type) != JSON_MEDIA_TYPE:
        raise MalformedRequest(415, MSG_CONTENT_TYPE)

    try:
        body = await read_limited_body(request, max_body_size)
    except BodyTooLargeError as e:
        raise _too_large(e.limit) from e

    return parse_json_body(body, model, defaults)


def parse_json_body(body: bytes, model: Type[M], defaults: Optional[Dict[str, Any]] = None) -> M:
    """Decode a complete body. Pure: the same bytes give the same outcome."""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedRequest(400, f"{MSG_BADLY_FORMED} (at position {e.start})") from e

    start = WHITESPACE.match(text, 0).end()
    if start == len(text):
        raise MalformedRequest(400, MSG_EMPTY)

    try:
        document, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as e:
        if _is_truncated(e, text):
            raise MalformedRequest(400, MSG_BADLY_FORMED) from e
        offset = len(text[:e.pos].encode("utf-8"))
        raise MalformedRequest(400, f"{MSG_BADLY_FORMED} (at position {offset})") from e
    except (ValueError, RecursionError) as e:
        # integer digit limit, or nesting deeper than the scanner allows
        raise MalformedRequest(400, MSG_BADLY_FORMED) from e

    if not isinstance(document, dict):
        raise MalformedRequest(400, MSG_BADLY_FORMED)

    # null leaves the pre-filled value untouched
    payload = dict(defaults or {})
    positions: Dict[str, int] = {}
    unknown: Optional[Tuple[int, str]] = None
    for index, (name, value) in enumerate(document.items()):
        field = match_field(name, model)
        if field is None:
            if unknown is None:
                unknown = (index, name)
            continue
        positions[field] = index
        if value is not None:
            payload[field] = value

    try:
        result = model.model_validate(payload, strict=True)
    except ValidationError as e:
        raise _classify_validation_error(e, positions, unknown) from e

    if unknown is not None:
        raise _unknown_field(unknown[1])

    if WHITESPACE.match(text, end).end() != len(text):
        raise MalformedRequest(400, MSG_SINGLE_OBJECT)

    return result


def match_field(name: str, model: Type[BaseModel]) -> Optional[str]:
    """Model field for a JSON member name: exact match first, then case-folded."""
    if name in model.model_fields:
        return name
    folded = name.lower()
    for field in model.model_fields:
        if field.lower() == folded:
            return field
    return None


def _unknown_field(name: str) -> MalformedRequest:
    return MalformedRequest(400, f'Request body contains unknown field "{name}"')


def _is_truncated(error: json.JSONDecodeError, text: str) -> bool:
    return error.msg.startswith("Unterminated string") or error.pos >= len(text.rstrip())


def _classify_validation_error(
    error: ValidationError,
    positions: Dict[str, int],
    unknown: Optional[Tuple[int, str]],
) -> MalformedRequest:
    """Report whichever problem comes first in the document.

    Type mismatches and unknown fields compete by position. Checks on
    decoded values (``value_error``) apply only once decoding succeeded.
    Type mismatches stay generic so field names are not echoed back.
    """
    details = error.errors()
    mismatches = [d for d in details if d["type"] != "value_error"]

    if mismatches:
        first = min(positions.get(d["loc"][0], 0) if d["loc"] else 0 for d in mismatches)
        if unknown is not None and unknown[0] < first:
            return _unknown_field(unknown[1])
        return MalformedRequest(400, MSG_BADLY_FORMED)

    if unknown is not None:
        return _unknown_field(unknown[1])

    return MalformedRequest(400, str(details[0]["ctx"]["error"]))


def encode_json_response(payload: Any, status_code: int = 200) -> Response:
    """Serialize ``payload`` (a model or plain data) as a JSON response."""
    try:
        if isinstance(payload, BaseModel):
            content = payload.model_dump_json()
        else:
            content = json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise ServiceError("failed to encode response", details={"error": str(e)}) from e

    return Response(content=content, media_type=JSON_MEDIA_TYPE, status_code=status_code)
