"""
Request decoding and response encoding for JSON endpoints.
"""

from .json_body import (
    BodyTooLargeError,
    decode_json_body,
    encode_json_response,
    parse_json_body,
    read_limited_body,
)

__all__ = [
    "BodyTooLargeError",
    "decode_json_body",
    "encode_json_response",
    "parse_json_body",
    "read_limited_body",
]
