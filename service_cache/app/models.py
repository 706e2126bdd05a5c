"""
Request and result models for the Redis Tester service.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

# Upper bound for ``ttl``, well inside what Redis accepts for SET EX.
MAX_TTL_SECONDS = 2**31 - 1


def encodable(v: str) -> str:
    """Reject strings Redis cannot store, such as lone surrogates from ``\\ud800``."""
    try:
        v.encode("utf-8")
    except UnicodeEncodeError as e:
        raise PydanticCustomError("string_unicode", "string is not valid UTF-8") from e
    return v


EncodableStr = Annotated[str, AfterValidator(encodable)]


class WriteRequest(BaseModel):
    """Body of a write: store ``value`` under ``key`` for ``ttl`` seconds."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: EncodableStr = Field(default="", validate_default=True)
    value: EncodableStr = ""
    ttl: int = Field(default=0, le=MAX_TTL_SECONDS)

    @field_validator("key")
    @classmethod
    def key_must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("key must not be empty")
        return v

    @field_validator("ttl")
    @classmethod
    def ttl_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("ttl must not be negative")
        return v


class ReadRequest(BaseModel):
    """Body of a read."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: EncodableStr = Field(default="", validate_default=True)

    @field_validator("key")
    @classmethod
    def key_must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("key must not be empty")
        return v


class ReadResult(BaseModel):
    """Successful lookup."""

    value: str
