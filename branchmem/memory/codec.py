"""Encoding of structured AI and tool payloads stored as memory content.

AI entries are stored as ``{"content": ..., "toolCalls": [...]}`` so tool
results can be matched to the calls that produced them when the history is
rebuilt. Tool entries are stored as
``{"toolCallId": ..., "toolName": ..., "toolInput": ..., "toolOutput": ...}``.

Decoding never raises. Content written by an older client, or corrupted in
storage, comes back as a :class:`RawPayload` and the reader falls back to
treating it as plain text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

UNKNOWN_TOOL = "unknown"


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str | None = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    type: str = "tool_call"


class AIPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str
    tool_calls: list[ToolCall] = Field(default_factory=list, alias="toolCalls")

    @field_validator("content", mode="before")
    @classmethod
    def _stringify_content(cls, value: Any) -> str:
        # Multi-part content is kept as its JSON text.
        return value if isinstance(value, str) else json.dumps(value)

    @field_validator("tool_calls", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ToolPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_call_id: str = Field(alias="toolCallId")
    tool_name: str = Field(alias="toolName")
    tool_input: Any = Field(default=None, alias="toolInput")
    tool_output: Any = Field(default=None, alias="toolOutput")


@dataclass(frozen=True)
class DecodedPayload:
    """Stored content that parsed into its structured form."""

    value: AIPayload | ToolPayload


@dataclass(frozen=True)
class RawPayload:
    """Stored content that did not parse; *text* is the content as stored."""

    text: str
    reason: str


DecodeResult = DecodedPayload | RawPayload


def encode_ai_content(content: str, tool_calls: list[ToolCall] | None = None) -> str:
    payload = AIPayload(content=content, tool_calls=tool_calls or [])
    return payload.model_dump_json(by_alias=True)


def encode_tool_content(
    tool_call_id: str,
    tool_name: str,
    tool_input: Any,
    tool_output: Any,
) -> str:
    return json.dumps(
        {
            "toolCallId": tool_call_id,
            "toolName": tool_name,
            "toolInput": tool_input,
            "toolOutput": tool_output,
        },
        default=str,
    )


def _decode(raw: str, model: type[AIPayload] | type[ToolPayload]) -> DecodeResult:
    try:
        return DecodedPayload(model.model_validate_json(raw))
    except ValidationError as e:
        return RawPayload(text=raw, reason=f"{e.error_count()} validation error(s)")


def decode_ai_content(raw: str) -> DecodeResult:
    return _decode(raw, AIPayload)


def decode_tool_content(raw: str) -> DecodeResult:
    return _decode(raw, ToolPayload)


def ai_payload(raw: str) -> AIPayload:
    """Decoded AI payload, or the raw text with no tool calls."""
    result = decode_ai_content(raw)
    if isinstance(result, DecodedPayload):
        return result.value  # type: ignore[return-value]
    return AIPayload(content=result.text)


def tool_payload(raw: str) -> ToolPayload:
    """Decoded tool payload, or an ``unknown`` tool whose output is the raw text."""
    result = decode_tool_content(raw)
    if isinstance(result, DecodedPayload):
        return result.value  # type: ignore[return-value]
    return ToolPayload(
        tool_call_id=UNKNOWN_TOOL,
        tool_name=UNKNOWN_TOOL,
        tool_input={},
        tool_output=result.text,
    )
