"""Message models that make up an evaluation transcript.

A Message is a discriminated union on ``role``. Models are frozen
pydantic models: equality is by value and a message cannot change
once it is in a transcript.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class ToolCall(BaseModel):
    """A tool call made by the agent, optionally with its result."""

    model_config = {"extra": "forbid", "frozen": True}

    id: str | None = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None


class SystemMessage(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    role: Literal["user"] = "user"
    content: str


class ToolResultMessage(BaseModel):
    """Result of a tool call, referencing the call by id and/or name."""

    model_config = {"extra": "forbid", "frozen": True}

    role: Literal["tool"] = "tool"
    tool_call_id: str | None = None
    name: str
    content: dict[str, Any] = Field(default_factory=dict)


class AgentResponseGenerationContext(BaseModel):
    """The context the agent used to generate a response.

    Attributes:
        prompt_used: Messages used as the prompt. When absent, the chat
            history prior to the response is assumed.
        tool_calls: Tool calls made by the model while generating the
            response, with their results.
    """

    model_config = {"extra": "forbid", "frozen": True}

    prompt_used: list[Message] | None = None
    tool_calls: list[ToolCall] | None = None


class AssistantMessage(BaseModel):
    """A response produced by the agent under test."""

    model_config = {"extra": "forbid", "frozen": True}

    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    context: AgentResponseGenerationContext | None = None


Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolResultMessage],
    Field(discriminator="role"),
]

AgentResponseGenerationContext.model_rebuild()
AssistantMessage.model_rebuild()

_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)
_MESSAGE_LIST_ADAPTER: TypeAdapter[list[Message]] = TypeAdapter(list[Message])


def parse_message(data: dict[str, Any]) -> Message:
    """Build the message variant selected by ``data["role"]``.

    Raises:
        pydantic.ValidationError: If the role is unknown or the fields do
            not match the role.
    """
    return _MESSAGE_ADAPTER.validate_python(data)


def parse_messages(data: list[dict[str, Any]]) -> list[Message]:
    """Build a list of messages from plain dicts."""
    return _MESSAGE_LIST_ADAPTER.validate_python(data)
