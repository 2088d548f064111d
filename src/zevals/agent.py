"""Interfaces of the collaborators a scenario runs against.

The agent under test, the synthetic user and the judge are supplied by
the caller. Only their contracts live here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from zevals.messages import AssistantMessage, Message, UserMessage

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class AgentInvocationResult(BaseModel):
    """The result of invoking an Agent.

    Attributes:
        message: The final response, i.e. the message returned to the user.
    """

    model_config = {"frozen": True}

    message: AssistantMessage


class Agent(ABC):
    """An AI agent to evaluate."""

    @abstractmethod
    async def invoke(self, messages: list[Message]) -> AgentInvocationResult:
        """Generate a response to the conversation so far.

        Exceptions raised here abort the evaluation run.
        """
        ...


class SyntheticUser(ABC):
    """An AI that plays the role of a user.

    It sees the conversation from its own side: its previous turns
    arrive as assistant messages and the agent's turns as user messages.
    """

    @abstractmethod
    async def respond(
        self, messages: list[UserMessage | AssistantMessage]
    ) -> UserMessage:
        ...


class JudgeOutput(BaseModel, Generic[SchemaT]):
    """Structured output extracted by a Judge."""

    output: SchemaT


class Judge(ABC):
    """An AI used to extract structured output from a conversation.

    Subclasses implement complete(), which talks to the model and
    returns either a dict or a JSON document. invoke() validates that
    raw output against the requested pydantic schema.
    """

    @abstractmethod
    async def complete(
        self, messages: list[Message], json_schema: dict[str, Any]
    ) -> dict[str, Any] | str:
        """Ask the model for output matching *json_schema*."""
        ...

    async def invoke(
        self, messages: list[Message], schema: type[SchemaT]
    ) -> JudgeOutput[SchemaT]:
        """Extract a *schema* instance from the conversation.

        Raises:
            pydantic.ValidationError: If the model output does not match
                the schema.
        """
        raw = await self.complete(list(messages), schema.model_json_schema())
        if isinstance(raw, str):
            output = schema.model_validate_json(raw)
        else:
            output = schema.model_validate(raw)
        return JudgeOutput[schema](output=output)
