"""Segments -- the steps a scenario is made of.

A segment receives the agent and the messages produced so far and
returns entries to append to the evaluation history: literal messages,
and criterion evaluations that may still be running. Segments keep no
state between runs.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, Union

from zevals.agent import Agent, SyntheticUser
from zevals.config import UserSimulationConfig
from zevals.criteria.base import Criterion, CriterionResult
from zevals.errors import EmptyTranscriptError
from zevals.messages import AssistantMessage, Message, UserMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageEntry:
    """A message appended to the transcript."""

    message: Message


@dataclass(frozen=True)
class PendingEval:
    """A criterion evaluation, possibly still in flight.

    The runner awaits ``result`` once every segment has run.
    """

    criterion: Criterion[Any]
    result: Awaitable[CriterionResult[Any]]


SegmentEvaluationPromise = Union[MessageEntry, PendingEval]


def resolved(result: CriterionResult[Any]) -> asyncio.Future[CriterionResult[Any]]:
    """Wrap an already computed result as a completed future."""
    future: asyncio.Future[CriterionResult[Any]] = (
        asyncio.get_running_loop().create_future()
    )
    future.set_result(result)
    return future


def swap_roles(messages: Sequence[Message]) -> list[UserMessage | AssistantMessage]:
    """Present the conversation from the synthetic user's side.

    User messages become assistant messages and vice versa, keeping only
    the content. System and tool messages are dropped.
    """
    swapped: list[UserMessage | AssistantMessage] = []
    for m in messages:
        if isinstance(m, UserMessage):
            swapped.append(AssistantMessage(content=m.content))
        elif isinstance(m, AssistantMessage):
            swapped.append(UserMessage(content=m.content))
    return swapped


class Segment(ABC):
    """Part of a scenario to be evaluated."""

    @abstractmethod
    async def evaluate(
        self, agent: Agent, previous_messages: Sequence[Message]
    ) -> list[SegmentEvaluationPromise]:
        """Produce this segment's contribution to the evaluation history.

        Args:
            agent: The agent under test.
            previous_messages: Every message emitted by earlier segments.

        Returns:
            Entries to append, in chronological order.
        """
        ...


class MessageSegment(Segment):
    """Adds a fixed message to the transcript."""

    def __init__(self, message: Message) -> None:
        self.message = message

    async def evaluate(
        self, agent: Agent, previous_messages: Sequence[Message]
    ) -> list[SegmentEvaluationPromise]:
        return [MessageEntry(self.message)]


class AgentResponseSegment(Segment):
    """Invokes the agent to generate a response."""

    async def evaluate(
        self, agent: Agent, previous_messages: Sequence[Message]
    ) -> list[SegmentEvaluationPromise]:
        response = await agent.invoke(list(previous_messages))
        return [MessageEntry(response.message)]


class AiEvalSegment(Segment):
    """Evaluates the conversation so far against a criterion.

    The evaluation is started as a task and not awaited here, so the
    scenario moves on while it runs.
    """

    def __init__(self, criterion: Criterion[Any]) -> None:
        self.criterion = criterion

    async def evaluate(
        self, agent: Agent, previous_messages: Sequence[Message]
    ) -> list[SegmentEvaluationPromise]:
        if not previous_messages:
            raise EmptyTranscriptError(self.criterion.name)

        task = asyncio.ensure_future(self.criterion.evaluate(list(previous_messages)))
        return [PendingEval(self.criterion, task)]


class UserSimulationSegment(Segment):
    """Lets a synthetic user talk to the agent until a criterion is met.

    Each turn appends the user's utterance and the agent's reply, then
    evaluates ``until`` on the updated transcript. The loop stops at the
    first success or after ``max_turns`` turns; either way the last
    evaluation of ``until`` is appended, so an unmet stop condition
    shows up as a failed (or undetermined) result instead of an error.
    """

    def __init__(
        self,
        user: SyntheticUser,
        until: Criterion[Any],
        config: UserSimulationConfig,
    ) -> None:
        self.user = user
        self.until = until
        self.config = config

    async def evaluate(
        self, agent: Agent, previous_messages: Sequence[Message]
    ) -> list[SegmentEvaluationPromise]:
        entries: list[SegmentEvaluationPromise] = []
        transcript = list(previous_messages)
        max_turns = self.config.max_turns

        for turn in range(1, max_turns + 1):
            reply = await self.user.respond(swap_roles(transcript))
            user_message = UserMessage(content=reply.content)
            entries.append(MessageEntry(user_message))
            transcript.append(user_message)

            response = await agent.invoke(list(transcript))
            entries.append(MessageEntry(response.message))
            transcript.append(response.message)

            outcome = await self.until.evaluate(list(transcript))

            if outcome.succeeded:
                logger.debug(
                    "User simulation: %r met on turn %d/%d",
                    self.until.name, turn, max_turns,
                )
                entries.append(PendingEval(self.until, resolved(outcome)))
                break

            if turn == max_turns:
                logger.debug(
                    "User simulation: %r not met after %d turns (status=%s)",
                    self.until.name, max_turns, outcome.status,
                )
                entries.append(PendingEval(self.until, resolved(outcome)))

        return entries


def message(message: Message) -> MessageSegment:
    """Simply adds a message to the evaluation history."""
    return MessageSegment(message)


def agent_response() -> AgentResponseSegment:
    """Invokes the agent under test with the transcript so far."""
    return AgentResponseSegment()


def ai_eval(criterion: Criterion[Any]) -> AiEvalSegment:
    """Evaluates the transcript so far against *criterion*.

    Raises EmptyTranscriptError at run time if no message precedes it.
    """
    return AiEvalSegment(criterion)


def user_simulation(
    user: SyntheticUser,
    until: Criterion[Any],
    max_turns: int | None = None,
) -> UserSimulationSegment:
    """Multi-turn loop between a synthetic user and the agent.

    Args:
        user: The synthetic user producing the user turns.
        until: Stop criterion, evaluated after every agent reply.
        max_turns: Maximum number of user/agent exchanges (default 10).

    Raises:
        pydantic.ValidationError: If max_turns is less than 1.
    """
    if max_turns is None:
        config = UserSimulationConfig()
    else:
        config = UserSimulationConfig(max_turns=max_turns)
    return UserSimulationSegment(user, until, config)
