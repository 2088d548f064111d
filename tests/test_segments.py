"""Tests for zevals.segments - segment variants and the user simulation loop."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from zevals.agent import Agent, AgentInvocationResult, SyntheticUser
from zevals.config import DEFAULT_MAX_TURNS
from zevals.criteria import CriterionResult, CriterionStatus, FunctionCriterion
from zevals.errors import EmptyTranscriptError
from zevals.messages import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolResultMessage,
    UserMessage,
)
from zevals.segments import (
    MessageEntry,
    PendingEval,
    agent_response,
    ai_eval,
    message,
    swap_roles,
    user_simulation,
)


class EchoAgent(Agent):
    """Agent that echoes the last message and records every invocation."""

    def __init__(self) -> None:
        self.invocations: list[list[Message]] = []

    async def invoke(self, messages: list[Message]) -> AgentInvocationResult:
        self.invocations.append(list(messages))
        return AgentInvocationResult(
            message=AssistantMessage(content=f"echo: {messages[-1].content}")
        )


class FailingAgent(Agent):
    async def invoke(self, messages: list[Message]) -> AgentInvocationResult:
        raise ConnectionError("agent unreachable")


class CountingUser(SyntheticUser):
    """Synthetic user that says 'turn N' and records what it was shown."""

    def __init__(self) -> None:
        self.views: list[list[UserMessage | AssistantMessage]] = []

    async def respond(
        self, messages: list[UserMessage | AssistantMessage]
    ) -> UserMessage:
        self.views.append(list(messages))
        return UserMessage(content=f"turn {len(self.views)}")


def _succeeds_after(turns: int | None) -> FunctionCriterion:
    """Stop criterion succeeding once the agent replied *turns* times."""

    def check(messages: list[Message]) -> CriterionResult[int]:
        replies = sum(isinstance(m, AssistantMessage) for m in messages)
        done = turns is not None and replies >= turns
        return CriterionResult(
            output=replies,
            status=CriterionStatus.success if done else CriterionStatus.failure,
            reason=f"{replies} replies",
        )

    return FunctionCriterion("enough replies", check)


class TestSwapRoles:
    def test_swaps_user_and_assistant(self) -> None:
        view = swap_roles([
            UserMessage(content="hi"),
            AssistantMessage(content="hello"),
        ])
        assert view == [AssistantMessage(content="hi"), UserMessage(content="hello")]

    def test_drops_system_and_tool_messages(self) -> None:
        view = swap_roles([
            SystemMessage(content="rules"),
            UserMessage(content="hi"),
            ToolResultMessage(name="search", content={}),
        ])
        assert view == [AssistantMessage(content="hi")]


class TestMessageSegment:
    @pytest.mark.asyncio
    async def test_returns_literal_message(self) -> None:
        agent = EchoAgent()
        msg = UserMessage(content="hi")
        entries = await message(msg).evaluate(agent, [])
        assert entries == [MessageEntry(msg)]
        assert agent.invocations == []


class TestAgentResponseSegment:
    @pytest.mark.asyncio
    async def test_invokes_agent_with_transcript(self) -> None:
        agent = EchoAgent()
        previous = [UserMessage(content="hi")]
        entries = await agent_response().evaluate(agent, previous)
        assert entries == [MessageEntry(AssistantMessage(content="echo: hi"))]
        assert agent.invocations == [previous]

    @pytest.mark.asyncio
    async def test_agent_error_propagates(self) -> None:
        with pytest.raises(ConnectionError, match="agent unreachable"):
            await agent_response().evaluate(FailingAgent(), [UserMessage(content="hi")])


class TestAiEvalSegment:
    @pytest.mark.asyncio
    async def test_empty_transcript_raises(self) -> None:
        criterion = _succeeds_after(1)
        with pytest.raises(EmptyTranscriptError) as exc_info:
            await ai_eval(criterion).evaluate(EchoAgent(), [])
        assert exc_info.value.criterion_name == "enough replies"
        assert "before any messages" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_returns_pending_eval(self) -> None:
        criterion = _succeeds_after(1)
        previous = [UserMessage(content="hi"), AssistantMessage(content="hello")]
        entries = await ai_eval(criterion).evaluate(EchoAgent(), previous)

        assert len(entries) == 1
        entry = entries[0]
        assert isinstance(entry, PendingEval)
        assert entry.criterion is criterion
        result = await entry.result
        assert result.status is CriterionStatus.success
        assert result.output == 1

    @pytest.mark.asyncio
    async def test_evaluation_not_awaited_by_segment(self) -> None:
        release = asyncio.Event()

        async def slow(messages: list[Message]) -> CriterionResult[None]:
            await release.wait()
            return CriterionResult(output=None, status="success")

        entries = await ai_eval(FunctionCriterion("slow", slow)).evaluate(
            EchoAgent(), [UserMessage(content="hi")]
        )
        pending = entries[0].result
        assert not pending.done()

        release.set()
        result = await pending
        assert result.status is CriterionStatus.success


class TestUserSimulation:
    @pytest.mark.asyncio
    async def test_stops_when_until_succeeds(self) -> None:
        until = _succeeds_after(2)
        segment = user_simulation(user=CountingUser(), until=until, max_turns=5)
        entries = await segment.evaluate(EchoAgent(), [])

        messages = [e.message for e in entries if isinstance(e, MessageEntry)]
        assert [m.content for m in messages] == [
            "turn 1", "echo: turn 1", "turn 2", "echo: turn 2",
        ]
        last = entries[-1]
        assert isinstance(last, PendingEval)
        assert last.criterion is until
        assert (await last.result).status is CriterionStatus.success
        assert len(entries) == 5

    @pytest.mark.asyncio
    async def test_exhausts_max_turns(self) -> None:
        until = _succeeds_after(None)
        segment = user_simulation(user=CountingUser(), until=until, max_turns=3)
        entries = await segment.evaluate(EchoAgent(), [])

        messages = [e for e in entries if isinstance(e, MessageEntry)]
        evals = [e for e in entries if isinstance(e, PendingEval)]
        assert len(messages) == 6
        assert len(evals) == 1
        assert entries[-1] is evals[0]

        result = await evals[0].result
        assert result.status is CriterionStatus.failure
        assert result.reason == "3 replies"

    @pytest.mark.asyncio
    async def test_exhausts_with_undetermined_status(self) -> None:
        until = FunctionCriterion(
            "undecided", lambda messages: CriterionResult(output=None)
        )
        entries = await user_simulation(
            user=CountingUser(), until=until, max_turns=2
        ).evaluate(EchoAgent(), [])
        assert len(entries) == 5
        assert (await entries[-1].result).status is None

    @pytest.mark.asyncio
    async def test_default_max_turns(self) -> None:
        entries = await user_simulation(
            user=CountingUser(), until=_succeeds_after(None)
        ).evaluate(EchoAgent(), [])
        assert len(entries) == 2 * DEFAULT_MAX_TURNS + 1

    @pytest.mark.asyncio
    async def test_user_sees_role_swapped_history(self) -> None:
        user = CountingUser()
        previous = [
            SystemMessage(content="You are a travel agent"),
            UserMessage(content="hi"),
            AssistantMessage(content="hello"),
        ]
        await user_simulation(
            user=user, until=_succeeds_after(3), max_turns=2
        ).evaluate(EchoAgent(), previous)

        assert user.views[0] == [
            AssistantMessage(content="hi"),
            UserMessage(content="hello"),
        ]
        assert user.views[1] == [
            AssistantMessage(content="hi"),
            UserMessage(content="hello"),
            AssistantMessage(content="turn 1"),
            UserMessage(content="echo: turn 1"),
        ]

    @pytest.mark.asyncio
    async def test_agent_sees_full_transcript(self) -> None:
        agent = EchoAgent()
        previous = [SystemMessage(content="rules")]
        await user_simulation(
            user=CountingUser(), until=_succeeds_after(2), max_turns=2
        ).evaluate(agent, previous)

        assert agent.invocations[0] == [
            SystemMessage(content="rules"),
            UserMessage(content="turn 1"),
        ]
        assert agent.invocations[1][-1] == UserMessage(content="turn 2")
        assert len(agent.invocations[1]) == 4

    @pytest.mark.asyncio
    async def test_agent_error_propagates(self) -> None:
        segment = user_simulation(user=CountingUser(), until=_succeeds_after(1))
        with pytest.raises(ConnectionError):
            await segment.evaluate(FailingAgent(), [])

    def test_max_turns_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            user_simulation(user=CountingUser(), until=_succeeds_after(1), max_turns=0)
