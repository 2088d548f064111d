"""Tool call criteria -- check which tools the agent called, and how.

Tool calls are gathered from assistant messages (both the calls the
message itself carries and those recorded in its generation context)
and paired with the tool-result messages that follow them.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from zevals.criteria.base import Criterion, CriterionResult, CriterionStatus
from zevals.messages import AssistantMessage, Message, ToolCall, ToolResultMessage

logger = logging.getLogger(__name__)

# An assertion passes unless it returns False or raises.
ToolCallAssertionFn = Callable[[ToolCall], "bool | None | Awaitable[bool | None]"]


def _answers(message: ToolResultMessage, call: ToolCall) -> bool:
    # Names only decide when either side lacks an id.
    if message.tool_call_id is not None and call.id is not None:
        return message.tool_call_id == call.id
    return message.name == call.name


def extract_tool_calls(messages: Sequence[Message]) -> list[ToolCall]:
    """Collect every tool call in the conversation, with results attached.

    For each assistant message, its own tool_calls come first, then the
    calls recorded in its generation context (which may already carry a
    result). A call without a result takes the content of the first
    following tool-result message that answers it: by id when both carry
    one, otherwise by name. Each
    tool-result message is consumed by at most one call.

    Args:
        messages: The conversation, in order.

    Returns:
        Tool calls in the order they were made.
    """
    messages = list(messages)
    extracted: list[ToolCall] = []

    for index, message in enumerate(messages):
        if not isinstance(message, AssistantMessage):
            continue

        calls = [
            ToolCall(id=tc.id, name=tc.name, args=tc.args)
            for tc in message.tool_calls or []
        ]
        if message.context is not None and message.context.tool_calls:
            calls.extend(message.context.tool_calls)

        following: list[ToolResultMessage | None] = [
            m for m in messages[index + 1:] if isinstance(m, ToolResultMessage)
        ]

        for i, call in enumerate(calls):
            match = next(
                (
                    j for j, result in enumerate(following)
                    if result is not None and _answers(result, call)
                ),
                None,
            )
            if match is None:
                continue

            if call.result is None:
                calls[i] = call.model_copy(update={"result": following[match].content})
            following[match] = None

        extracted.extend(calls)

    return extracted


@dataclass(frozen=True)
class ToolCallAssertion:
    """Expectation that a tool was called.

    Attributes:
        name: Name of the tool that must have been called.
        assertion: Optional check of the call's arguments and result.
            Fails when it returns False or raises.
    """

    name: str
    assertion: ToolCallAssertionFn | None = None


class ToolsCalledOutput(BaseModel):
    model_config = {"frozen": True}

    tool_call_order_satisfied: bool


def _failed(
    reason: str, order_ok: bool = True, error: BaseException | None = None
) -> CriterionResult[ToolsCalledOutput]:
    return CriterionResult(
        output=ToolsCalledOutput(tool_call_order_satisfied=order_ok),
        status=CriterionStatus.failure,
        reason=reason,
        error=error,
    )


class ToolsCalledCriterion(Criterion[ToolsCalledOutput]):
    """Checks that the expected tools were called, optionally in order.

    Expectations are matched from the last one to the first against the
    most recent calls, so a scenario only has to describe how the
    conversation ends.
    """

    name = "Tools Called"

    def __init__(
        self,
        tool_calls: Sequence[ToolCallAssertion | str],
        assert_order: bool = False,
    ) -> None:
        self.tool_calls = [
            tc if isinstance(tc, ToolCallAssertion) else ToolCallAssertion(name=tc)
            for tc in tool_calls
        ]
        self.assert_order = assert_order

    async def evaluate(
        self, messages: Sequence[Message]
    ) -> CriterionResult[ToolsCalledOutput]:
        if not self.tool_calls:
            return CriterionResult(
                output=ToolsCalledOutput(tool_call_order_satisfied=True),
                status=CriterionStatus.success,
                reason="No tool calls to check",
            )

        actual = list(reversed(extract_tool_calls(messages)))
        expected = list(reversed(self.tool_calls))

        for i, expectation in enumerate(expected):
            if self.assert_order:
                if i >= len(actual):
                    return _failed(
                        f"Tool '{expectation.name}' was not called", order_ok=False
                    )
                if actual[i].name != expectation.name:
                    return _failed(
                        f"Tool '{actual[i].name}' was called out of order "
                        f"- expected '{expectation.name}'",
                        order_ok=False,
                    )

            call = next((c for c in actual if c.name == expectation.name), None)
            if call is None:
                return _failed(f"Tool '{expectation.name}' was not called")

            if expectation.assertion is None:
                continue

            try:
                outcome = expectation.assertion(call)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception as exc:
                logger.debug("Assertion for tool %r raised: %r", expectation.name, exc)
                return _failed(f"Tool '{expectation.name}' assertion failed", error=exc)

            if outcome is False:
                return _failed(f"Tool '{expectation.name}' assertion failed")

        return CriterionResult(
            output=ToolsCalledOutput(tool_call_order_satisfied=True),
            status=CriterionStatus.success,
        )


class ToolCallsCriterion(Criterion[Any]):
    """Runs an arbitrary assertion over all tool calls made.

    The assertion's return value becomes the output. If it raises, the
    result is a failure carrying the exception.
    """

    name = "AI Tool Calls"

    def __init__(self, assertion: Callable[[list[ToolCall]], Any]) -> None:
        self.assertion = assertion

    async def evaluate(self, messages: Sequence[Message]) -> CriterionResult[Any]:
        tool_calls = extract_tool_calls(messages)

        try:
            output = self.assertion(tool_calls)
            if inspect.isawaitable(output):
                output = await output
        except Exception as exc:
            logger.debug("Tool call assertion raised: %r", exc)
            return CriterionResult(
                output=None,
                status=CriterionStatus.failure,
                reason="Tool call assertion failed",
                error=exc,
            )

        return CriterionResult(output=output, status=CriterionStatus.success)


def ai_tools_called(
    tool_calls: Sequence[ToolCallAssertion | str],
    assert_order: bool = False,
) -> ToolsCalledCriterion:
    """Criterion that passes when the given tools were called.

    Args:
        tool_calls: Expected calls; plain strings are tool names.
        assert_order: Require the calls to be the most recent ones, in
            this exact order.
    """
    return ToolsCalledCriterion(tool_calls, assert_order=assert_order)


def ai_tool_calls(assertion: Callable[[list[ToolCall]], Any]) -> ToolCallsCriterion:
    """Criterion that runs *assertion* (sync or async) over all tool calls."""
    return ToolCallsCriterion(assertion)
