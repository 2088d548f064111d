"""EvalRunner: drives a scenario's segments and reduces them to a report.

Segments run strictly in order, each seeing the messages emitted by the
ones before it. Criterion evaluations are collected as they are emitted
and resolved concurrently once the last segment has run.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar, Union

from zevals.agent import Agent
from zevals.criteria.base import Criterion, CriterionResult, CriterionStatus
from zevals.errors import CriterionNotFoundError
from zevals.messages import Message
from zevals.segments import (
    MessageEntry,
    PendingEval,
    Segment,
    SegmentEvaluationPromise,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

AgentSource = Union[Agent, Callable[[], Union[Agent, Awaitable[Agent]]]]


@dataclass(frozen=True)
class EvaluatedEval:
    """A criterion together with its resolved result."""

    criterion: Criterion[Any]
    result: CriterionResult[Any]


EvaluatedSegment = Union[MessageEntry, EvaluatedEval]


@dataclass(frozen=True)
class ResultsByStatus:
    """Evaluation entries grouped by status.

    ``unknown`` holds the entries whose status was not determined.
    """

    success: list[EvaluatedEval] = field(default_factory=list)
    failure: list[EvaluatedEval] = field(default_factory=list)
    unknown: list[EvaluatedEval] = field(default_factory=list)


class EvalReport:
    """Outcome of evaluating a scenario against an agent.

    Attributes:
        results: Evaluation history, messages and eval results, in order.
        results_by_status: Eval results grouped by status.
        messages: The resulting transcript.
    """

    def __init__(self, results: Sequence[EvaluatedSegment]) -> None:
        self.results: list[EvaluatedSegment] = list(results)
        self.messages: list[Message] = [
            r.message for r in self.results if isinstance(r, MessageEntry)
        ]

        by_status = ResultsByStatus()
        registry: dict[uuid.UUID, list[CriterionResult[Any]]] = {}
        for r in self.results:
            if not isinstance(r, EvaluatedEval):
                continue
            registry.setdefault(r.criterion.key, []).append(r.result)
            if r.result.status is CriterionStatus.success:
                by_status.success.append(r)
            elif r.result.status is CriterionStatus.failure:
                by_status.failure.append(r)
            else:
                by_status.unknown.append(r)

        self.results_by_status = by_status
        self._registry = registry

    @property
    def success(self) -> bool:
        """True if no evals failed."""
        return not self.results_by_status.failure

    def get_results(self, criterion: Criterion[T]) -> list[CriterionResult[T]]:
        """All results recorded for this criterion instance, in order."""
        return list(self._registry.get(criterion.key, []))

    def get_result(self, criterion: Criterion[T]) -> CriterionResult[T] | None:
        """The first result of this criterion instance, or None."""
        results = self._registry.get(criterion.key)
        return results[0] if results else None

    def get_result_or_raise(self, criterion: Criterion[T]) -> CriterionResult[T]:
        """The first result of this criterion instance.

        Raises:
            CriterionNotFoundError: If the criterion was never evaluated.
        """
        result = self.get_result(criterion)
        if result is None:
            raise CriterionNotFoundError(criterion.name)
        return result

    def __repr__(self) -> str:
        counts = self.results_by_status
        return (
            f"EvalReport(success={self.success}, messages={len(self.messages)}, "
            f"passed={len(counts.success)}, failed={len(counts.failure)}, "
            f"unknown={len(counts.unknown)})"
        )


def _discard_pending(entries: Sequence[SegmentEvaluationPromise]) -> None:
    """Cancel evaluations that are still running after an abort."""
    for entry in entries:
        if not isinstance(entry, PendingEval):
            continue
        pending = entry.result
        if isinstance(pending, asyncio.Future):
            if not pending.done():
                pending.cancel()
            elif not pending.cancelled():
                # Mark the outcome as retrieved; the abort reason is what propagates.
                pending.exception()
        elif inspect.iscoroutine(pending):
            pending.close()


async def _resolve(
    entries: Sequence[SegmentEvaluationPromise],
) -> list[EvaluatedSegment]:
    """Await every pending evaluation concurrently, keeping entry order."""
    pending = [e.result for e in entries if isinstance(e, PendingEval)]
    outcomes = iter(await asyncio.gather(*pending))

    return [
        EvaluatedEval(e.criterion, next(outcomes)) if isinstance(e, PendingEval) else e
        for e in entries
    ]


class EvalRunner:
    """Evaluates scenarios against an agent.

    The agent may be given directly or as a zero-argument factory (sync
    or async); a factory is called once per run, before any segment.
    """

    def __init__(self, agent: AgentSource) -> None:
        self._agent = agent

    async def _resolve_agent(self) -> Agent:
        if isinstance(self._agent, Agent) or not callable(self._agent):
            return self._agent
        agent = self._agent()
        if inspect.isawaitable(agent):
            agent = await agent
        return agent

    async def run(self, segments: Sequence[Segment]) -> EvalReport:
        """Run *segments* in order and return the evaluation report.

        Exceptions raised by a segment, the agent, the synthetic user or
        a criterion abort the run: evaluations still in flight are
        cancelled and the exception propagates unchanged.
        """
        agent = await self._resolve_agent()

        entries: list[SegmentEvaluationPromise] = []
        transcript: list[Message] = []

        try:
            for index, segment in enumerate(segments):
                logger.debug(
                    "Segment %d/%d: %s (%d messages so far)",
                    index + 1, len(segments), type(segment).__name__, len(transcript),
                )
                produced = await segment.evaluate(agent, list(transcript))

                for entry in produced:
                    entries.append(entry)
                    if isinstance(entry, MessageEntry):
                        transcript.append(entry.message)

            results = await _resolve(entries)
        except BaseException as exc:
            logger.warning("Evaluation aborted: %s: %s", type(exc).__name__, exc)
            _discard_pending(entries)
            raise

        report = EvalReport(results)
        logger.debug("Evaluation finished: %r", report)
        return report


async def evaluate(agent: AgentSource, segments: Sequence[Segment]) -> EvalReport:
    """Evaluate the scenario (*segments*) against *agent*."""
    return await EvalRunner(agent).run(segments)
