"""Criterion combinators: negate, and_, pipe.

Each combinator returns a wrapper criterion that holds the criteria it
was built from. The wrapped criteria are left untouched.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import TypeVar

from zevals.criteria.base import Criterion, CriterionResult, CriterionStatus
from zevals.messages import Message

T = TypeVar("T")
U = TypeVar("U")

_FLIPPED: dict[CriterionStatus, CriterionStatus] = {
    CriterionStatus.success: CriterionStatus.failure,
    CriterionStatus.failure: CriterionStatus.success,
}


class Negated(Criterion[T]):
    """Flips success and failure of the inner criterion."""

    def __init__(self, inner: Criterion[T]) -> None:
        self.inner = inner
        self.name = inner.name

    async def evaluate(self, messages: Sequence[Message]) -> CriterionResult[T]:
        result = await self.inner.evaluate(messages)
        if result.status is None:
            return result
        return result.model_copy(update={"status": _FLIPPED[result.status]})


class Conjunction(Criterion[tuple[T, U]]):
    """Succeeds only if both criteria succeed.

    Both sides are always evaluated, concurrently. If one side raises,
    the other is cancelled and the error propagates. Any non-success
    status on either side, undetermined included, gives failure.
    """

    def __init__(self, left: Criterion[T], right: Criterion[U]) -> None:
        self.left = left
        self.right = right
        self.name = f"{left.name} AND {right.name}"

    async def evaluate(
        self, messages: Sequence[Message]
    ) -> CriterionResult[tuple[T, U]]:
        sides = [
            asyncio.ensure_future(self.left.evaluate(messages)),
            asyncio.ensure_future(self.right.evaluate(messages)),
        ]
        try:
            first, second = await asyncio.gather(*sides)
        except BaseException:
            for side in sides:
                side.cancel()
            raise

        both = first.succeeded and second.succeeded
        return CriterionResult(
            output=(first.output, second.output),
            reason=" AND ".join(r for r in (first.reason, second.reason) if r),
            status=CriterionStatus.success if both else CriterionStatus.failure,
        )


class Piped(Criterion[U]):
    """Transforms the output of the inner criterion, keeping everything else."""

    def __init__(self, inner: Criterion[T], fn: Callable[[T], U]) -> None:
        self.inner = inner
        self.name = inner.name
        self._fn = fn

    async def evaluate(self, messages: Sequence[Message]) -> CriterionResult[U]:
        result = await self.inner.evaluate(messages)
        return result.model_copy(update={"output": self._fn(result.output)})


def negate(criterion: Criterion[T]) -> Negated[T]:
    """Same name and output; success becomes failure and vice versa."""
    return Negated(criterion)


def and_(left: Criterion[T], right: Criterion[U]) -> Conjunction[T, U]:
    """Combine two criteria; the result succeeds only if both succeed."""
    return Conjunction(left, right)


def pipe(criterion: Criterion[T], fn: Callable[[T], U]) -> Piped[U]:
    """Map the output of *criterion* through *fn*."""
    return Piped(criterion, fn)
