"""Criterion abstract class and the result it produces."""

from __future__ import annotations

import inspect
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import BaseModel

from zevals.messages import Message

if TYPE_CHECKING:
    from zevals.criteria.combinators import Conjunction, Negated

OutputT = TypeVar("OutputT")
OtherT = TypeVar("OtherT")


class CriterionStatus(str, Enum):
    """Outcome of a criterion evaluation. None on a result means undetermined."""

    success = "success"
    failure = "failure"


class CriterionResult(BaseModel, Generic[OutputT]):
    """The result of a criterion evaluation.

    Attributes:
        output: Application-defined payload.
        reason: Human-readable explanation of the outcome.
        error: Exception captured during evaluation, if any.
        status: success/failure, or None if not determined.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    output: OutputT
    reason: str | None = None
    error: BaseException | None = None
    status: CriterionStatus | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is CriterionStatus.success


class Criterion(ABC, Generic[OutputT]):
    """A way of evaluating the agent's responses.

    evaluate() must not raise for ordinary failures: those are reported
    with status=failure and a reason. Raising is reserved for
    programmer errors.

    Every instance has an opaque identity token (``key``) used by the
    evaluation report to look results up. Wrapping a criterion with a
    combinator produces a new instance with its own key.
    """

    name: str = "Criterion"

    @abstractmethod
    async def evaluate(self, messages: Sequence[Message]) -> CriterionResult[OutputT]:
        """Evaluate the conversation so far."""
        ...

    @property
    def key(self) -> uuid.UUID:
        """Identity token, assigned on first use."""
        key = self.__dict__.get("_key")
        if key is None:
            key = self.__dict__["_key"] = uuid.uuid4()
        return key

    def __invert__(self) -> Negated[OutputT]:
        from zevals.criteria.combinators import negate

        return negate(self)

    def __and__(self, other: Criterion[OtherT]) -> Conjunction[OutputT, OtherT]:
        from zevals.criteria.combinators import and_

        return and_(self, other)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionCriterion(Criterion[OutputT]):
    """Criterion backed by a plain (sync or async) function of the messages."""

    def __init__(
        self,
        name: str,
        fn: Callable[
            [list[Message]],
            CriterionResult[OutputT] | Awaitable[CriterionResult[OutputT]],
        ],
    ) -> None:
        self.name = name
        self._fn = fn

    async def evaluate(self, messages: Sequence[Message]) -> CriterionResult[OutputT]:
        result = self._fn(list(messages))
        if inspect.isawaitable(result):
            result = await result
        return result
