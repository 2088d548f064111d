"""Exception hierarchy for zevals.

Scored failures are never raised; they are reported through
CriterionResult.status. Everything here aborts a run or a lookup.
"""

from __future__ import annotations


class ZevalsError(Exception):
    """Base class for all zevals errors."""


class EmptyTranscriptError(ZevalsError, ValueError):
    """Raised when a criterion is evaluated before any message exists.

    This is a scenario-authoring mistake (e.g. an ai_eval segment placed
    first), not a scored failure.
    """

    def __init__(self, criterion_name: str) -> None:
        self.criterion_name = criterion_name
        super().__init__(
            f"Criterion evaluation appears before any messages "
            f"(criterion: {criterion_name!r})"
        )


class CriterionNotFoundError(ZevalsError, LookupError):
    """Raised by EvalReport.get_result_or_raise for an unknown criterion.

    Attributes:
        criterion_name: Name of the criterion that has no results.
    """

    def __init__(self, criterion_name: str) -> None:
        self.criterion_name = criterion_name
        super().__init__(f"Cannot find results for criterion {criterion_name}")
