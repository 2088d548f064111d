"""Criteria -- pass/fail evaluators over a message sequence.

Provides the Criterion base class, the negate/and_/pipe combinators
and the tool call criteria.
"""

from __future__ import annotations

from zevals.criteria.base import (
    Criterion,
    CriterionResult,
    CriterionStatus,
    FunctionCriterion,
)
from zevals.criteria.combinators import Conjunction, Negated, Piped, and_, negate, pipe
from zevals.criteria.tools_called import (
    ToolCallAssertion,
    ToolCallsCriterion,
    ToolsCalledCriterion,
    ToolsCalledOutput,
    ai_tool_calls,
    ai_tools_called,
    extract_tool_calls,
)

__all__ = [
    "Conjunction",
    "Criterion",
    "CriterionResult",
    "CriterionStatus",
    "FunctionCriterion",
    "Negated",
    "Piped",
    "ToolCallAssertion",
    "ToolCallsCriterion",
    "ToolsCalledCriterion",
    "ToolsCalledOutput",
    "ai_tool_calls",
    "ai_tools_called",
    "and_",
    "extract_tool_calls",
    "negate",
    "pipe",
]
