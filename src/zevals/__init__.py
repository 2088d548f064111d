"""zevals - scenario-based evaluation harness for conversational AI agents.

Re-exports the message models, collaborator interfaces, criteria,
segments and the evaluation runner.
"""

from zevals.agent import Agent, AgentInvocationResult, Judge, JudgeOutput, SyntheticUser
from zevals.config import UserSimulationConfig
from zevals.criteria import (
    Criterion,
    CriterionResult,
    CriterionStatus,
    FunctionCriterion,
    ToolCallAssertion,
    ToolsCalledOutput,
    ai_tool_calls,
    ai_tools_called,
    and_,
    extract_tool_calls,
    negate,
    pipe,
)
from zevals.errors import CriterionNotFoundError, EmptyTranscriptError, ZevalsError
from zevals.formatting import format_report, format_transcript, render_report
from zevals.messages import (
    AgentResponseGenerationContext,
    AssistantMessage,
    Message,
    SystemMessage,
    ToolCall,
    ToolResultMessage,
    UserMessage,
    parse_message,
    parse_messages,
)
from zevals.runner import (
    EvalReport,
    EvalRunner,
    EvaluatedEval,
    EvaluatedSegment,
    ResultsByStatus,
    evaluate,
)
from zevals.segments import (
    MessageEntry,
    PendingEval,
    Segment,
    SegmentEvaluationPromise,
    agent_response,
    ai_eval,
    message,
    swap_roles,
    user_simulation,
)

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentInvocationResult",
    "AgentResponseGenerationContext",
    "AssistantMessage",
    "Criterion",
    "CriterionNotFoundError",
    "CriterionResult",
    "CriterionStatus",
    "EmptyTranscriptError",
    "EvalReport",
    "EvalRunner",
    "EvaluatedEval",
    "EvaluatedSegment",
    "FunctionCriterion",
    "Judge",
    "JudgeOutput",
    "Message",
    "MessageEntry",
    "PendingEval",
    "ResultsByStatus",
    "Segment",
    "SegmentEvaluationPromise",
    "SyntheticUser",
    "SystemMessage",
    "ToolCall",
    "ToolCallAssertion",
    "ToolResultMessage",
    "ToolsCalledOutput",
    "UserMessage",
    "UserSimulationConfig",
    "ZevalsError",
    "agent_response",
    "ai_eval",
    "ai_tool_calls",
    "ai_tools_called",
    "and_",
    "evaluate",
    "extract_tool_calls",
    "format_report",
    "format_transcript",
    "message",
    "negate",
    "pipe",
    "render_report",
    "swap_roles",
    "user_simulation",
]
