"""Report formatting: plain text summaries and a rich headline table.

Minimal on pass, detailed on fail, full detail on demand.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich import box
from rich.table import Table

from zevals.messages import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolResultMessage,
    UserMessage,
)

if TYPE_CHECKING:
    from rich.console import Console

    from zevals.runner import EvalReport, EvaluatedEval


# Verdict styling map: verdict -> (symbol, Rich markup style)
_VERDICT_STYLES: dict[bool, tuple[str, str]] = {
    True: ("\u2713 PASS", "bold green"),
    False: ("\u2717 FAIL", "bold red"),
}


def _describe(entry: EvaluatedEval) -> str:
    reason = entry.result.reason
    name = entry.criterion.name
    return f"{name}: {reason}" if reason else name


def format_report(report: EvalReport, verbose: bool = False) -> str:
    """Format an evaluation report as plain text.

    On pass (not verbose): single verdict line.
    On fail, or when verbose: verdict line followed by every evaluation,
    failures first, then undetermined, then passes.

    Args:
        report: The report to format.
        verbose: Show every evaluation even when the run passed.

    Returns:
        Multi-line string (no Rich markup).
    """
    by_status = report.results_by_status
    verdict = "PASS" if report.success else "FAILED"
    lines = [
        f"{verdict}  {len(by_status.success)} passed, {len(by_status.failure)} failed, "
        f"{len(by_status.unknown)} undetermined ({len(report.messages)} messages)"
    ]

    if report.success and not verbose:
        return lines[0]

    for entry in by_status.failure:
        lines.append(f"  FAILED     {_describe(entry)}")
        if entry.result.error is not None:
            lines.append(f"             error: {entry.result.error!r}")
    for entry in by_status.unknown:
        lines.append(f"  UNKNOWN    {_describe(entry)}")
    for entry in by_status.success:
        lines.append(f"  PASS       {_describe(entry)}")

    return "\n".join(lines)


def format_message(message: Message) -> str:
    """Render one message as a single ``role: content`` line."""
    if isinstance(message, ToolResultMessage):
        return f"tool[{message.name}]: {json.dumps(message.content, ensure_ascii=False)}"
    if isinstance(message, AssistantMessage) and message.tool_calls:
        calls = ", ".join(
            f"{tc.name}({json.dumps(tc.args, ensure_ascii=False)})"
            for tc in message.tool_calls
        )
        return f"assistant: {message.content} [calls: {calls}]"
    if isinstance(message, (SystemMessage, UserMessage, AssistantMessage)):
        return f"{message.role}: {message.content}"
    raise TypeError(f"Unsupported message type: {type(message).__name__}")


def format_transcript(messages: Sequence[Message]) -> str:
    """Render a transcript one message per line, for debugging."""
    if not messages:
        return "(empty transcript)"
    return "\n".join(format_message(m) for m in messages)


def render_report(report: EvalReport, console: Console) -> None:
    """Render a compact headline table for the report.

    Displays the verdict, transcript length and evaluation counts, plus
    the names of failed criteria when there are any.

    Args:
        report: The report to display.
        console: Rich Console for output.
    """
    by_status = report.results_by_status

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    symbol, style = _VERDICT_STYLES[report.success]
    table.add_row("Verdict", f"[{style}]{symbol}[/{style}]")
    table.add_row("Messages", str(len(report.messages)))
    table.add_row(
        "Evals",
        f"{len(by_status.success)} passed, {len(by_status.failure)} failed, "
        f"{len(by_status.unknown)} undetermined",
    )

    if by_status.failure:
        table.add_row("Failed", "\n".join(_describe(e) for e in by_status.failure))

    console.print(table)
