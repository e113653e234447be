"""Rich rendering of the replayed session state.

The markdown summary is what the host reads; this is what an operator sees
when running `agent-progress summary` in a terminal. Both are rendered from
the same AgentRun list with the same cell formatters, so they never disagree.
"""

from rich.table import Table
from rich.text import Text

from core.summary import AgentRun, RunStatus, format_duration, format_task, format_tools

_STATUS_STYLES = {
    RunStatus.RUNNING:   ("●", "bold yellow"),
    RunStatus.COMPLETED: ("✓", "bold green"),
}


def render_table(runs: list[AgentRun]) -> Table:
    """Build a Rich Table with one row per run, in first-start order."""
    table = Table(title="Agent Progress", show_lines=False, border_style="bright_black")
    table.add_column("#",        style="dim",  width=3, justify="right")
    table.add_column("Agent",    style="bold", min_width=16)
    table.add_column("Status",   width=13)
    table.add_column("Duration", width=9,      justify="right")
    table.add_column("Tools",    style="cyan", min_width=12)
    table.add_column("Task",     style="dim",  min_width=20)

    for i, run in enumerate(runs, 1):
        icon, style = _STATUS_STYLES[run.status]
        duration = format_duration(run.duration) if run.status is RunStatus.COMPLETED else "-"
        table.add_row(
            str(i),
            run.agent_type,
            Text(f"{icon} {run.status.value}", style=style),
            duration,
            format_tools(run.tools_used, run.tool_count),
            format_task(run.description),
        )

    return table


def render_totals(runs: list[AgentRun]) -> str:
    """Rich markup for the totals line shown under the table."""
    completed = sum(1 for r in runs if r.status is RunStatus.COMPLETED)
    running = len(runs) - completed
    return (
        f"Total: [bold]{len(runs)}[/bold] | "
        f"Completed: [green]{completed}[/green] | "
        f"Running: [yellow]{running}[/yellow]"
    )
