# display.py
# All terminal output for the sequential planner.
#
# The planner, relevance filter and CLI report events by calling the named
# functions below; none of them print directly.
#
# Colours:
#   cyan    goal intake
#   blue    model requests
#   yellow  relevance filtering
#   green   parsed plans
#   red     halts

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from sequential_planner.models import Plan

console = Console()


def set_quiet(quiet: bool = True) -> None:
    """Silence (or restore) all planner output."""
    console.quiet = quiet


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


# ---------------------------------------------------------------------------
# Pipeline entry
# ---------------------------------------------------------------------------


def banner(model: str, operations: int, groups: int, filtering: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Sequential Planner[/bold cyan]\n"
            "[dim]Goal → relevant operations → one model call → ordered plan[/dim]\n\n"
            f"[dim]Model      :[/dim] [white]{model}[/white]\n"
            f"[dim]Registry   :[/dim] [white]{operations} operation(s) in {groups} group(s)[/white]\n"
            f"[dim]Filtering  :[/dim] [white]{filtering}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def goal_received(goal: str) -> None:
    console.print()
    console.print(Rule("[cyan]NEW GOAL[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{escape(goal)}[/white]",
            title=_label("GOAL", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Relevance filtering
# ---------------------------------------------------------------------------


def relevance_hit(name: str, score: float) -> None:
    console.print(f"  [yellow]↳ relevant[/yellow] [white]{name}[/white] [dim yellow]score={score:.3f}[/dim yellow]")


def groups_selected(names: list[str]) -> None:
    console.print(
        _label("FILTER", "yellow"),
        f"[yellow] Groups selected:[/yellow] [white]{', '.join(names) or '(none)'}[/white]",
    )


def manifest_built(operation_names: list[str], tokens: int) -> None:
    console.print()
    console.print(
        _label("FILTER", "yellow"),
        f"[yellow] {len(operation_names)} operation(s) in manifest[/yellow]"
        f" [dim](~{tokens} prompt tokens)[/dim]",
    )
    console.print(f"[dim]  {_mono(', '.join(operation_names), 200)}[/dim]")


# ---------------------------------------------------------------------------
# Model call
# ---------------------------------------------------------------------------


def calling_model() -> None:
    console.print()
    console.print(_label("PLANNER", "blue"), "[blue] → Requesting plan from model…[/blue]")


def model_responded(chars: int) -> None:
    console.print(f"  [blue]↳ response received[/blue] [dim]{chars} chars[/dim]")


# ---------------------------------------------------------------------------
# Plan display
# ---------------------------------------------------------------------------


def plan_parsed(plan: Plan) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="green",
        show_header=True,
        header_style="bold green",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Operation", style="bold white", width=28)
    table.add_column("Inputs", style="dim white")
    table.add_column("Output", style="white", width=16)

    for index, step in enumerate(plan.steps, start=1):
        inputs = [f"{k}={v!r}" for k, v in step.literal_inputs.items()]
        for name, ref in step.variable_inputs.items():
            source = f"step {ref.step_index + 1}" if ref.step_index is not None else "context"
            inputs.append(f"{name}=${ref.variable} ({source})")
        operation = step.operation_ref or f"[red]{escape(step.requested_operation)} (missing)[/red]"
        table.add_row(str(index), operation, escape(_mono(", ".join(inputs), 60)), step.output_variable or "")

    console.print(
        Panel(
            table,
            title=_label("PLAN", "green"),
            subtitle=f"[dim]Goal: {escape(plan.goal)}[/dim]",
            border_style="green",
            padding=(0, 1),
        )
    )


def plan_markup(markup: str) -> None:
    console.print(Panel(escape(markup), title="[dim]MARKUP[/dim]", border_style="dim", padding=(0, 1)))


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def halt(reason: str, retryable: bool = False) -> None:
    console.print()
    hint = "\n[dim]Retryable: the same request may succeed later.[/dim]" if retryable else ""
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]{hint}",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
