"""CLI entry point for SiteProof."""
from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import AIConfig
from .errors import SiteProofError
from .logging_config import setup_logging
from .personas import PERSONAS, get_persona, select_persona
from .report import generate_compliance_report
from .service import SiteProofAI
from .tokenizer import analyze_request_tokens, format_token_summary


console = Console()
LOGGER = logging.getLogger(__name__)

DECISION_STYLES = {
    "proceed": "green",
    "proceed_with_caution": "yellow",
    "postpone": "red",
    "cancel": "bold red",
}

STATUS_STYLES = {"pass": "green", "warning": "yellow", "fail": "red"}


def print_header(config: AIConfig) -> None:
    console.print(
        Panel.fit(
            f"[bold cyan]SITEPROOF AI[/bold cyan]  [dim]v{__version__}[/dim]\n"
            f"[dim]Model: {config.model}[/dim]",
            border_style="cyan",
        )
    )


def load_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")


def parse_context(pairs: tuple[str, ...]) -> dict[str, str]:
    context = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--context")
        context[key.strip()] = value.strip()
    return context


def create_run_directory(output_dir: Path, prefix: str = "compliance") -> Path:
    timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
    run_dir = output_dir / f"{prefix}_{timestamp}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


@contextmanager
def handle_errors():
    """Print a short error and exit 1 instead of a traceback."""
    try:
        yield
    except SiteProofError as e:
        LOGGER.debug("Command failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except (OSError, ValueError, KeyError) as e:
        LOGGER.debug("Command failed", exc_info=True)
        console.print(f"[red]Error:[/red] Could not process input ({e})")
        sys.exit(1)


def print_tool_log(tools_used) -> None:
    if not tools_used:
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Tool")
    table.add_column("Result")
    table.add_column("ms", justify="right")
    for execution in tools_used:
        status = "[green]ok[/green]" if execution.success else f"[red]{execution.error or 'failed'}[/red]"
        table.add_row(execution.tool_name, status, f"{execution.execution_time:.1f}")
    console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--log-dir", type=click.Path(), default=None, help="Also write logs to this directory")
@click.pass_context
def main(ctx: click.Context, verbose: bool, log_dir: str | None):
    """SiteProof construction compliance assistant."""
    config = AIConfig.from_env()
    setup_logging("DEBUG" if verbose else config.log_level, log_dir=log_dir)
    ctx.obj = config


def get_service(ctx: click.Context) -> SiteProofAI:
    config: AIConfig = ctx.obj
    return SiteProofAI(config)


@main.command()
@click.argument("query")
@click.option("--context", "-c", "context_pairs", multiple=True, help="Extra context as key=value")
@click.option("--persona", type=click.Choice(sorted(PERSONAS)), default=None,
              help="Force a persona instead of choosing one from the query")
@click.option("--show-tokens", is_flag=True, help="Print a token estimate for the final conversation")
@click.pass_context
def ask(
    ctx: click.Context,
    query: str,
    context_pairs: tuple[str, ...],
    persona: str | None,
    show_tokens: bool,
) -> None:
    """Ask a question; the model may call tools to answer it."""
    print_header(ctx.obj)
    with handle_errors():
        service = get_service(ctx)
        with console.status("Thinking..."):
            result = service.ask(query, parse_context(context_pairs) or None, persona)

    console.print(Panel(result.answer or "[dim](empty answer)[/dim]", title="Answer", border_style="green"))
    print_tool_log(result.tools_used)
    console.print(
        f"[dim]Confidence: {result.confidence}% | Iterations: {result.iterations} | "
        f"Tokens: {result.input_tokens:,} in → {result.output_tokens:,} out[/dim]"
    )
    if show_tokens:
        prompt = get_persona(persona).prompt if persona else select_persona(query).prompt
        summary = analyze_request_tokens(prompt, result.conversation, service.registry.to_api())
        console.print(format_token_summary(summary))


@main.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """List the available tools."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Required")
    table.add_column("Description")
    for tool in get_service(ctx).registry.list_tools():
        table.add_row(tool.name, ", ".join(tool.required), tool.description)
    console.print(table)


@main.command("run-tool")
@click.argument("name")
@click.option("--input", "-i", "tool_input", default="{}", help="Tool input as a JSON object")
@click.pass_context
def run_tool(ctx: click.Context, name: str, tool_input: str) -> None:
    """Run one tool locally (no API call)."""
    with handle_errors():
        params = json.loads(tool_input)
        if not isinstance(params, dict):
            raise ValueError("tool input must be a JSON object")
        output = get_service(ctx).run_tool(name, params)
    console.print_json(json.dumps(output, default=str))


@main.command()
@click.argument("project_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-dir", "-o", type=click.Path(), default="./output",
              help="Output directory for the analysis and report")
@click.option("--organization", default="default", help="Organization id stamped on the result")
@click.pass_context
def compliance(ctx: click.Context, project_json: str, output_dir: str, organization: str) -> None:
    """Full compliance analysis of a project; writes analysis.json and report.docx."""
    print_header(ctx.obj)
    with handle_errors():
        project_data = load_json(project_json)
        sentinel = get_service(ctx).compliance_sentinel(organization)
        with console.status("Analyzing project..."):
            result = sentinel.analyze_project(project_data)

        run_dir = create_run_directory(Path(output_dir))
        write_json(
            run_dir / "analysis.json",
            {**result.to_dict(), "tools": [t.to_dict() for t in sentinel.tool_execution_log]},
        )
        report_path = generate_compliance_report(result, run_dir, sentinel.tool_execution_log)

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("Field", style="bold")
    summary.add_column("Value")
    summary.add_row("Status", result.compliance_status)
    summary.add_row("Risk", result.risk_level)
    for severity, issues in result.issues_by_severity.items():
        summary.add_row(severity, str(len(issues)))
    summary.add_row("Tool calls", str(result.tool_calls_made))
    console.print(summary)
    if not result.parsed:
        console.print("[yellow]Warning:[/yellow] answer was not structured JSON; defaults used")
    console.print(f"[dim]Report: {report_path}[/dim]")


@main.command()
@click.argument("inspection_json", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def weather(ctx: click.Context, inspection_json: str) -> None:
    """Go/no-go weather decision for an inspection (optional "forecast" list)."""
    print_header(ctx.obj)
    with handle_errors():
        data = load_json(inspection_json)
        forecast = data.pop("forecast", None)
        with console.status("Assessing weather..."):
            decision = get_service(ctx).weather_decision(data, forecast)

    style = DECISION_STYLES.get(decision.decision, "white")
    console.print(
        f"[{style}]{decision.decision.upper()}[/{style}]  "
        f"[dim]confidence {decision.confidence:g}% ({decision.source})[/dim]"
    )
    console.print(decision.reasoning)
    for heading, items in (
        ("Critical factors", decision.critical_factors),
        ("Mitigation", decision.mitigation_measures),
        ("Alternatives", decision.alternative_plans),
    ):
        if items:
            console.print(f"\n[bold]{heading}:[/bold]")
            for item in items:
                console.print(f"  • {item.get('factor', item) if isinstance(item, dict) else item}")


@main.command()
@click.argument("request_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--rules-only", is_flag=True, help="Rule-based optimization without the model")
@click.pass_context
def schedule(ctx: click.Context, request_json: str, rules_only: bool) -> None:
    """Optimize a project schedule."""
    print_header(ctx.obj)
    with handle_errors():
        request = load_json(request_json)
        with console.status("Optimizing schedule..."):
            result = get_service(ctx).optimize_schedule(request, use_model=not rules_only)

    console.print(
        f"[bold]Duration:[/bold] {result.original_duration} → {result.optimized_duration} days "
        f"([green]{result.time_saved} saved[/green], {result.source})"
    )
    console.print(f"[bold]Critical path:[/bold] {' → '.join(result.critical_path) or '-'}")
    for heading, items in (
        ("Improvements", result.improvements),
        ("Insights", result.insights),
        ("Warnings", result.warnings),
    ):
        if items:
            console.print(f"\n[bold]{heading}:[/bold]")
            for item in items:
                console.print(f"  • {item}")


@main.command()
@click.argument("inspection_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-dir", "-o", type=click.Path(), default="./output",
              help="Output directory for the analysis and report")
@click.option("--report", "write_report", is_flag=True, help="Also have the model write a markdown report")
@click.option("--project", "project_id", default=None, help="Project id for the inspection context")
@click.pass_context
def inspect(
    ctx: click.Context,
    inspection_json: str,
    output_dir: str,
    write_report: bool,
    project_id: str | None,
) -> None:
    """Tool-assisted analysis of one inspection (optional "context" object)."""
    print_header(ctx.obj)
    with handle_errors():
        data = load_json(inspection_json)
        context = data.pop("context", None) or {}
        if project_id:
            context["project_id"] = project_id
        if write_report:
            context["requires_report"] = True
        with console.status("Analyzing inspection..."):
            result = get_service(ctx).analyze_inspection(data, context)

        run_dir = create_run_directory(Path(output_dir), "inspection")
        write_json(run_dir / "inspection.json", result.to_dict())
        if result.report_generated:
            (run_dir / "report.md").write_text(result.report_content or "", encoding="utf-8")

    style = STATUS_STYLES.get(result.overall_status, "white")
    console.print(
        f"[{style}]{result.overall_status.upper()}[/{style}]  "
        f"[dim]{result.tool_calls_made} tool calls, {len(result.defects)} defects[/dim]"
    )
    for recommendation in result.recommendations:
        console.print(f"  • {recommendation}")
    console.print(f"[dim]Output: {run_dir}[/dim]")


@main.command()
@click.argument("request_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--output-dir", "-o", type=click.Path(), default="./output",
              help="Output directory for the ITP report")
@click.option("--standard", "standards", multiple=True, help="Standard code to check (repeatable)")
@click.option("--report-type", type=click.Choice(["detailed", "summary", "non-conformance"]),
              default=None, help="Overrides report_type in the request")
@click.pass_context
def itp(
    ctx: click.Context,
    request_json: str,
    output_dir: str,
    standards: tuple[str, ...],
    report_type: str | None,
) -> None:
    """Inspection and Test Plan report for one inspection; writes itp.json and itp_report.md."""
    print_header(ctx.obj)
    with handle_errors():
        request = load_json(request_json)
        if "inspection" not in request:
            request = {"inspection": request}
        if standards:
            request["standards"] = list(standards)
        if report_type:
            request["report_type"] = report_type
        history = request.pop("history", None)
        with console.status("Generating ITP report..."):
            report = get_service(ctx).generate_itp_report(request, history)

        run_dir = create_run_directory(Path(output_dir), "itp")
        write_json(run_dir / "itp.json", report.to_dict())
        (run_dir / "itp_report.md").write_text(report.report_markdown, encoding="utf-8")

    status = "[green]COMPLIANT[/green]" if report.compliant else "[red]NON-COMPLIANT[/red]"
    console.print(f"{status}  [dim]{report.id} ({report.report_type})[/dim]")
    console.print(report.summary)
    if report.next_actions:
        console.print("\n[bold]Next actions:[/bold]")
        for action in report.next_actions:
            console.print(f"  • {action}")
    console.print(f"[dim]Output: {run_dir}[/dim]")


if __name__ == "__main__":
    main()
