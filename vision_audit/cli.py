"""
Command-Line Interface

CLI using rich for colored output and progress indicators. `analyze`
reviews one page, `batch` reviews a list of pages from a JSON file and
`journey` walks the stages of a user journey in order.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .analyzer import Analyzer
from .batch import BatchExecutor, run_journey, run_single
from .capture import PlaywrightSessionFactory
from .config import load_config
from .errors import VisionAuditError
from .log import setup_logging
from .models import (
    AnalysisContext,
    AnalysisResult,
    BatchItem,
    BusinessContext,
    Config,
    Journey,
    RunSummary,
    UserContext,
    new_run_id,
)
from .providers import PROVIDERS
from .reporters import build_reporters


console = Console()


def _load(ctx: click.Context, provider: Optional[str] = None, model: Optional[str] = None) -> Config:
    config = load_config(ctx.obj.get("env_file"))
    update = {}
    if provider:
        update["provider"] = provider
    if model:
        update["model"] = model
    return config.model_copy(update=update) if update else config


def _fail(message: str) -> None:
    console.print(f"[red]❌ Error: {message}[/red]")
    sys.exit(1)


@click.group()
@click.option(
    "--env-file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to .env file (defaults to ./.env)",
)
@click.option("-v", "--verbose", count=True, help="-v for progress logs, -vv for debug logs")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, env_file: Optional[Path], verbose: int):
    """
    Vision Audit - AI UX and accessibility review for web pages

    Captures pages with a headless browser, sends the screenshot to a
    vision model together with the user's situation, and reports scored
    issues and recommendations.

    Examples:

      # One page
      vision-audit analyze --url https://shop.example.com/checkout \\
          --stage checkout --intent "complete purchase"

      # JSON output for coding agents
      vision-audit analyze --url ... --stage ... --intent ... --output json

      # Many pages, three at a time
      vision-audit batch pages.json --concurrency 3 --reporters both

      # A purchase flow, stage by stage
      vision-audit journey purchase.json --base-url https://shop.example.com
    """
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    setup_logging({0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG))


@main.command()
@click.option("--url", required=True, help="Page to analyze (file:// or http(s)://)")
@click.option("--stage", required=True, help='Journey stage, e.g. "checkout"')
@click.option("--intent", required=True, help='What the user wants, e.g. "complete purchase"')
@click.option("--persona", default=None, help='Persona preset (e.g. "mobile-consumer") or free text')
@click.option("--device", default="desktop", show_default=True, help="Device context")
@click.option("--industry", default=None, help="Business industry (enables specialized prompts)")
@click.option("--conversion-goal", default=None, help="Business conversion goal")
@click.option(
    "--provider",
    default=None,
    type=click.Choice(PROVIDERS, case_sensitive=False),
    help="Vision provider to use. Defaults to VISION_PROVIDER from .env",
)
@click.option("--model", default=None, help="Model override. Defaults to VISION_MODEL from .env")
@click.option("--timeout-ms", default=None, type=click.IntRange(1000, 600000), help="Page load timeout")
@click.option("--reporters", default=None, help="Event sinks: jsonl, s3, both. Defaults to REPORTERS")
@click.option("--save-screenshot", is_flag=True, help="Keep the captured PNG in the report directory")
@click.option(
    "--output",
    default="rich",
    type=click.Choice(["rich", "json"], case_sensitive=False),
    help="Output format: rich (colored terminal) or json (for agents)",
)
@click.pass_context
def analyze(
    ctx: click.Context,
    url: str,
    stage: str,
    intent: str,
    persona: Optional[str],
    device: str,
    industry: Optional[str],
    conversion_goal: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    timeout_ms: Optional[int],
    reporters: Optional[str],
    save_screenshot: bool,
    output: str,
):
    """Analyze one page in one user context"""
    try:
        config = _load(ctx, provider, model)
        business = None
        if industry:
            business = BusinessContext(
                industry=industry, conversion_goal=conversion_goal or "not specified"
            )
        context = AnalysisContext(
            stage=stage,
            user_intent=intent,
            user_context=UserContext(persona=persona, device_context=device),
            business_context=business,
            page_url=url,
        )

        run_id = new_run_id()
        analyzer = Analyzer(config)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
            disable=output == "json",
        ) as progress:
            progress.add_task(f"[cyan]Analyzing {url} with {analyzer.provider.name}...", total=None)
            result = asyncio.run(run_single(
                analyzer,
                PlaywrightSessionFactory.from_config(config, save_screenshots=save_screenshot),
                url,
                context,
                reporters=build_reporters(
                    reporters or config.reporters, run_id, config.report_dir, config
                ),
                report_dir=config.report_dir,
                timeout_ms=timeout_ms or config.batch_timeout_ms,
                run_id=run_id,
            ))

        if output == "json":
            click.echo(result.model_dump_json(indent=2, exclude={"raw_analysis"}))
        else:
            _output_rich(result)

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Interrupted by user[/yellow]")
        sys.exit(130)
    except (VisionAuditError, ValidationError) as e:
        _fail(str(e))


@main.command()
@click.argument("items_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--concurrency", default=None, type=click.IntRange(1, 8), help="Workers (default BATCH_CONCURRENCY)")
@click.option("--reporters", default=None, help="Event sinks: jsonl, s3, both. Defaults to REPORTERS")
@click.option("--run-id", default=None, help="Run identifier used in artifact names")
@click.option(
    "--provider",
    default=None,
    type=click.Choice(PROVIDERS, case_sensitive=False),
    help="Vision provider to use. Defaults to VISION_PROVIDER from .env",
)
@click.option("--model", default=None, help="Model override. Defaults to VISION_MODEL from .env")
@click.option(
    "--output",
    default="rich",
    type=click.Choice(["rich", "json"], case_sensitive=False),
    help="Output format: rich (colored terminal) or json (for agents)",
)
@click.pass_context
def batch(
    ctx: click.Context,
    items_file: Path,
    concurrency: Optional[int],
    reporters: Optional[str],
    run_id: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    output: str,
):
    """
    Analyze every page listed in ITEMS_FILE.

    ITEMS_FILE is a JSON array of {"target": url, "context": {...},
    "timeout_ms": optional}.
    """
    try:
        config = _load(ctx, provider, model)
        items = load_items(items_file)
        run_id = run_id or new_run_id()

        executor = BatchExecutor(
            Analyzer(config),
            PlaywrightSessionFactory.from_config(config),
            concurrency=concurrency or config.concurrency,
            retry_policy=config.retry_policy(),
            reporters=build_reporters(reporters or config.reporters, run_id, config.report_dir, config),
            report_dir=config.report_dir,
            default_timeout_ms=config.batch_timeout_ms,
        )
        summary = asyncio.run(executor.run(items, run_id=run_id))

        if output == "json":
            click.echo(summary.model_dump_json(indent=2))
        else:
            _output_summary(summary, config.report_dir / f"batch-summary-{summary.run_id}.json")

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Interrupted by user[/yellow]")
        sys.exit(130)
    except (VisionAuditError, ValidationError) as e:
        _fail(str(e))


@main.command()
@click.argument("journey_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--base-url", required=True, help="Root URL the stage pages are resolved against")
@click.option("--timeout-ms", default=None, type=click.IntRange(1000, 600000), help="Page load timeout per stage")
@click.option("--reporters", default=None, help="Event sinks: jsonl, s3, both. Defaults to REPORTERS")
@click.option("--run-id", default=None, help="Run identifier used in artifact names")
@click.option(
    "--provider",
    default=None,
    type=click.Choice(PROVIDERS, case_sensitive=False),
    help="Vision provider to use. Defaults to VISION_PROVIDER from .env",
)
@click.option("--model", default=None, help="Model override. Defaults to VISION_MODEL from .env")
@click.option(
    "--output",
    default="rich",
    type=click.Choice(["rich", "json"], case_sensitive=False),
    help="Output format: rich (colored terminal) or json (for agents)",
)
@click.pass_context
def journey(
    ctx: click.Context,
    journey_file: Path,
    base_url: str,
    timeout_ms: Optional[int],
    reporters: Optional[str],
    run_id: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    output: str,
):
    """
    Walk the stages of a user journey in order.

    JOURNEY_FILE is a JSON object {"name": ..., "persona": optional,
    "device": optional, "stages": [{"name": ..., "page": "/cart",
    "user_goal": ...}]}.
    """
    try:
        config = _load(ctx, provider, model)
        definition = load_journey(journey_file)
        run_id = run_id or new_run_id()

        summary = asyncio.run(run_journey(
            Analyzer(config),
            PlaywrightSessionFactory.from_config(config),
            base_url,
            definition,
            reporters=build_reporters(reporters or config.reporters, run_id, config.report_dir, config),
            report_dir=config.report_dir,
            timeout_ms=timeout_ms or config.batch_timeout_ms,
            run_id=run_id,
        ))

        if output == "json":
            click.echo(summary.model_dump_json(indent=2))
        else:
            _output_summary(
                summary,
                config.report_dir / f"journey-summary-{summary.run_id}.json",
                title=f"Journey {definition.name}",
            )

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Interrupted by user[/yellow]")
        sys.exit(130)
    except (VisionAuditError, ValidationError) as e:
        _fail(str(e))


def load_journey(path: Path) -> Journey:
    """
    Read a journey definition from a JSON file.

    Raises:
        click.BadParameter: If the file is not a JSON object
        pydantic.ValidationError: If the journey is malformed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise click.BadParameter(f"{path} must contain a JSON object")
    return Journey.model_validate(data)


def load_items(path: Path) -> list[BatchItem]:
    """
    Read batch items from a JSON file.

    Raises:
        click.BadParameter: If the file is not a JSON array
        pydantic.ValidationError: If an item is malformed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} must contain a JSON array of items")
    return [BatchItem.model_validate(item) for item in data]


def _score_color(score: float) -> str:
    if score >= 8:
        return "green"
    elif score >= 6:
        return "yellow"
    else:
        return "red"


def _output_rich(result: AnalysisResult):
    """Output result in rich formatted terminal output"""

    console.print()
    console.print(Panel.fit(
        f"[bold]UX Analysis: {result.page}[/bold]\n"
        f"Provider: {result.provider} ({result.model})  "
        f"Tokens: {result.tokens_used}  Time: {result.analysis_time:.1f}s",
        border_style="red" if result.error else "cyan",
    ))

    console.print("\n[bold]📊 Scores[/bold]")
    scores_table = Table(show_header=True, header_style="bold magenta")
    scores_table.add_column("Category", style="cyan")
    scores_table.add_column("Score", justify="right")

    for category, score in result.scores.items():
        label = category.replace("_", " ").title()
        scores_table.add_row(label, f"[{_score_color(score)}]{score:g}/10[/]")
    scores_table.add_row(
        "[bold]Overall[/bold]",
        f"[bold][{_score_color(result.overall_score)}]{result.overall_score:g}/10[/][/bold]",
    )
    console.print(scores_table)

    if result.strengths:
        console.print("\n[bold]✅ Strengths[/bold]")
        for strength in result.strengths:
            console.print(f"  • {escape(strength)}")

    if result.issues:
        console.print(f"\n[bold]🔍 Issues Found ({len(result.issues)})[/bold]")
        for issue in result.issues:
            console.print(f"  {escape(str(issue))}")
            if issue.fix:
                console.print(f"     💡 {escape(issue.fix)}")
        if result.has_critical_issues:
            console.print(
                f"\n[bold red]🚨 {len(result.critical_issues)} critical issue(s) block user success[/bold red]"
            )
    else:
        console.print("\n[bold green]✓ No issues found![/bold green]")

    if result.recommendations:
        console.print("\n[bold]💡 Top Recommendations[/bold]")
        for i, rec in enumerate(result.recommendations[:5], 1):
            console.print(f"  {i}. " + escape(f"[{rec.impact} impact, {rec.effort} effort] {rec.title}"))

    if result.report_path:
        console.print(f"\n[dim]🧾 Receipt: {result.report_path}[/dim]")
    console.print()


def _output_summary(summary: RunSummary, summary_path: Path, title: str = "Batch"):
    """Output a batch or journey summary as a rich table"""

    table = Table(title=f"{title} {summary.run_id}", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Target", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Issues", justify="right")
    table.add_column("Attempts", justify="right")

    for result in summary.results:
        status = "[green]ok[/green]" if result.ok else "[red]failed[/red]"
        issues = str(len(result.structured_issues)) if result.ok else (result.error or "")[:60]
        target = f"{result.stage}: {result.target}" if result.stage else result.target
        table.add_row(str(result.seq), target, status, issues, str(result.attempts))

    console.print(table)
    console.print(
        f"\n[bold]{summary.succeeded}/{summary.total} succeeded[/bold]"
        f"  [dim]({summary_path})[/dim]\n"
    )


if __name__ == "__main__":
    main()
