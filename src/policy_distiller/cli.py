"""Command-line interface for Policy Distiller.

Provides ``analyze``, ``aspects`` and ``stats`` commands with rich
terminal output using the ``click`` and ``rich`` libraries.

Usage::

    policy-distiller analyze policy.txt
    policy-distiller analyze --provider ollama --model llama3.1 policy.txt
    policy-distiller aspects --aspect data_sharing --aspect user_rights policy.txt
    policy-distiller stats policy.txt
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .analyzer import PolicyAnalyzer
from .config import MAX_DOCUMENT_LENGTH, load_config
from .errors import PolicyDistillerError
from .models import SCORECARD_LABELS, AnalysisResult, ProviderType, RiskLevel, SummaryType
from .preprocessing import TextPreprocessor
from .prompts import ASPECT_PROMPTS

console = Console()

PROVIDER_CHOICES = [p.value for p in ProviderType]


def _get_risk_style(level: RiskLevel) -> str:
    """Return a rich style string for a risk level."""
    return {
        RiskLevel.CRITICAL: "bold white on red",
        RiskLevel.HIGH: "bold red",
        RiskLevel.MEDIUM: "bold yellow",
        RiskLevel.LOW: "dim green",
    }.get(level, "")


def _get_grade_style(score: int) -> str:
    if score >= 80:
        return "bold green"
    if score >= 60:
        return "bold yellow"
    return "bold red"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _read_document(file: Path) -> str:
    if str(file) == "-":
        return sys.stdin.read()
    return file.read_text(encoding="utf-8", errors="replace")


def _build_analyzer(provider: str | None, model: str | None, base_url: str | None,
                    timeout: float | None) -> PolicyAnalyzer:
    config = load_config(provider=provider, model=model, base_url=base_url)
    return PolicyAnalyzer(config, request_timeout=timeout)


async def _run_and_close(analyzer: PolicyAnalyzer, coro):
    try:
        return await coro
    finally:
        await analyzer.provider.aclose()


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/] {escape(str(error))}")
    sys.exit(1)


@click.group()
@click.version_option(package_name="policy-distiller")
def main() -> None:
    """🔍 Policy Distiller: LLM-powered privacy policy analysis.

    Summarize privacy policies, flag privacy risks, explain jargon and
    score the policy on a weighted privacy scorecard.
    """
    pass


def _llm_options(func):
    func = click.option("--timeout", type=float, default=None,
                        help="Per-request deadline in seconds (default: none).")(func)
    func = click.option("--base-url", default=None, help="Override the provider API URL.")(func)
    func = click.option("--model", "-m", default=None, help="Model identifier.")(func)
    func = click.option("--provider", "-p", type=click.Choice(PROVIDER_CHOICES), default=None,
                        help="LLM backend (default: $POLICY_DISTILLER_PROVIDER or openrouter).")(func)
    func = click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")(func)
    return func


@main.command()
@click.argument("file", type=click.Path(exists=False, path_type=Path, allow_dash=True))
@_llm_options
@click.option("--sequential", is_flag=True,
              help="Run requests one at a time; any failure aborts the analysis.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--save", "-s", type=click.Path(path_type=Path), default=None,
              help="Save results to a JSON file.")
def analyze(file: Path, verbose: bool, provider: str | None, model: str | None,
            base_url: str | None, timeout: float | None, sequential: bool,
            output: str, save: Path | None) -> None:
    """Run the full analysis on a privacy policy text file.

    Use ``-`` to read the policy from standard input.

    Example: policy-distiller analyze privacy_policy.txt
    """
    _setup_logging(verbose)
    try:
        text = _read_document(file)
        ok, message = TextPreprocessor().validate_length(text)
        if not ok:
            raise click.UsageError(message)
        analyzer = _build_analyzer(provider, model, base_url, timeout)
    except (OSError, PolicyDistillerError) as e:
        _fail(e)

    with console.status("[bold blue]Analyzing policy...", spinner="dots") as status:
        def on_progress(percent: int, step: str) -> None:
            status.update(f"[bold blue]{step}[/] [dim]({percent}%)[/]")

        try:
            result = asyncio.run(_run_and_close(
                analyzer, analyzer.analyze(text, on_progress, use_parallel=not sequential)))
        except PolicyDistillerError as e:
            _fail(e)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render_analysis(result)

    if save:
        save.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        console.print(f"\n[dim]Results saved to {save}[/]")


@main.command()
@click.argument("file", type=click.Path(exists=False, path_type=Path, allow_dash=True))
@_llm_options
@click.option("--aspect", "-a", "aspect_names", multiple=True, required=True,
              type=click.Choice(sorted(ASPECT_PROMPTS)), help="Aspect to analyze (repeatable).")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def aspects(file: Path, verbose: bool, provider: str | None, model: str | None,
            base_url: str | None, timeout: float | None, aspect_names: tuple[str, ...],
            output: str) -> None:
    """Analyze selected aspects of a privacy policy.

    Example: policy-distiller aspects -a data_sharing -a user_rights policy.txt
    """
    _setup_logging(verbose)
    try:
        text = _read_document(file)
        analyzer = _build_analyzer(provider, model, base_url, timeout)
    except (OSError, PolicyDistillerError) as e:
        _fail(e)

    with console.status("[bold blue]Analyzing aspects...", spinner="dots"):
        try:
            results = asyncio.run(_run_and_close(
                analyzer, analyzer.analyze_aspects(text, list(aspect_names))))
        except PolicyDistillerError as e:
            _fail(e)

    if output == "json":
        click.echo(json.dumps(results, indent=2))
        return
    for name, content in results.items():
        title = name.replace("_", " ").title()
        console.print(Panel(Markdown(content), title=title, border_style="blue"))


@main.command()
@click.argument("file", type=click.Path(exists=False, path_type=Path, allow_dash=True))
def stats(file: Path) -> None:
    """Show word count and reading time of a policy, without any LLM call.

    Example: policy-distiller stats privacy_policy.txt
    """
    try:
        text = _read_document(file)
    except OSError as e:
        _fail(e)

    preprocessor = TextPreprocessor()
    processed = preprocessor.preprocess(text)

    table = Table(title=f"📄 {escape(file.name) if str(file) != '-' else 'stdin'}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Characters", f"{len(processed):,}")
    table.add_row("Words", f"{preprocessor.count_words(processed):,}")
    table.add_row("Reading time", f"{preprocessor.estimate_reading_time(processed)} min")
    table.add_row("Sentences", f"{len(preprocessor.extract_sentences(processed)):,}")
    table.add_row("Will be truncated", "yes" if len(processed) > MAX_DOCUMENT_LENGTH else "no")
    console.print(table)


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_analysis(result: AnalysisResult) -> None:
    """Render a full AnalysisResult with rich formatting."""
    console.print()

    model = result.llm_config.model if result.llm_config else "custom provider"
    console.print(Panel(
        f"Model: [bold]{escape(model)}[/] | "
        f"Risks: {len(result.risks)} | "
        f"Key terms: {len(result.key_terms)}",
        title="🔍 Privacy Policy Analysis",
        border_style="blue",
    ))

    if result.has_partial_failures:
        lines = "\n".join(f"• {f.section}: {escape(f.error)}" for f in result.partial_failures)
        console.print(Panel(lines, title="⚠️ Some sections could not be generated", border_style="yellow"))

    brief = result.summary(SummaryType.BRIEF)
    if brief:
        console.print(Panel(Markdown(brief.content), title="Summary", border_style="dim"))

    if result.scorecard:
        _render_scorecard(result)

    if result.risks:
        table = Table(title="Privacy Risks", show_lines=True)
        table.add_column("Severity", justify="center", width=10)
        table.add_column("Risk", style="bold", max_width=30)
        table.add_column("What it means", max_width=60)
        table.add_column("Where", style="dim", max_width=20)

        severity_order = list(reversed(list(RiskLevel)))
        for risk in sorted(result.risks, key=lambda r: severity_order.index(r.severity)):
            table.add_row(
                Text(risk.severity.value.upper(), style=_get_risk_style(risk.severity)),
                escape(risk.title),
                escape(risk.description + (f"\n💡 {risk.recommendation}" if risk.recommendation else "")),
                escape(risk.location),
            )
        console.print(table)
        console.print()

    if result.key_terms:
        table = Table(title="Glossary", show_lines=False)
        table.add_column("Term", style="cyan", max_width=30)
        table.add_column("Definition")
        for term in result.key_terms[:30]:  # Cap display at 30
            table.add_row(escape(term.term), escape(term.definition))
        if len(result.key_terms) > 30:
            table.add_row("...", f"({len(result.key_terms) - 30} more)")
        console.print(table)
        console.print()

    if result.privacy_rights and result.privacy_rights.has_actionable_info:
        _render_take_action(result)


def _render_scorecard(result: AnalysisResult) -> None:
    scorecard = result.scorecard

    table = Table(title="Privacy Scorecard", show_lines=False)
    table.add_column("Category", style="cyan")
    table.add_column("Score", justify="center", width=7)
    table.add_column("Weight", justify="center", width=7)
    table.add_column("Assessment", max_width=60)
    for key, category in scorecard.categories():
        table.add_row(SCORECARD_LABELS[key], f"{category.score:g}/10", f"{category.weight}%", escape(category.summary))
    console.print(table)

    style = _get_grade_style(scorecard.overall_score)
    console.print(f"Overall: [{style}]{scorecard.overall_grade}[/] ({scorecard.overall_score}/100)")
    for concern in scorecard.top_concerns:
        console.print(f"  🔴 {escape(concern)}")
    for positive in scorecard.positive_aspects:
        console.print(f"  🟢 {escape(positive)}")
    console.print()


def _render_take_action(result: AnalysisResult) -> None:
    rights = result.privacy_rights
    lines: list[str] = []
    for link in rights.links:
        lines.append(f"🔗 [bold]{escape(link.label)}[/] ({link.purpose.value}): {escape(link.url)}")
    for contact in rights.contacts:
        lines.append(f"✉️  {contact.type.value}: {escape(contact.value)} [dim]- {escape(contact.purpose)}[/]")
    for procedure in rights.procedures:
        lines.append(f"📋 [bold]{escape(procedure.title)}[/] [dim]({procedure.right.value})[/]")
        lines.extend(f"    {i}. {escape(step)}" for i, step in enumerate(procedure.steps, 1))
    for timeframe in rights.timeframes:
        lines.append(f"⏱️  {escape(timeframe)}")
    console.print(Panel("\n".join(lines), title="Take Action", border_style="green"))
    console.print()


if __name__ == "__main__":
    main()
