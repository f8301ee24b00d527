"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from manuscript_review.clients.generation import GenerationService
from manuscript_review.clients.llm_client import LLMClient
from manuscript_review.config import AppConfig, load_config, parse_harshness
from manuscript_review.models.critique import CritiqueResult, Impact
from manuscript_review.models.diff import SpanKind
from manuscript_review.models.dimension import DimensionScore
from manuscript_review.review.auto_improve import LoopState
from manuscript_review.review.diff_engine import (
    DiffStrategy,
    highlight_deletions,
    highlight_insertions,
)
from manuscript_review.review.dimensions import DEFAULT_REGISTRY
from manuscript_review.review.session import ReviewSession
from manuscript_review.storage.score_store import QualityScoreStore

app = typer.Typer(
    name="manuscript-review",
    help="Score chapters, rank suggestions, diff revisions and auto-improve toward a target score",
    no_args_is_help=True,
)
console = Console()

IMPACT_COLORS = {Impact.HIGH: "red", Impact.MEDIUM: "yellow", Impact.LOW: "dim"}


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _service(config: AppConfig) -> GenerationService:
    return GenerationService(LLMClient.from_config(config.llm))


def _print_usage(service: GenerationService) -> None:
    usage = service.llm.get_token_summary()
    console.print(
        f"[dim]Tokens: {usage['input']} in / {usage['output']} out "
        f"({len(usage['calls'])} calls)[/dim]"
    )


def _read(path: Path) -> str:
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def load_scores(path: Path) -> list[DimensionScore]:
    """Read ``{"pacing": 7.5, ...}`` or a list of DimensionScore objects."""
    data = json.loads(_read(path))
    if isinstance(data, dict):
        return [DimensionScore(dimension_id=k, score=float(v)) for k, v in data.items()]
    return [DimensionScore(**item) for item in data]


def _print_critique(critique: CritiqueResult) -> None:
    table = Table(title=f"Critique: {critique.subject_id}")
    table.add_column("Dimension")
    table.add_column("Weight", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Feedback")
    for score in critique.dimensions:
        dimension = DEFAULT_REGISTRY.get(score.dimension_id)
        table.add_row(
            dimension.name if dimension else score.dimension_id,
            f"{dimension.weight}%" if dimension else "-",
            f"{score.score:.1f}",
            score.feedback,
        )
    console.print(table)
    console.print(Panel(f"[bold]{critique.overall_score:.1f}[/bold] / 10", title="Overall"))

    for suggestion in critique.prioritized_suggestions:
        color = IMPACT_COLORS[suggestion.impact]
        console.print(
            f"  [{color}]{suggestion.impact.value:>6}[/{color}] "
            f"{suggestion.impact_score:.2f}  [bold]{suggestion.dimension_name}[/bold]: "
            f"{suggestion.suggestion}"
        )


@app.command()
def dimensions() -> None:
    """List the quality dimensions and their weights."""
    table = Table(title="Quality dimensions")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Weight", justify="right")
    table.add_column("Description")
    for d in DEFAULT_REGISTRY:
        table.add_row(d.id, d.name, f"{d.weight}%", d.description)
    console.print(table)
    console.print(f"[dim]Total weight: {DEFAULT_REGISTRY.total_weight}%[/dim]")


@app.command()
def critique(
    file: Path = typer.Argument(help="Chapter text file"),
    subject: str = typer.Option(None, "--subject", "-s", help="Subject id (defaults to file stem)"),
    scores: Path = typer.Option(None, "--scores", help="JSON dimension scores; skips the model call"),
    harshness: str = typer.Option(None, "--harshness", help="gentle-mentor | balanced | brutal-honesty"),
    save: bool = typer.Option(False, "--save", help="Store the score in the history database"),
) -> None:
    """Critique a chapter and show ranked suggestions."""
    config = load_config()
    content = _read(file)
    subject_id = subject or file.stem
    tone = parse_harshness(harshness) if harshness else config.review.harshness
    store = QualityScoreStore(config.storage.resolved_db_path) if save else None

    if scores is not None:
        session = ReviewSession(subject_id, content, config=config.review, store=store)
        result = session.score(load_scores(scores), harshness=tone)
    else:
        service = _service(config)
        session = ReviewSession(
            subject_id, content, service=service, config=config.review, store=store
        )
        with console.status("Critiquing..."):
            result = asyncio.run(session.run_critique(tone))

    _print_critique(result)
    if scores is None:
        _print_usage(service)


@app.command()
def diff(
    original: Path = typer.Argument(help="Original text file"),
    revised: Path = typer.Argument(help="Revised text file"),
    exact: bool = typer.Option(False, "--exact", help="Minimal LCS diff instead of the heuristic"),
) -> None:
    """Show word-level insertions and deletions between two texts."""
    before, after = _read(original), _read(revised)
    strategy = DiffStrategy.EXACT if exact else DiffStrategy.HEURISTIC

    removed = Text()
    for span in highlight_deletions(before, after, strategy=strategy):
        removed.append(span.text, style="red strike" if span.kind == SpanKind.DELETION else "")
    added = Text()
    for span in highlight_insertions(before, after, strategy=strategy):
        added.append(span.text, style="green" if span.kind == SpanKind.INSERTION else "")

    console.print(Panel(removed, title="Original"))
    console.print(Panel(added, title="Revised"))


@app.command()
def improve(
    file: Path = typer.Argument(help="Chapter text file"),
    threshold: float = typer.Option(None, "--threshold", help="Target score (1-10)"),
    max_iterations: int = typer.Option(None, "--max-iterations", help="Iteration budget (1-20)"),
    output: Path = typer.Option(None, "--output", "-o", help="Where to write the improved text"),
) -> None:
    """Run the auto-improve loop on a chapter."""
    config = load_config()
    content = _read(file)
    store = QualityScoreStore(config.storage.resolved_db_path)
    service = _service(config)
    session = ReviewSession(
        file.stem, content, service=service, config=config.review, store=store
    )

    async def _run():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Critiquing...", total=None)

            def on_progress(phase: str, detail: str) -> None:
                progress.update(task, description=f"{phase}: {detail}")

            outcome = await session.start_auto_improve(
                threshold=threshold, max_iterations=max_iterations, on_progress=on_progress
            )
            while outcome.state == LoopState.EXHAUSTED:
                progress.stop()
                console.print(f"[yellow]{outcome.message}[/yellow]")
                if not typer.confirm(
                    f"Continue with {config.review.iteration_extension} more iterations?"
                ):
                    return session.skip_to_final()
                progress.start()
                outcome = await session.continue_auto_improve()
            return outcome

    outcome = asyncio.run(_run())

    table = Table(title="Improvement history")
    table.add_column("Iteration", justify="right")
    table.add_column("Score", justify="right")
    for entry in outcome.history:
        table.add_row(str(entry.iteration), f"{entry.score:.1f}")
    console.print(table)

    color = "green" if outcome.state == LoopState.CONVERGED else "yellow"
    if outcome.state == LoopState.FAILED:
        color = "red"
    console.print(f"[{color}]{outcome.state.value}[/{color}] {outcome.message}")
    _print_usage(service)

    out_path = output or file.with_name(f"{file.stem}.improved{file.suffix}")
    out_path.write_text(session.content, encoding="utf-8")
    console.print(f"[green]Saved: {out_path}[/green]")


@app.command()
def history(subject: str = typer.Argument(help="Subject id")) -> None:
    """Show stored quality scores for a subject."""
    config = load_config()
    records = QualityScoreStore(config.storage.resolved_db_path).history(subject)
    if not records:
        console.print(f"[yellow]No stored scores for {subject}[/yellow]")
        return
    table = Table(title=f"Score history: {subject}")
    table.add_column("Revision", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Timestamp")
    for record in records:
        table.add_row(str(record.revision), f"{record.overall_score:.1f}", record.timestamp.isoformat())
    console.print(table)


if __name__ == "__main__":
    app()
