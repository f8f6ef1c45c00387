"""
Gate CLI - QA tooling for the comprehension gate.

Usage:
    gate classify "my comment https://example.com/article"
    gate segment article.txt
    gate simulate scenario.json            # Replay samples and answers
    gate simulate scenario.json --persist  # ...and keep the telemetry
    gate telemetry show                    # Inspect stored telemetry
    gate telemetry clear
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from src.gate.config import GateConfig
from src.gate.quiz import INSUFFICIENT_CONTENT_MESSAGE
from src.gate.reading import ReadingBlock, segment_text
from src.gate.session import GateSession, GateState, ReplaySampleSource
from src.gate.telemetry import BoundedTelemetryLog, TelemetryRecord, TelemetryRecorder, TelemetrySink
from src.gate.text_mix import classify_text, count_words, extract_first_url

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="gate",
    help="Comprehension gate QA tools",
    add_completion=False,
    rich_markup_mode="rich",
)
telemetry_app = typer.Typer(help="Inspect the durable telemetry store")
app.add_typer(telemetry_app, name="telemetry")

console = Console()

STATE_STYLES = {
    GateState.PASSED: "green",
    GateState.EXEMPT: "green",
    GateState.FAILED: "red",
    GateState.UNLOCKABLE: "yellow",
}


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Configure logging for every command."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else get_settings().log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


# =============================================================================
# Classification & Segmentation
# =============================================================================


@app.command()
def classify(
    text: Annotated[str, typer.Argument(help="Draft text of the post")],
    source_url: Annotated[str | None, typer.Option("--source-url", "-u", help="Attached source link")] = None,
    source_words: Annotated[
        int | None, typer.Option("--source-words", help="Word count of the source, when known")
    ] = None,
) -> None:
    """Show the gate decision for a draft."""
    config = GateConfig.from_settings()
    decision = classify_text(text, source_url=source_url, config=config, source_word_count=source_words)

    table = Table(title="Gate Decision", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("User words", str(count_words(text)))
    table.add_row("Source", source_url or extract_first_url(text) or "-")
    table.add_row("Gate required", "yes" if decision.gate_required else "no")
    table.add_row("Mode", decision.describe())
    table.add_row("Source questions", str(decision.source_questions))
    table.add_row("User-text questions", str(decision.user_questions))
    console.print(table)


@app.command()
def segment(
    path: Annotated[Path, typer.Argument(help="Plain-text article file")],
) -> None:
    """Split an article into reading blocks and show required dwell times."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    config = GateConfig.from_settings()
    blocks = segment_text(path.read_text(encoding="utf-8"))

    table = Table(title=f"{len(blocks)} block(s)")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Id")
    table.add_column("Words", justify="right")
    table.add_column("Required dwell", justify="right")
    table.add_column("Preview", style="dim")
    for block in blocks:
        preview = block.text.replace("\n", " ")
        table.add_row(
            str(block.index),
            block.id,
            str(block.word_count),
            f"{config.required_dwell_ms(block.word_count) / 1000:.1f}s",
            preview[:50] + ("..." if len(preview) > 50 else ""),
        )
    console.print(table)


# =============================================================================
# Simulation
# =============================================================================


@app.command()
def simulate(
    scenario: Annotated[Path, typer.Argument(help="Scenario JSON file")],
    persist: Annotated[bool, typer.Option("--persist", help="Write telemetry to the database")] = False,
) -> None:
    """
    Replay a recorded reading session through the gate.

    The scenario holds the draft (user_text, source_url, source_text), the
    article (article_text or blocks), the viewport samples, the question
    pools and the submitted answers.
    """
    if not scenario.exists():
        console.print(f"[red]Scenario not found: {scenario}[/red]")
        raise typer.Exit(1)

    try:
        data = json.loads(scenario.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid scenario JSON: {e}[/red]")
        raise typer.Exit(1)

    config = GateConfig.from_settings()
    sink = _open_store(config) if persist else BoundedTelemetryLog(cap=config.telemetry_cap)
    session = run_scenario(data, config, sink)

    style = STATE_STYLES.get(session.state, "white")
    reading = session.reading_state
    summary = (
        f"Decision: {session.decision.describe()}\n"
        f"Transitions: {' -> '.join(s.value for s in session.history)}\n"
        f"Read ratio: {reading.read_ratio:.0%} ({reading.read_blocks}/{reading.total_blocks} blocks)\n"
        f"Required ratio: {session.policy.required_read_ratio:.0%}\n"
        f"Velocity violations: {len(session.violations)}\n"
        f"Final state: [{style}]{session.state.value}[/{style}]"
    )
    if session.quiz_result is not None:
        summary += f"\nQuiz: {session.quiz_result.correct_count}/{session.quiz_result.total} correct"
    if session.exempt_reason == "insufficient_content":
        summary += f"\n[dim]{INSUFFICIENT_CONTENT_MESSAGE}[/dim]"
    verdict = "[green]SHARE ALLOWED[/green]" if session.can_share() else "[red]SHARE BLOCKED[/red]"

    console.print(Panel(summary, title=f"{session.article_id}: {verdict}", border_style=style))
    _print_records(sink.list() if not persist else sink.list(session_id=session.session_id))


def run_scenario(data: dict[str, Any], config: GateConfig, sink: TelemetrySink) -> GateSession:
    """Drive a GateSession through a scenario dictionary."""
    decision = classify_text(
        data.get("user_text", ""),
        source_url=data.get("source_url"),
        source_text=data.get("source_text"),
        config=config,
    )

    if "blocks" in data:
        blocks = [
            ReadingBlock(
                id=b["id"],
                index=b.get("index", position),
                word_count=b["word_count"],
                text=b.get("text", ""),
            )
            for position, b in enumerate(data["blocks"])
        ]
    else:
        blocks = segment_text(data.get("article_text") or data.get("source_text") or "")

    session = GateSession(
        article_id=data.get("article_id", "article"),
        decision=decision,
        blocks=blocks,
        config=config,
        recorder=TelemetryRecorder(sink, debug=config.debug),
    )
    session.recorder.session_id = session.session_id

    session.open()
    source = ReplaySampleSource(data.get("samples", []))
    session.attach(source)
    source.play()

    if session.state == GateState.UNLOCKABLE and data.get("take_quiz", True):
        quiz = session.start_quiz(data.get("source_pool", []), data.get("user_pool", []))
        if quiz is not None and "answers" in data:
            session.submit(data["answers"])

    session.close()
    return session


# =============================================================================
# Telemetry
# =============================================================================


@telemetry_app.command("show")
def telemetry_show(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Show the N most recent events")] = 20,
    article: Annotated[str | None, typer.Option("--article", "-a", help="Filter by article id")] = None,
) -> None:
    """Show stored telemetry events (most recent last)."""
    store = _open_store(GateConfig.from_settings())
    records = store.list(article_id=article)
    _print_records(records[-limit:] if limit > 0 else records)


@telemetry_app.command("clear")
def telemetry_clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete all stored telemetry events."""
    if not yes and not typer.confirm("Delete all stored telemetry events?"):
        raise typer.Exit(0)
    _open_store(GateConfig.from_settings()).clear()
    console.print("[green]Telemetry cleared[/green]")


def _open_store(config: GateConfig):
    # Imported lazily so the other commands work without a database
    from src.gate.telemetry_store import SqlTelemetryStore

    return SqlTelemetryStore(cap=config.telemetry_cap)


def _print_records(records: list[TelemetryRecord]) -> None:
    if not records:
        console.print("[dim]No telemetry events[/dim]")
        return

    table = Table(title=f"Telemetry ({len(records)} events)")
    table.add_column("Time", style="dim")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Article")
    table.add_column("Details")
    for record in records:
        details = {k: v for k, v in record.to_dict().items() if k not in ("type", "article_id", "session_id", "timestamp")}
        table.add_row(
            record.recorded_at.strftime("%H:%M:%S"),
            record.type,
            record.article_id,
            ", ".join(f"{k}={_fmt(v)}" for k, v in details.items()),
        )
    console.print(table)


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
