"""
TRVL - CLI Entry Point.

Usage:
    trvl score answers.json   Score quiz answers and classify
    trvl status <user_id>     Show a user's onboarding status
    trvl reset <user_id>      Clear a user's in-flight onboarding progress
    trvl serve                Start the API server
    trvl health               Check configuration
    trvl --help               Show help
"""

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="trvl",
    help="TRVL - onboarding and travel personality tools.",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Configure logging for all commands."""
    from trvl.config import core_settings

    logging.basicConfig(
        level="DEBUG" if verbose else core_settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def score(
    answers_file: Path = typer.Argument(..., help="JSON file with a list of answers (or {\"answers\": [...]})"),
    max_delta: int = typer.Option(None, "--max-delta", "-m", help="Max delta per question (defaults to config)"),
) -> None:
    """Score quiz answers and show the resulting archetype."""
    from trvl.config import core_settings
    from onboarding.archetypes import classify, describe_traits, map_to_travel_preferences
    from onboarding.errors import EmptyAssessmentError
    from onboarding.traits import AnswerContribution, aggregate_answers, validate_answers

    try:
        raw = json.loads(answers_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]FAIL Could not read {answers_file}: {e}[/red]")
        raise typer.Exit(1)

    if isinstance(raw, dict):
        raw = raw.get("answers")

    if not validate_answers(raw):
        console.print("[red]FAIL Answers must be a list of {question_id, trait_scores} objects[/red]")
        raise typer.Exit(1)

    answers = [AnswerContribution.model_validate(a) for a in raw]

    try:
        aggregate = aggregate_answers(answers, max_delta or core_settings.quiz_max_delta_per_question)
    except EmptyAssessmentError as e:
        console.print(f"[red]FAIL {e}[/red]")
        raise typer.Exit(1)

    archetype = classify(aggregate.scores)
    descriptions = describe_traits(aggregate.scores)

    table = Table(title=f"{archetype.value}")
    table.add_column("Trait", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Description", style="dim")
    for trait, value in aggregate.scores:
        table.add_row(trait.value, str(value), descriptions[trait.value])
    console.print(table)

    console.print(
        f"[dim]{aggregate.answered_questions}/{aggregate.total_questions} answers carried trait scores[/dim]"
    )

    console.print("\n[bold]Travel preferences:[/bold]")
    for key, value in map_to_travel_preferences(aggregate.scores).items():
        console.print(f"  • {key}: {value}")


@app.command()
def status(
    user_id: str = typer.Argument(None, help="User id (defaults to DEV_USER_ID)"),
) -> None:
    """Show durable onboarding flag, assessment, and in-flight progress for a user."""
    from trvl.config import settings
    from trvl.db.client import get_service_client
    from onboarding.errors import PersistenceError
    from onboarding.profile import SupabaseProfileStore
    from onboarding.store import ProgressStore, SupabaseSessionCache

    user_id = user_id or settings.dev_user_id
    client = get_service_client()
    profile = SupabaseProfileStore(client)
    store = ProgressStore(SupabaseSessionCache(client), namespace=settings.onboarding_progress_namespace)

    console.print(f"\n[bold]Onboarding status for {user_id}[/bold]\n")

    try:
        flag = profile.read_onboarding_flag(user_id)
        assessment = profile.read_assessment(user_id)
        progress = store.load(user_id)
    except PersistenceError as e:
        console.print(f"[red]FAIL {e.message}[/red]")
        raise typer.Exit(1)

    if flag.completed:
        completed_at = flag.completed_at.isoformat() if flag.completed_at else "unknown"
        console.print(f"[green]OK[/green] Onboarding completed ({completed_at})")
    else:
        console.print("[yellow]PENDING[/yellow] Onboarding not completed")

    if assessment:
        console.print(f"[green]OK[/green] Assessment: {assessment.personality_type}")
        for trait, value in assessment.scores:
            console.print(f"   {trait.value}: {value}")
    else:
        console.print("[dim]INFO[/dim] No personality assessment")

    if progress:
        steps = ", ".join(s.value for s in progress.completed_steps) or "none"
        console.print(f"[dim]INFO[/dim] In-flight progress at {progress.current_step.value} (completed: {steps})")
    else:
        console.print("[dim]INFO[/dim] No in-flight progress")


@app.command()
def reset(
    user_id: str = typer.Argument(..., help="User id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear a user's in-flight onboarding progress (the durable profile is untouched)."""
    from trvl.config import settings
    from trvl.db.client import get_service_client
    from onboarding.errors import PersistenceError
    from onboarding.store import ProgressStore, SupabaseSessionCache

    if not yes:
        typer.confirm(f"Clear onboarding progress for {user_id}?", abort=True)

    store = ProgressStore(
        SupabaseSessionCache(get_service_client()),
        namespace=settings.onboarding_progress_namespace,
    )

    try:
        store.clear(user_id)
    except PersistenceError as e:
        console.print(f"[red]FAIL {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] Cleared onboarding progress for {user_id}")


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from trvl.config import get_settings

    console.print("\n[bold]TRVL Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.trvl_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Progress backend: {settings.onboarding_progress_backend}")

        if settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[red]FAIL[/red] Supabase URL missing or invalid")

        if settings.trvl_analytics_log_dir:
            console.print(f"[green]OK[/green] Analytics event log: {settings.trvl_analytics_log_dir}")
        else:
            console.print("[dim]INFO[/dim] Analytics event log disabled")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from trvl import __version__

    console.print(f"TRVL version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]TRVL API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "trvl.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
