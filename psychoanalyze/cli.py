"""Click CLI for PsychoAnalyze."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from psychoanalyze import __version__
from psychoanalyze.config import data_dir
from psychoanalyze.errors import AnalysisError
from psychoanalyze.models import MediaType, Profile, Store
from psychoanalyze.session import Session
from psychoanalyze.storage import KeyValueStorage
from psychoanalyze.store import ProfileStore
from psychoanalyze.time import format_for_human, format_timestamp

console = Console()
log = logging.getLogger(__name__)

ANALYSIS_FAILED = (
    "Analysis failed. If uploading large videos, ensure they are under the API size "
    "limit or try shorter clips."
)


def get_session(root: Path) -> Session:
    """Load the profile store under ``root`` into a write-through session."""
    return Session(ProfileStore(KeyValueStorage(root)))


def get_analyzer(root: Path):
    """Build the Gemini-backed analyzer with metrics recorded under ``root``."""
    from psychoanalyze.analysis.analyzer import Analyzer
    from psychoanalyze.metrics import MetricsTracker

    return Analyzer(tracker=MetricsTracker(root))


def resolve_id(store: Store, ref: str) -> str | None:
    """Match a full profile id or a unique prefix of one."""
    if ref in store:
        return ref
    matches = [pid for pid in store.order if pid.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _render_profile(profile: Profile, saved: bool = True) -> None:
    console.print(
        f"\n[bold]{profile.first_name} {profile.last_name}[/bold]  "
        f"[dim]{profile.id}[/dim]"
    )
    if not saved:
        console.print("[yellow]Active profile not found; showing an unsaved default.[/yellow]")
    console.print(f"  DOB: {profile.date_of_birth or 'Unknown'}")
    console.print(f"  Last updated: {format_timestamp(profile.last_updated)}\n")
    console.print(profile.summary + "\n")

    console.print(
        f"[bold]MBTI[/bold] {profile.mbti}   [bold]Enneagram[/bold] {profile.enneagram}   "
        f"[bold]Attachment[/bold] {profile.attachment_style}"
    )

    table = Table(title="Big Five (0-100)")
    table.add_column("Trait", style="cyan")
    table.add_column("Score", justify="right", style="green")
    for trait, score in profile.big_five.model_dump().items():
        table.add_row(trait.capitalize(), f"{score:g}")
    console.print(table)

    if profile.key_traits:
        console.print("[bold]Key traits:[/bold] " + ", ".join(profile.key_traits))
    for title, notes in (
        ("Body language", profile.body_language_notes),
        ("Voice & tone", profile.tone_voice_notes),
    ):
        if notes:
            console.print(f"\n[bold]{title}[/bold]")
            for note in notes[-6:][::-1]:
                console.print(f"  - {note}")

    if profile.history:
        console.print("\n[bold]Evidence log[/bold]")
        for item in reversed(profile.history):
            console.print(
                f"  [dim]{format_for_human(item.timestamp)}[/dim] "
                f"[cyan]{item.media_type.value}[/cyan] {item.file_name or ''}: {item.summary}"
            )
    else:
        console.print("\n[dim]No evidence analyzed yet. Run: psychoanalyze analyze <files>[/dim]")


@click.group(invoke_without_command=True)
@click.option(
    "--data-dir",
    "data_path",
    type=click.Path(file_okay=False),
    default=None,
    help="Profile store directory (default: ~/.psychoanalyze/data)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.version_option(__version__)
@click.pass_context
def cli(ctx: click.Context, data_path: str | None, verbose: bool) -> None:
    """PsychoAnalyze — evolving psychological profiles from evidence."""
    ctx.ensure_object(dict)
    root = data_dir(data_path)
    ctx.obj["root"] = root
    ctx.obj["verbose"] = verbose

    from psychoanalyze.metrics import setup_logging

    setup_logging(root, verbose=verbose)

    if ctx.invoked_subcommand is None:
        session = get_session(root)
        _render_profile(session.active, saved=session.active_id in session.store)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """List tracked profiles."""
    session = get_session(ctx.obj["root"])
    store = session.store

    table = Table(title="Profiles")
    table.add_column("", width=1)
    table.add_column("ID", style="dim")
    table.add_column("Subject", style="cyan")
    table.add_column("MBTI")
    table.add_column("Analyses", justify="right", style="green")
    table.add_column("Updated")
    for profile in store.ordered():
        table.add_row(
            "*" if profile.id == store.active_id else "",
            profile.id[:13],
            profile.display_name,
            profile.mbti,
            str(len(profile.history)),
            format_for_human(profile.last_updated),
        )
    console.print(table)


@cli.command()
@click.option("--id", "profile_ref", default=None, help="Profile id or unique prefix (default: active)")
@click.pass_context
def show(ctx: click.Context, profile_ref: str | None) -> None:
    """Show a profile in full."""
    session = get_session(ctx.obj["root"])
    if profile_ref is None:
        _render_profile(session.active, saved=session.active_id in session.store)
        return
    profile_id = resolve_id(session.store, profile_ref)
    if profile_id is None:
        console.print(f"[red]No profile matching {profile_ref!r}[/red]")
        sys.exit(1)
    _render_profile(session.store.profiles[profile_id])


@cli.command()
@click.pass_context
def new(ctx: click.Context) -> None:
    """Create a new profile and make it active."""
    session = get_session(ctx.obj["root"])
    profile_id = session.create()
    console.print(f"[green]Created profile[/green] {profile_id}")


@cli.command()
@click.argument("profile_ref")
@click.pass_context
def switch(ctx: click.Context, profile_ref: str) -> None:
    """Make another profile active."""
    session = get_session(ctx.obj["root"])
    profile_id = resolve_id(session.store, profile_ref)
    if profile_id is None:
        console.print(f"[red]No profile matching {profile_ref!r}[/red]")
        sys.exit(1)
    session.switch(profile_id)
    console.print(f"Active profile: [cyan]{session.active.display_name}[/cyan] ({profile_id})")


@cli.command()
@click.option("--id", "profile_ref", default=None, help="Profile id or unique prefix (default: active)")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def delete(ctx: click.Context, profile_ref: str | None, yes: bool) -> None:
    """Delete a profile permanently."""
    session = get_session(ctx.obj["root"])
    profile_id = resolve_id(session.store, profile_ref) if profile_ref else session.active_id
    if profile_id is None or profile_id not in session.store:
        console.print(f"[red]No profile matching {profile_ref or 'the active id'!r}[/red]")
        sys.exit(1)

    name = session.store.profiles[profile_id].display_name
    if not yes and not click.confirm(
        f"Are you sure you want to delete the profile for {name}? This cannot be undone."
    ):
        console.print("[dim]Cancelled.[/dim]")
        return

    session.delete(profile_id)
    console.print(
        f"[green]Deleted[/green] {name}. Active profile: "
        f"[cyan]{session.active.display_name}[/cyan] ({session.active_id})"
    )


@cli.command()
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
@click.option("--dob", default=None, help="Date of birth (free text)")
@click.pass_context
def edit(ctx: click.Context, first_name: str | None, last_name: str | None, dob: str | None) -> None:
    """Edit the active profile's name or date of birth."""
    fields = {
        k: v
        for k, v in (("first_name", first_name), ("last_name", last_name), ("date_of_birth", dob))
        if v is not None
    }
    if not fields:
        console.print("[yellow]Nothing to change. Pass --first-name, --last-name or --dob.[/yellow]")
        return
    session = get_session(ctx.obj["root"])
    if session.active_id not in session.store:
        console.print("[red]Active profile not found. Run: psychoanalyze switch <id>[/red]")
        sys.exit(1)
    session.update(**fields)
    console.print(f"[green]Updated[/green] {session.active.display_name}")


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--context", "-c", default="", help="Who is who, or what the evidence shows")
@click.option(
    "--type",
    "-t",
    "media_type",
    type=click.Choice([m.value for m in MediaType]),
    default=None,
    help="Override the detected media type",
)
@click.option(
    "--recording",
    type=click.Choice(["screen", "audio"]),
    default=None,
    help="Treat a single file as a finished screen or voice recording",
)
@click.pass_context
def analyze(
    ctx: click.Context,
    files: tuple[str, ...],
    context: str,
    media_type: str | None,
    recording: str | None,
) -> None:
    """Analyze evidence files and update the active profile."""
    from psychoanalyze.evidence import FileEvidenceSource, RecordingEvidenceSource

    root = ctx.obj["root"]
    session = get_session(root)

    try:
        if recording:
            if len(files) != 1:
                raise click.UsageError("--recording takes exactly one file")
            source = RecordingEvidenceSource(files[0], recording)
        else:
            source = FileEvidenceSource(files, MediaType(media_type) if media_type else None)
        batch = source.collect()

        console.print(
            f"Analyzing [cyan]{batch.file_label}[/cyan] ({batch.media_type.value}) "
            f"for [bold]{session.active.display_name}[/bold]..."
        )
        updated = session.analyze(batch, get_analyzer(root), context)
    except AnalysisError as e:
        log.debug("Analysis failed: %s", e)
        console.print(f"[red]{ANALYSIS_FAILED}[/red]")
        console.print(f"[dim]{e}[/dim]")
        sys.exit(1)

    if updated is None:
        console.print("[yellow]Active profile no longer exists; result was not saved.[/yellow]")
        return
    console.print(f"[green]Profile updated.[/green] {updated.history[-1].summary}")


@cli.command()
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["json", "text", "html"]),
    default="json",
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(file_okay=False), default=".", help="Output directory")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print instead of writing a file")
@click.pass_context
def export(ctx: click.Context, fmt: str, output: str, to_stdout: bool) -> None:
    """Export the active profile as a JSON, text or HTML report."""
    from psychoanalyze.distribution.export import export_profile
    from psychoanalyze.distribution.formatters import format_profile

    session = get_session(ctx.obj["root"])
    profile = session.active
    if to_stdout:
        click.echo(format_profile(profile, fmt))
        return
    path = export_profile(profile, output, fmt)
    console.print(f"[green]Report written to {path}[/green]")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Raw JSON summary")
@click.pass_context
def metrics(ctx: click.Context, as_json: bool) -> None:
    """Show analysis call statistics."""
    from psychoanalyze.metrics import MetricsTracker

    summary = MetricsTracker(ctx.obj["root"]).get_summary()
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return
    if not summary["total_runs"]:
        console.print("[dim]No analyses recorded yet.[/dim]")
        return

    table = Table(title="Analysis Metrics")
    table.add_column("Operation", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Tokens", justify="right", style="green")
    table.add_column("Errors", justify="right", style="red")
    for op, stats in summary["by_operation"].items():
        table.add_row(op, str(stats["count"]), str(stats["total_tokens"]), str(stats["errors"]))
    console.print(table)
    console.print(f"Files processed: {summary['total_files_processed']}")


@cli.command()
@click.option("--api-key", prompt="Gemini API key", hide_input=True, help="Key to store for later runs")
def auth(api_key: str) -> None:
    """Store the Gemini API key in ~/.psychoanalyze/.env."""
    from psychoanalyze.config import save_api_key

    api_key = api_key.strip()
    if not api_key:
        console.print("[red]No key given.[/red]")
        sys.exit(1)
    env_file = save_api_key(api_key)
    console.print(f"[green]API key saved[/green] to {env_file}")
