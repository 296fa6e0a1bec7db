import logging
import time

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from catalog import CatalogBrowser, ITunesClient
from curated import CuratedAggregator
from player.controller import PlaybackController
from shared.config import CatalogConfig
from shared.constants import DEFAULT_FETCH_CAP, DEFAULT_TAKE_CAP, TAB_FOR_YOU, TAB_QUERIES
from shared.errors import CatalogError
from shared.models import PlaybackState
from shared.util import format_time

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _track_table(title, tracks):
    table = Table(title=title)
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Album", style="yellow")
    table.add_column("Duration", style="magenta")
    for i, t in enumerate(tracks, 1):
        table.add_row(str(i), str(t.id), t.title, t.artist, t.album_name, t.duration_formatted)
    return table


def _browser(ctx) -> CatalogBrowser:
    config = ctx.obj["config"]
    client = ITunesClient(config)
    return CatalogBrowser(client, curated_seeds=config.curated_artists)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx, verbose):
    """🎵 Preview Player"""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = CatalogConfig.from_env()


@cli.command()
@click.argument('query')
@click.option('--limit', default=50, show_default=True, help="Maximum results.")
@click.pass_context
def search(ctx, query, limit):
    """Search songs that have a preview."""
    browser = _browser(ctx)
    try:
        tracks = browser.search(query, limit)
    except CatalogError:
        console.print(f"[red]{browser.error_message}[/red]")
        return
    if not tracks:
        console.print("[yellow]No matching tracks found.[/yellow]")
        return
    console.print(_track_table(f"Results for '{query}' ({len(tracks)} tracks)", tracks))


@cli.command()
@click.argument('query')
@click.option('--limit', default=25, show_default=True, help="Maximum results.")
@click.pass_context
def albums(ctx, query, limit):
    """Search albums."""
    client = ITunesClient(ctx.obj["config"])
    try:
        found = client.search_albums(query, limit)
    except CatalogError as e:
        console.print(f"[red]{e}[/red]")
        return
    table = Table(title=f"Albums for '{query}'")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Album", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Tracks", style="magenta")
    for a in found:
        table.add_row(str(a.id), a.title, a.artist, str(a.track_count or "?"))
    console.print(table)


@cli.command()
@click.argument('collection_id', type=int)
@click.pass_context
def album(ctx, collection_id):
    """List the playable tracks of an album."""
    browser = _browser(ctx)
    try:
        tracks = browser.open_album(collection_id)
    except CatalogError:
        console.print(f"[red]{browser.error_message}[/red]")
        return
    console.print(_track_table(f"Album {collection_id}", tracks))


@cli.command()
@click.option('--seed', 'seeds', multiple=True, help="Seed query (repeatable). Defaults to the curated artists.")
@click.option('--fetch-cap', default=DEFAULT_FETCH_CAP, show_default=True, help="Tracks requested per seed.")
@click.option('--take-cap', default=DEFAULT_TAKE_CAP, show_default=True, help="Tracks kept per seed.")
@click.option('--strict', is_flag=True, help="Report an error when every seed fails.")
@click.pass_context
def curated(ctx, seeds, fetch_cap, take_cap, strict):
    """Build the shuffled "For You" feed."""
    config = ctx.obj["config"]
    client = ITunesClient(config)
    aggregator = CuratedAggregator(client, fetch_cap=fetch_cap, take_cap=take_cap, error_when_empty=strict)
    with console.status("Loading curated tracks..."):
        result = aggregator.aggregate(seeds or config.curated_artists)
    if result.failed_seeds:
        console.print(f"[yellow]Skipped {len(result.failed_seeds)} seed(s): {', '.join(result.failed_seeds)}[/yellow]")
    if result.error:
        console.print(f"[red]{result.error}[/red]")
        return
    console.print(_track_table(f"For You ({len(result.tracks)} tracks)", result.tracks))


@cli.command()
@click.argument('name', type=click.Choice([TAB_FOR_YOU] + sorted(TAB_QUERIES.keys())), default=TAB_FOR_YOU)
@click.pass_context
def tab(ctx, name):
    """Show the feed behind a browse tab."""
    browser = _browser(ctx)
    try:
        with console.status(f"Loading {name}..."):
            tracks = browser.load_tab(name)
    except CatalogError:
        console.print(f"[red]{browser.error_message}[/red]")
        return
    if browser.error_message:
        console.print(f"[red]{browser.error_message}[/red]")
    console.print(_track_table(name, tracks))


def _progress_panel(controller: PlaybackController) -> Panel:
    session = controller.session
    track = session.current_track
    total = session.duration or 0
    percent = min(100, (session.position / total) * 100) if total else 0

    status = Text()
    if track:
        status.append(f"{track.title}\n", style="bold green")
        status.append(f"{track.artist}", style="cyan")
        status.append(f" - {track.album_name}\n", style="yellow")
    status.append(f"{format_time(session.position)} ", style="cyan")
    status.append("━" * int(percent / 2), style="blue")
    status.append(" " * (50 - int(percent / 2)), style="gray")
    status.append(f" {format_time(total)}", style="cyan")
    if session.buffering:
        status.append("  buffering…", style="dim")

    title = f"{session.state.value.title()}  [{controller.current_index + 1}/{len(controller.queue)}]"
    return Panel(status, title=title)


@cli.command()
@click.argument('query', required=False)
@click.option('--album', 'album_id', type=int, help="Play an album instead of a search.")
@click.option('--start', default=1, show_default=True, help="Queue position to start from (1-based).")
@click.pass_context
def play(ctx, query, album_id, start):
    """Play previews. Without QUERY or --album, plays the curated feed."""
    try:
        from .engine import MpvMediaSource
    except OSError:
        console.print(Panel.fit(
            "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
            "The player requires the [cyan]libmpv[/cyan] library to work.\n\n"
            "Please install it:\n"
            "• Ubuntu/Debian: [green]sudo apt install libmpv2[/green]\n"
            "• Fedora: [green]sudo dnf install mpv-libs[/green]\n"
            "• Arch: [green]sudo pacman -S mpv[/green]",
            border_style="red"
        ))
        return

    config = ctx.obj["config"]
    browser = _browser(ctx)
    try:
        with console.status("Loading tracks..."):
            if album_id is not None:
                tracks = browser.open_album(album_id)
            elif query:
                tracks = browser.search(query)
            else:
                tracks = browser.load_curated()
    except CatalogError:
        console.print(f"[red]{browser.error_message}[/red]")
        return

    if not tracks:
        console.print("[yellow]No playable tracks found.[/yellow]")
        return

    try:
        source = MpvMediaSource()
    except Exception as e:
        console.print(f"[red]Error initializing player: {e}[/red]")
        return

    controller = PlaybackController(source, poll_interval=config.poll_interval)
    first = tracks[max(0, min(start, len(tracks)) - 1)]
    controller.load_and_play(first, tracks)

    # Ctrl+C skips to the next track; twice in a row quits.
    last_interrupt = 0.0
    failures = 0
    try:
        while True:
            try:
                with Live(_progress_panel(controller), console=console, refresh_per_second=4) as live:
                    while controller.state is not PlaybackState.IDLE:
                        live.update(_progress_panel(controller))
                        if controller.state is PlaybackState.FAILED:
                            console.print(f"[red]{controller.session.error}[/red]")
                            failures += 1
                            if failures >= len(controller.queue):
                                controller.stop()
                                break
                            controller.next()
                        elif controller.state is PlaybackState.PLAYING:
                            failures = 0
                        time.sleep(0.25)
                break
            except KeyboardInterrupt:
                now = time.monotonic()
                if now - last_interrupt < 1.0:
                    break
                last_interrupt = now
                controller.next()
    finally:
        controller.stop()
        source.shutdown()
        console.print("\n[yellow]Stopped.[/yellow]")


if __name__ == '__main__':
    cli()
