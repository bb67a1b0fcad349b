"""
CLI interface for Grabbit.
Lists the formats of a video and downloads the one you pick.
"""

import os
import shutil
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from yt_dlp.version import __version__ as ytdlp_version

from grabbit import __version__, __app_name__
from grabbit.catalog import fetch_catalog
from grabbit.downloader import download_media
from grabbit.errors import BadInput, StrategiesExhausted
from config import settings as config


console = Console()


def print_banner():
    """Print the Grabbit welcome banner."""
    banner = f"""
[bold cyan]{__app_name__}[/bold cyan] v{__version__}
[dim]Pick a YouTube format, get a file — powered by yt-dlp {ytdlp_version}[/dim]
    """.strip()
    console.print(Panel(banner, border_style="cyan"))


def format_table(catalog: dict) -> Table:
    """Render the catalog's formats as a rich table."""
    table = Table(title=catalog.get("title") or "Formats")
    table.add_column("Type", style="cyan")
    table.add_column("Itag", style="bold")
    table.add_column("Quality")
    table.add_column("Container")
    table.add_column("Audio")

    for video in catalog["formats"]["video"]:
        audio_note = "built-in" if video["hasAudio"] else "merged"
        table.add_row("video", video["itag"], video["quality"], video["container"], audio_note)
    for audio in catalog["formats"]["audio"]:
        language = audio["language"] or "?"
        table.add_row("audio", audio["itag"], f"{audio['bitrate']} kbps", audio["container"], language)
    return table


def main():
    """Main CLI flow."""
    print_banner()
    console.print()

    source = Prompt.ask("[bold]Enter a YouTube URL[/bold]")
    if not source:
        console.print("[red]No input provided. Exiting.[/red]")
        return

    settings = config.load_settings()

    # Step 1: List formats
    console.print()
    console.print("[yellow]🔎 Fetching available formats...[/yellow]")
    try:
        catalog = fetch_catalog(source, settings=settings)
    except BadInput as e:
        console.print(f"[red]{e}[/red]")
        return
    except StrategiesExhausted as e:
        console.print(f"[red]Failed to extract video info.[/red] [dim]{e.details}[/dim]")
        return

    console.print(format_table(catalog))

    audio = catalog["formats"]["audio"]
    itags = [v["itag"] for v in catalog["formats"]["video"]] + [a["itag"] for a in audio]
    if not itags:
        console.print("[red]No downloadable formats found.[/red]")
        return

    # Step 2: Pick a format
    console.print()
    itag = Prompt.ask("Itag to download", choices=itags, default=itags[0])
    is_audio = any(a["itag"] == itag for a in audio)
    audio_itag = audio[0]["original_itag"] if audio and not is_audio else None

    # Step 3: Download
    console.print("[yellow]📥 Downloading...[/yellow]")
    try:
        result = download_media(
            source,
            itag,
            media_type="audio" if is_audio else "video",
            audio_itag=audio_itag,
            settings=settings,
        )
    except StrategiesExhausted as e:
        console.print(f"[red]Download failed.[/red] [dim]{e.details}[/dim]")
        return

    stem = "".join(c for c in (catalog.get("title") or "download") if c not in '\\/:*?"<>|').strip()
    target = os.path.join(os.getcwd(), f"{stem or 'download'}{os.path.splitext(result.filename)[1]}")
    shutil.move(result.path, target)

    console.print(f"[green]✅ Saved:[/green] {target}")
    console.print()
    console.print("[bold green]🎉 Done![/bold green]")
