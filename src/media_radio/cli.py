"""
Media Radio CLI - Entry point

Fetches, plays and deletes media from the command line. Playback runs
headless: each chunk trigger goes to the debug log instead of a sound device.
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

from rich.console import Console

from media_radio.core import ensure_directories, load_config, setup_loguru
from media_radio.domain.media import MediaInfo, MediaRadioError, resolve_track_id
from media_radio.domain.playback import ListenerRef
from media_radio.service import RadioService

DEFAULT_OWNER = "cli"

console = Console()


def _format_ms(ms: int) -> str:
    seconds = ms // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def _print_media(media: MediaInfo) -> None:
    console.print(f"[bold]{media.title}[/bold] by {media.artist}")
    console.print(f"  Track ID:  {media.track_id}")
    console.print(f"  Source:    {media.source_url}")
    console.print(f"  Duration:  {_format_ms(media.duration_ms)}")
    console.print(f"  Chunks:    {media.chunk_count}")
    if media.thumbnail_asset_ref:
        console.print(f"  Thumbnail: {media.thumbnail_asset_ref}")


def run_track_id(url: str) -> int:
    try:
        print(resolve_track_id(url))
    except MediaRadioError as e:
        console.print(f"❌ {e}", style="red")
        return 1
    return 0


def run_fetch(service: RadioService, url: str, owner: str) -> int:
    """Acquire a URL and print what was stored.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    console.print(f"Fetching {url} ...", style="cyan")
    try:
        media = service.request(owner, url).result()
    except MediaRadioError as e:
        console.print(f"❌ {e}", style="red")
        return 1

    _print_media(media)
    return 0


def run_play(
    service: RadioService,
    url: str,
    owner: str,
    seconds: float,
    loop: bool,
    volume: Optional[int],
) -> int:
    """Acquire a URL and play it to a headless listener for a while.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    listener = ListenerRef(listener_id=owner, name=owner)
    scheduler = service.scheduler
    scheduler.set_loop_enabled(listener, loop)
    if volume is not None:
        scheduler.set_volume(listener, volume)

    console.print(f"Fetching {url} ...", style="cyan")
    try:
        session = service.play_for_listener(listener, url).result()
    except MediaRadioError as e:
        console.print(f"❌ {e}", style="red")
        return 1

    if session is None:
        console.print("Nothing to play", style="yellow")
        return 1

    console.print(f"▶ {session.title} by {session.artist}", style="green")
    deadline = time.monotonic() + seconds
    try:
        while time.monotonic() < deadline:
            status = scheduler.get_status(listener)
            if status.is_stopped:
                break
            console.print(
                f"  {_format_ms(status.position_ms)} / {_format_ms(status.duration_ms)}"
                f" ({status.progress:.0%})"
            )
            time.sleep(1.0)
    except KeyboardInterrupt:
        console.print("Interrupted", style="yellow")
    finally:
        scheduler.stop(listener)

    console.print("⏹ Stopped", style="green")
    return 0


def run_delete(service: RadioService, url: str, owner: str) -> int:
    removed = service.delete_media(owner, url)
    if removed:
        console.print(f"✓ Removed {url}", style="green")
    else:
        console.print(f"{url} was not in {owner}'s library", style="yellow")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="media-radio",
        description="Fetch remote audio as chunked sound events and play it back",
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument(
        "--debug", action="store_true", help="Log at DEBUG level to stderr too"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    track_id = subparsers.add_parser("track-id", help="Print the TrackId for a URL")
    track_id.add_argument("url")

    fetch = subparsers.add_parser("fetch", help="Download and chunk a URL")
    fetch.add_argument("url")
    fetch.add_argument("--owner", default=DEFAULT_OWNER)

    play = subparsers.add_parser("play", help="Fetch a URL and play it headless")
    play.add_argument("url")
    play.add_argument("--owner", default=DEFAULT_OWNER)
    play.add_argument("--seconds", type=float, default=10.0)
    play.add_argument("--loop", action="store_true")
    play.add_argument("--volume", type=int, help="Volume percent (0-200)")

    delete = subparsers.add_parser("delete", help="Remove a URL and its chunks")
    delete.add_argument("url")
    delete.add_argument("--owner", default=DEFAULT_OWNER)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "track-id":
        return run_track_id(args.url)

    config = load_config(args.config)
    if args.debug:
        config.logging.level = "DEBUG"
        config.logging.console_output = True
    ensure_directories(config)
    setup_loguru(config.logging, config.data_dir)

    service = RadioService.build(config)
    try:
        if args.command == "fetch":
            return run_fetch(service, args.url, args.owner)
        if args.command == "play":
            return run_play(
                service, args.url, args.owner, args.seconds, args.loop, args.volume
            )
        if args.command == "delete":
            return run_delete(service, args.url, args.owner)
    finally:
        service.shutdown()
    return 1


if __name__ == "__main__":
    sys.exit(main())
