"""Command line entry point for the M3UPT TUI."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

from . import __version__
from .app import ChannelBrowserApp
from .config import CONFIG_PATH, load_config
from .logging_utils import configure_logging, get_logger
from .player import ForegroundLaunch, PlayerCommand, PlayerLaunchError, launch_player
from .themes import CUSTOM_THEMES

log = get_logger(__name__)


def _sorted_theme_names() -> list[str]:
    """Return the bundled theme catalog in a consistent order."""

    return sorted(CUSTOM_THEMES)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Browse the M3UPT playlist and play channels in mpv"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help="Path to configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--playlist",
        dest="playlist_url",
        default=None,
        help="Playlist URL or local file to load instead of the configured one",
    )
    parser.add_argument(
        "--player",
        "--mpv",
        dest="player",
        default=None,
        help="Media player executable to launch (default: mpv; falls back to auto-detect)",
    )
    parser.add_argument(
        "--stay",
        action="store_true",
        default=None,
        help="Keep the TUI open and launch the player in the background",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override M3UPT_TUI_LOG_LEVEL for this invocation",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write logs to this file instead of the default or M3UPT_TUI_LOG_FILE",
    )
    theme_names = ", ".join(_sorted_theme_names())
    parser.add_argument(
        "--theme",
        default=None,
        help=f"Select the application theme. Available options: {theme_names}.",
    )
    parser.add_argument(
        "--list-themes",
        action="store_true",
        help="List available themes and exit.",
    )
    return parser.parse_args(argv)


def run_foreground(command: PlayerCommand) -> int:
    """Run *command* with the terminal attached and return its exit code."""

    try:
        result = launch_player(command, foreground=True)
    except PlayerLaunchError as exc:
        log.error("Foreground launch failed: %s", exc)
        print(str(exc), file=sys.stderr)
        return 1
    if isinstance(result, ForegroundLaunch):
        return result.returncode
    return 0


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    if args.list_themes:
        for theme_name in _sorted_theme_names():
            print(theme_name)
        return
    configure_logging(
        level=args.log_level,
        log_file=str(args.log_file) if args.log_file is not None else None,
    )
    log.info("CLI invoked with config=%s", args.config)
    config = load_config(args.config).merged(
        playlist_url=args.playlist_url,
        player=args.player,
        stay=args.stay,
        theme=args.theme,
    )
    app = ChannelBrowserApp(config)
    log.info("Launching Textual application")
    try:
        result = app.run()
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received; exiting application")
        if app.is_running:
            app.exit()
        raise SystemExit(130) from None
    if isinstance(result, PlayerCommand):
        raise SystemExit(run_foreground(result))


if __name__ == "__main__":  # pragma: no cover
    main()
