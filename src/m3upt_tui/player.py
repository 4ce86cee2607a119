"""Player detection and launching helpers."""
from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .logging_utils import get_logger
from .playlist import Channel

DEFAULT_PLAYER_CANDIDATES: Sequence[str] = ("mpv", "vlc", "ffplay")

PLAYER_PROBE_TIMEOUT_ENV = "M3UPT_TUI_PLAYER_PROBE_TIMEOUT"
DEFAULT_PLAYER_PROBE_TIMEOUT = 10.0


log = get_logger(__name__)


class PlayerLaunchError(RuntimeError):
    """Raised when no player can be found or started."""


@dataclass(slots=True)
class PlayerCommand:
    """Describe a player invocation."""

    executable: str
    args: list[str]
    channel_name: str = ""

    def as_sequence(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def display_name(self) -> str:
        return Path(self.executable).name


@dataclass(slots=True)
class ForegroundLaunch:
    """The player ran to completion with the terminal attached."""

    command: PlayerCommand
    returncode: int


@dataclass(slots=True)
class BackgroundLaunch:
    """The player was started detached; the handle is not waited on."""

    command: PlayerCommand
    process: subprocess.Popen


PlayerLaunch = Union[ForegroundLaunch, BackgroundLaunch]


def detect_player(
    preferred: Optional[str] = None,
    *,
    candidates: Iterable[str] = DEFAULT_PLAYER_CANDIDATES,
) -> Optional[str]:
    """Resolve *preferred* (a name or a path), then each candidate, on ``PATH``.

    Returns the first resolvable executable, or ``None`` when nothing is
    installed.
    """

    names = [str(preferred)] if preferred else []
    names.extend(name for name in candidates if name not in names)
    for name in names:
        resolved = shutil.which(name)
        if resolved:
            log.debug("Using player %s for %s", resolved, name)
            return resolved
    log.warning("None of the players %s is installed", ", ".join(names))
    return None


def _missing_player_message(preferred: Optional[str]) -> str:
    names = ", ".join(DEFAULT_PLAYER_CANDIDATES)
    if preferred and preferred not in DEFAULT_PLAYER_CANDIDATES:
        names = f"{preferred}, {names}"
    return (
        f"No supported media player found ({names}). "
        "Install mpv or pass a custom binary with --mpv <path>."
    )


def build_player_command(channel: Channel, *, preferred: Optional[str] = None) -> PlayerCommand:
    """Construct a player command for the given channel."""

    executable = detect_player(preferred)
    if executable is None:
        log.error("Unable to locate supported media player")
        raise PlayerLaunchError(_missing_player_message(preferred))
    args: list[str] = []
    if Path(executable).name.lower() == "ffplay":
        args.extend(["-autoexit", "-window_title", channel.name or channel.url])
    command = PlayerCommand(
        executable=executable,
        args=[*args, channel.url],
        channel_name=channel.name,
    )
    log.info("Built player command for channel %s: %s", channel.name, command.as_sequence())
    return command


def launch_player(command: PlayerCommand, *, foreground: bool) -> PlayerLaunch:
    """Start *command* in the foreground (blocking) or detached in the background."""

    argv = command.as_sequence()
    if foreground:
        log.info("Handing terminal to %s for %s", command.display_name, command.channel_name)
        try:
            result = subprocess.run(argv, check=False)
        except OSError as exc:
            raise PlayerLaunchError(f"Failed to start {command.display_name}: {exc}") from exc
        log.info("Player exited with code %s", result.returncode)
        return ForegroundLaunch(command=command, returncode=result.returncode)

    options: dict[str, object] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
    }
    if os.name == "nt":
        options["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0)
    else:
        options["start_new_session"] = True
    try:
        process = subprocess.Popen(argv, env=os.environ.copy(), **options)  # type: ignore[call-overload]
    except OSError as exc:
        raise PlayerLaunchError(f"Failed to start {command.display_name}: {exc}") from exc
    log.debug("Spawned process PID %s", getattr(process, "pid", "unknown"))
    return BackgroundLaunch(command=command, process=process)


def _probe_timeout_from_env() -> float:
    """Read the ``--version`` probe timeout, falling back to the default."""

    raw = os.getenv(PLAYER_PROBE_TIMEOUT_ENV)
    if raw is None:
        return DEFAULT_PLAYER_PROBE_TIMEOUT
    try:
        seconds = float(raw)
    except ValueError:
        seconds = 0.0
    if seconds > 0:
        return seconds
    log.warning(
        "Ignoring %s=%r; expected a positive number of seconds",
        PLAYER_PROBE_TIMEOUT_ENV,
        raw,
    )
    return DEFAULT_PLAYER_PROBE_TIMEOUT


def probe_player(preferred: Optional[str] = None) -> str:
    """Run ``<player> --version`` and return the first line it prints."""

    executable = detect_player(preferred)
    if executable is None:
        raise PlayerLaunchError(_missing_player_message(preferred))
    name = Path(executable).name
    timeout = _probe_timeout_from_env()
    try:
        result = subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise PlayerLaunchError(
            f"{name} --version timed out after {timeout:.1f} seconds "
            f"(set {PLAYER_PROBE_TIMEOUT_ENV} to wait longer)"
        ) from exc
    except OSError as exc:
        raise PlayerLaunchError(f"Failed to start {name}: {exc}") from exc

    stdout = (result.stdout or "").strip()
    stderr = (result.stderr or "").strip()
    if result.returncode != 0:
        raise PlayerLaunchError(
            f"{name} --version exited with status {result.returncode}: {stderr or stdout}"
        )
    text = stdout or stderr
    first_line = text.splitlines()[0] if text else name
    log.info("Probed %s: %s", executable, first_line)
    return first_line


__all__ = [
    "BackgroundLaunch",
    "DEFAULT_PLAYER_CANDIDATES",
    "ForegroundLaunch",
    "PlayerCommand",
    "PlayerLaunch",
    "PlayerLaunchError",
    "build_player_command",
    "detect_player",
    "launch_player",
    "probe_player",
]
