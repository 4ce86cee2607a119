"""Utilities for parsing and loading M3U playlists."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional
from urllib import request
from urllib.error import HTTPError, URLError

from .logging_utils import get_logger

log = get_logger(__name__)

DEFAULT_PLAYLIST_URL = "https://raw.githubusercontent.com/LITUATUI/M3UPT/main/M3U/M3UPT.m3u"
DEFAULT_TIMEOUT = 30.0

EXTINF_MARKER = "#EXTINF"
COMMENT_PREFIX = "#"

_LINE_BREAK = re.compile(r"\r?\n")
_ATTRIBUTE = re.compile(r'([A-Za-z0-9_-]+)="([^"]*)"')


@dataclass(frozen=True, slots=True)
class Channel:
    """A parsed playlist entry."""

    name: str
    url: str
    group: Optional[str] = None
    logo: Optional[str] = None
    attributes: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def label(self) -> str:
        """Return the list label ``name · group``."""

        if self.group:
            return f"{self.name} · {self.group}"
        return self.name


class PlaylistError(RuntimeError):
    """Raised when a playlist cannot be parsed."""


class LoadError(PlaylistError):
    """Raised when a playlist cannot be fetched or yields no channels."""


def parse_attributes(line: str) -> dict[str, str]:
    """Return the ``key="value"`` pairs found on *line*.

    Values are taken verbatim between the quotes; a later occurrence of a key
    replaces the earlier value.
    """

    attributes: dict[str, str] = {}
    for key, value in _ATTRIBUTE.findall(line):
        attributes[key] = value
    return attributes


def parse_name(line: str) -> str:
    """Return the display name: the text after the last comma."""

    _, comma, name = line.rpartition(",")
    if not comma:
        return ""
    return name.strip()


def _split_lines(text: str | Iterable[str]) -> List[str]:
    if isinstance(text, str):
        return _LINE_BREAK.split(text)
    return [line.rstrip("\r\n") for line in text]


def parse_playlist(text: str | Iterable[str]) -> List[Channel]:
    """Parse playlist text (or an iterable of lines) into channels."""

    lines = _split_lines(text)
    channels: List[Channel] = []
    index = 0
    total = len(lines)
    while index < total:
        line = lines[index].strip()
        index += 1
        if not line.startswith(EXTINF_MARKER):
            continue

        attributes = parse_attributes(line)
        name = parse_name(line)

        url = ""
        while index < total:
            candidate = lines[index].strip()
            index += 1
            if candidate and not candidate.startswith(COMMENT_PREFIX):
                url = candidate
                break
        if not url:
            log.debug("Dropping entry %r without a stream URL", name)
            continue

        channel = Channel(
            name=name,
            url=url,
            group=attributes.get("group-title") or attributes.get("group") or None,
            logo=attributes.get("tvg-logo") or None,
            attributes=attributes,
        )
        channels.append(channel)
        log.debug("Added channel %s (%s)", channel.name, channel.url)

    log.info("Parsed %d channels from playlist", len(channels))
    return channels


def fetch_playlist_text(
    source: str | Path,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: Optional[str] = None,
) -> str:
    """Return the raw playlist text from a URL or local path."""

    source_str = str(source)
    if source_str.startswith(("http://", "https://")):
        req = request.Request(source_str, headers={"Cache-Control": "no-store"})
        if user_agent:
            req.add_header("User-Agent", user_agent)
        try:
            with request.urlopen(req, timeout=timeout) as response:
                data = response.read()
        except HTTPError as exc:
            raise LoadError(
                f"Failed to download playlist: {exc.code} {exc.reason}"
            ) from exc
        except (URLError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise LoadError(f"Failed to download playlist: {reason}") from exc
        log.debug("Downloaded playlist bytes: %d", len(data))
        return data.decode("utf8", errors="replace")

    path = Path(source_str).expanduser()
    if not path.exists():
        raise LoadError(f"Playlist path not found: {path}")
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise LoadError(f"Failed to read playlist {path}: {exc}") from exc
    log.debug("Read playlist file %s (%d bytes)", path, len(data))
    return data.decode("utf8", errors="replace")


def load_playlist(
    source: str | Path = DEFAULT_PLAYLIST_URL,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: Optional[str] = None,
) -> List[Channel]:
    """Load and parse a playlist from a local path or URL."""

    log.info("Loading playlist from %s", source)
    text = fetch_playlist_text(source, timeout=timeout, user_agent=user_agent)
    channels = parse_playlist(text)
    if not channels:
        raise LoadError("No channels found in playlist.")
    return channels


__all__ = [
    "Channel",
    "DEFAULT_PLAYLIST_URL",
    "LoadError",
    "PlaylistError",
    "fetch_playlist_text",
    "load_playlist",
    "parse_attributes",
    "parse_name",
    "parse_playlist",
]
