"""Group derivation and filtering over a loaded channel collection."""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .logging_utils import get_logger
from .playlist import Channel

log = get_logger(__name__)

ALL_GROUPS = "All"


def _fold_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def _group_sort_key(label: str) -> tuple[str, str, str]:
    """Order labels alphabetically, placing accented letters with their base letter."""

    folded = label.casefold()
    return _fold_diacritics(folded), folded, label


def derive_groups(channels: Iterable[Channel]) -> tuple[str, ...]:
    """Return ``("All", *groups)`` with groups unique and sorted ascending.

    Labels that compare equal once case-folded collapse to the spelling seen
    first. Channels without a group do not contribute.
    """

    seen: dict[str, str] = {}
    for channel in channels:
        if not channel.group:
            continue
        seen.setdefault(channel.group.casefold(), channel.group)
    return (ALL_GROUPS, *sorted(seen.values(), key=_group_sort_key))


def channel_matches(channel: Channel, query: str, group: Optional[str] = None) -> bool:
    """Return True if *channel* is in *group* and contains *query*.

    ``group`` of ``None`` means no group restriction. The query is a plain
    case-insensitive substring of ``"<name> <group>"``.
    """

    if group is not None:
        if channel.group is None or channel.group.casefold() != group.casefold():
            return False
    needle = query.strip().casefold()
    if not needle:
        return True
    haystack = f"{channel.name} {channel.group or ''}".casefold()
    return needle in haystack


@dataclass(frozen=True, slots=True)
class Catalog:
    """All loaded channels together with their derived group list."""

    channels: tuple[Channel, ...] = ()
    groups: tuple[str, ...] = field(default=(ALL_GROUPS,))

    @classmethod
    def build(cls, channels: Sequence[Channel]) -> "Catalog":
        """Create a catalog and derive its groups from *channels*."""

        groups = derive_groups(channels)
        log.debug("Derived %d group(s) from %d channel(s)", len(groups) - 1, len(channels))
        return cls(channels=tuple(channels), groups=groups)

    def group_label(self, index: int) -> str:
        if 0 <= index < len(self.groups):
            return self.groups[index]
        return ALL_GROUPS

    def find_group(self, label: str) -> Optional[int]:
        """Return the index of *label* in the group list, ignoring case."""

        folded = label.casefold()
        for index, group in enumerate(self.groups):
            if index and group.casefold() == folded:
                return index
        return None

    def filter(self, query: str, group_index: int = 0) -> list[Channel]:
        """Return the channels visible for *query* within the indexed group."""

        group = self.groups[group_index] if 0 < group_index < len(self.groups) else None
        return [channel for channel in self.channels if channel_matches(channel, query, group)]

    def __len__(self) -> int:
        return len(self.channels)


__all__ = ["ALL_GROUPS", "Catalog", "channel_matches", "derive_groups"]
