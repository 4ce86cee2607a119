"""Interactive view state: active group, search query and selection."""
from __future__ import annotations

from typing import Callable, Optional, Sequence, TypeVar

from .catalog import ALL_GROUPS, Catalog
from .logging_utils import get_logger
from .playlist import Channel

log = get_logger(__name__)

T = TypeVar("T")


class EmptySelectionError(LookupError):
    """Raised when activation is attempted with nothing visible."""


class NavigationState:
    """Mediate user events and keep the visible channel list consistent.

    The state is the tuple ``(query, group_index, selection_index)`` over the
    current :class:`Catalog`. Every transition that affects the visible set
    recomputes it before returning.
    """

    def __init__(self, catalog: Optional[Catalog] = None) -> None:
        self._catalog = catalog or Catalog()
        self._query = ""
        self._group_index = 0
        self._visible: list[Channel] = []
        self._selection: Optional[int] = None
        self._recompute()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def groups(self) -> tuple[str, ...]:
        return self._catalog.groups

    @property
    def query(self) -> str:
        return self._query

    @property
    def group_index(self) -> int:
        return self._group_index

    @property
    def active_group(self) -> str:
        return self._catalog.group_label(self._group_index)

    @property
    def visible_channels(self) -> tuple[Channel, ...]:
        return tuple(self._visible)

    @property
    def selection_index(self) -> Optional[int]:
        return self._selection

    @property
    def selected_channel(self) -> Optional[Channel]:
        if self._selection is None:
            return None
        return self._visible[self._selection]

    def _recompute(self) -> None:
        self._visible = self._catalog.filter(self._query, self._group_index)
        self._selection = 0 if self._visible else None
        log.debug(
            "View recomputed: group=%s query=%r visible=%d",
            self.active_group,
            self._query,
            len(self._visible),
        )

    def reload(self, channels: Sequence[Channel]) -> None:
        """Replace the catalog, keeping the active group when it survives."""

        previous = self.active_group
        catalog = Catalog.build(channels)
        index = 0
        if self._group_index != 0:
            found = catalog.find_group(previous)
            if found is not None:
                index = found
            else:
                log.info("Group %s no longer present; showing %s", previous, ALL_GROUPS)
        self._catalog = catalog
        self._group_index = index
        self._query = ""
        self._recompute()

    def set_query(self, query: str) -> None:
        self._query = query
        self._recompute()

    def cycle_group(self, step: int = 1) -> str:
        """Move the active group by *step* (wrapping) and return its label."""

        count = len(self._catalog.groups)
        self._group_index = (self._group_index + step) % count
        self._recompute()
        return self.active_group

    def move_selection(self, index: Optional[int]) -> None:
        """Record the externally reported list position."""

        if not self._visible:
            self._selection = None
            return
        if index is None:
            return
        self._selection = max(0, min(index, len(self._visible) - 1))

    def activate(self, launcher: Callable[[Channel], T]) -> T:
        """Hand the selected channel to *launcher* and return its result."""

        channel = self.selected_channel
        if channel is None:
            raise EmptySelectionError("No channel selected")
        log.info("Activating %s (%s)", channel.name, channel.url)
        return launcher(channel)


class ReloadGate:
    """Serialize playlist reloads with last-requested-wins semantics.

    :meth:`request` returns a token to fetch with, or ``None`` when a fetch is
    already in flight; :meth:`finish` reports whether a completed fetch is
    still current and which token (if any) must be fetched next.
    """

    def __init__(self) -> None:
        self._latest = 0
        self._in_flight: Optional[int] = None

    @property
    def pending(self) -> bool:
        return self._in_flight is not None

    def request(self) -> Optional[int]:
        self._latest += 1
        if self._in_flight is not None:
            log.debug("Reload %d queued behind %d", self._latest, self._in_flight)
            return None
        self._in_flight = self._latest
        return self._latest

    def finish(self, token: int) -> tuple[bool, Optional[int]]:
        """Return ``(apply, next_token)`` for a completed fetch."""

        if token != self._in_flight:
            return False, None
        if token == self._latest:
            self._in_flight = None
            return True, None
        log.debug("Discarding stale reload %d; latest is %d", token, self._latest)
        self._in_flight = self._latest
        return False, self._latest


__all__ = ["EmptySelectionError", "NavigationState", "ReloadGate"]
