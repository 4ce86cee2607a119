"""Textual application implementing the channel browser TUI."""
from __future__ import annotations

import asyncio
from functools import partial
from typing import Callable, Optional, Sequence

try:
    from textual import events, on
    from textual.actions import SkipAction
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, Vertical
    from textual.reactive import reactive
    from textual.screen import ModalScreen
    from textual.widgets import Footer, Header, Input, Label, ListItem, ListView, Static
except ModuleNotFoundError as exc:  # pragma: no cover - dependency guard
    raise ModuleNotFoundError(
        "The 'textual' package is required to run m3upt_tui. "
        "Install dependencies with 'pip install -e .[test]' or 'pip install m3upt-tui'."
    ) from exc

from rich.markup import escape

from .config import AppConfig
from .log_viewer import LogViewer
from .logging_utils import get_logger
from .navigation import EmptySelectionError, NavigationState, ReloadGate
from .player import (
    PlayerCommand,
    PlayerLaunchError,
    build_player_command,
    launch_player,
    probe_player,
)
from .playlist import Channel, PlaylistError, load_playlist
from .themes import CUSTOM_THEMES, DEFAULT_THEME_NAME


log = get_logger(__name__)

SIDEBAR_WIDTH = 32
SIDEBAR_VALUE_WIDTH = SIDEBAR_WIDTH - 4
MAX_SIDEBAR_ATTRIBUTES = 10
ELLIPSIS = "…"

PlaylistLoader = Callable[[], Sequence[Channel]]


def truncate(text: str, width: int) -> str:
    """Shorten *text* to *width* characters, marking the cut with an ellipsis."""

    if len(text) <= width:
        return text
    return text[: max(0, width - 1)] + ELLIPSIS


def describe_channel(
    channel: Optional[Channel], *, width: int = SIDEBAR_VALUE_WIDTH
) -> list[str]:
    """Return the sidebar lines (Rich markup) describing *channel*."""

    if channel is None:
        return ["—"]
    lines = [
        f"[b]Name[/b]: {escape(channel.name)}",
        f"[b]Group[/b]: {escape(channel.group or '—')}",
        "[b]URL[/b]:",
        escape(truncate(channel.url, width)),
        "",
        "[b]Attrs[/b]:",
    ]
    for key, value in list(channel.attributes.items())[:MAX_SIDEBAR_ATTRIBUTES]:
        lines.append(f"{escape(key)}: {escape(truncate(value, width))}")
    return lines


def banner_text(group: str) -> str:
    """Return the header banner for the active *group*."""

    return (
        "[b][#79c000]M3UPT[/][/b] · [b]MPV Player[/b]\n"
        f"Group: [b]{escape(group)}[/b] · Type [b]/[/b] to search · "
        "Tab to change group · Enter to play · q to quit"
    )


class ChannelListItem(ListItem):
    """Render a channel as ``name · group``."""

    def __init__(self, channel: Channel) -> None:
        self.channel = channel
        super().__init__(Label(escape(channel.label()), classes="channel-name"))


class SearchInput(Input):
    """Search field that hands arrow navigation to the channel list."""

    def on_key(self, event: events.Key) -> None:  # pragma: no cover - UI callback
        if event.key in ("down", "up"):
            app = getattr(self, "app", None)
            if isinstance(app, ChannelBrowserApp):
                event.stop()
                app.call_after_refresh(app._focus_channel_list)


class ChannelListView(ListView):
    """List of the currently visible channels."""


class GroupBanner(Static):
    """Header banner naming the active group."""

    group: reactive[str] = reactive("All")

    def watch_group(self, group: str) -> None:
        self.update(banner_text(group))


class ChannelInfo(Static):
    """Sidebar detail for the selected channel."""

    channel: reactive[Optional[Channel]] = reactive(None, always_update=True)

    def watch_channel(self, channel: Optional[Channel]) -> None:
        self.update("\n".join(describe_channel(channel)))


class StatusBar(Static):
    """A simple status bar widget."""

    status: reactive[str] = reactive("Ready")

    def watch_status(self, status: str) -> None:
        self.update(status)


class FindPrompt(ModalScreen[Optional[str]]):
    """Modal query prompt feeding the search box."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, initial: str = "") -> None:
        super().__init__()
        self._initial = initial

    def compose(self) -> ComposeResult:
        with Vertical(id="find-dialog"):
            yield Label("Query:")
            yield Input(value=self._initial, id="find-input")

    def on_mount(self) -> None:
        self.query_one("#find-input", Input).focus()

    @on(Input.Submitted, "#find-input")
    def _on_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


# Kept inline so the application can always boot without external CSS files.
_INLINE_DEFAULT_CSS = """
#banner {
    height: 3;
    padding: 0 1;
}

#search {
    border: tall $accent;
}

#channel-browser {
    height: 1fr;
}

#channel-list {
    width: 1fr;
    border: round $panel-lighten-2;
}

#channel-info {
    width: 32;
    border: round $panel-lighten-2;
    padding: 0 1;
    overflow-y: auto;
}

#find-dialog {
    width: 50%;
    height: 7;
    border: round $accent;
    padding: 0 1;
    background: $surface;
}

FindPrompt {
    align: center middle;
}

StatusBar {
    height: 3;
    border: round $panel-lighten-1;
    padding: 0 1;
}
"""


DEFAULT_CSS = _INLINE_DEFAULT_CSS


class ChannelBrowserApp(App[Optional[PlayerCommand]]):
    """Browse, filter and play the channels of a playlist.

    The app returns a :class:`PlayerCommand` from :meth:`run` when a channel
    was activated in foreground mode; the caller then runs the player with
    the terminal attached.
    """

    TITLE = "M3UPT · MPV Player"
    CSS = DEFAULT_CSS
    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False),
        Binding("escape", "back_or_quit", "Back / quit", show=False),
        Binding("/", "focus_search", "Search"),
        Binding("s", "focus_search", "Search", show=False),
        Binding("ctrl+f", "find", "Find"),
        Binding("tab", "cycle_group(1)", "Next group", priority=True),
        Binding("shift+tab", "cycle_group(-1)", "Previous group", priority=True),
        Binding("p", "play", "Play"),
        Binding("r", "reload", "Reload"),
        Binding("ctrl+p", "probe_player", "Probe player"),
        Binding("f4", "toggle_logs", "Logs"),
    ]

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        loader: Optional[PlaylistLoader] = None,
        theme: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._config = config or AppConfig()
        self._register_custom_themes()
        self._apply_requested_theme(theme or self._config.theme)
        self._loader: PlaylistLoader = loader or partial(
            load_playlist,
            self._config.playlist_url,
            timeout=self._config.timeout,
            user_agent=self._config.user_agent,
        )
        self._navigation = NavigationState()
        self._reload_gate = ReloadGate()
        self._probing_player = False
        log.info(
            "ChannelBrowserApp initialized; playlist=%s player=%s stay=%s",
            self._config.playlist_url,
            self._config.player,
            self._config.stay,
        )

    @property
    def navigation(self) -> NavigationState:
        return self._navigation

    @property
    def reload_gate(self) -> ReloadGate:
        return self._reload_gate

    def _register_custom_themes(self) -> None:
        for theme in CUSTOM_THEMES.values():
            self.register_theme(theme)

    def _apply_requested_theme(self, requested: Optional[str]) -> None:
        preferred = requested or DEFAULT_THEME_NAME
        theme = self.get_theme(preferred)
        if theme is None:
            if requested:
                log.warning(
                    "Requested theme '%s' is unavailable; falling back to %s",
                    requested,
                    DEFAULT_THEME_NAME,
                )
            theme = self.get_theme(DEFAULT_THEME_NAME)
            if theme is None:  # pragma: no cover - bundled theme missing
                return
        log.debug("Applying theme %s", theme.name)
        self.theme = theme.name

    def compose(self) -> ComposeResult:
        yield Header()
        yield GroupBanner(banner_text("All"), id="banner")
        yield SearchInput(placeholder="Search channels…", id="search")
        with Horizontal(id="channel-browser"):
            yield ChannelListView(id="channel-list")
            yield ChannelInfo("—", id="channel-info")
        yield LogViewer(id="log-viewer")
        yield StatusBar("Loading…", id="status")
        yield Footer()

    async def on_mount(self) -> None:
        log.debug("Application mounted")
        self._set_status("Initialising…")
        await self._render_view()
        self._focus_channel_list()
        self.action_reload()

    def _set_status(self, message: str) -> None:
        log.debug("Status update: %s", message)
        try:
            status_bar = self.query_one(StatusBar)
        except Exception:
            log.debug("Dropping status update; status bar unavailable")
            return
        status_bar.status = message

    def _set_error(self, message: str) -> None:
        self._set_status(f"[red]{escape(message)}[/red]")

    def _focus_channel_list(self) -> None:
        self.query_one("#channel-list", ChannelListView).focus()

    def _refresh_sidebar(self) -> None:
        self.query_one(ChannelInfo).channel = self._navigation.selected_channel

    async def _render_view(self) -> None:
        """Redraw the list, banner and sidebar from the navigation state."""

        navigation = self._navigation
        list_view = self.query_one("#channel-list", ChannelListView)
        await list_view.clear()
        visible = navigation.visible_channels
        if visible:
            await list_view.extend(ChannelListItem(channel) for channel in visible)
            list_view.index = navigation.selection_index
        else:
            message = "No channels found" if len(navigation.catalog) else "No channels loaded"
            await list_view.append(ListItem(Label(message), disabled=True))
        self.query_one(GroupBanner).group = navigation.active_group
        self._refresh_sidebar()

    # Reload -----------------------------------------------------------------

    def action_reload(self) -> None:
        token = self._reload_gate.request()
        if token is None:
            self._set_status("Reload already in progress; queued another download…")
            return
        self._start_fetch(token)

    def _start_fetch(self, token: int) -> None:
        self._set_status("Downloading playlist…")
        log.info("Starting playlist reload %d", token)
        self.run_worker(self._fetch_playlist(token), name=f"reload:{token}", group="reload")

    async def _fetch_playlist(self, token: int) -> None:
        try:
            channels = await asyncio.to_thread(self._loader)
        except PlaylistError as exc:
            log.error("Playlist reload %d failed: %s", token, exc)
            self.call_later(self._handle_reload_failed, token, str(exc))
        except Exception as exc:  # pragma: no cover - unexpected loader failures
            log.exception("Unexpected error during playlist reload %d", token)
            self.call_later(self._handle_reload_failed, token, str(exc) or repr(exc))
        else:
            self.call_later(self._handle_reload_loaded, token, list(channels))

    def _finish_reload(self, token: int) -> bool:
        apply, next_token = self._reload_gate.finish(token)
        if next_token is not None:
            self._start_fetch(next_token)
        return apply

    async def _handle_reload_loaded(self, token: int, channels: list[Channel]) -> None:
        if not self._finish_reload(token):
            log.info("Discarded stale playlist reload %d", token)
            return
        if not channels:
            self._set_error("No channels found in playlist.")
            return
        self._navigation.reload(channels)
        search = self.query_one("#search", SearchInput)
        with search.prevent(Input.Changed):
            search.value = ""
        await self._render_view()
        groups = len(self._navigation.groups) - 1
        self._set_status(f"Loaded {len(channels)} channels. Groups: {groups}.")
        log.info("Applied playlist reload %d with %d channel(s)", token, len(channels))

    def _handle_reload_failed(self, token: int, message: str) -> None:
        if not self._finish_reload(token):
            log.info("Ignoring failure of stale reload %d", token)
            return
        self._set_error(message)

    # Filtering --------------------------------------------------------------

    @on(Input.Changed, "#search")
    async def on_search_changed(self, _: Input.Changed) -> None:
        # The event may have been queued before a reload cleared the box.
        query = self.query_one("#search", SearchInput).value
        log.debug("Search changed: %s", query)
        self._navigation.set_query(query)
        await self._render_view()

    @on(Input.Submitted, "#search")
    def on_search_submitted(self, _: Input.Submitted) -> None:
        self._focus_channel_list()

    async def action_cycle_group(self, step: int) -> None:
        if isinstance(self.screen, ModalScreen):
            raise SkipAction()
        group = self._navigation.cycle_group(step)
        log.debug("Active group: %s", group)
        await self._render_view()

    def action_focus_search(self) -> None:
        self.query_one("#search", SearchInput).focus()

    def action_find(self) -> None:
        search = self.query_one("#search", SearchInput)
        self.push_screen(FindPrompt(search.value), callback=self._apply_find_result)

    def _apply_find_result(self, value: Optional[str]) -> None:
        if value is None:
            return
        # Assigning the value posts Input.Changed, which drives the filter.
        self.query_one("#search", SearchInput).value = value
        self._focus_channel_list()

    def action_back_or_quit(self) -> None:
        if isinstance(self.focused, Input):
            self._focus_channel_list()
            return
        self.exit()

    # Selection & playback ---------------------------------------------------

    @on(ListView.Highlighted, "#channel-list")
    def on_channel_highlighted(self, event: ListView.Highlighted) -> None:
        if isinstance(event.item, ChannelListItem):
            self._navigation.move_selection(event.list_view.index)
        self._refresh_sidebar()

    @on(ListView.Selected, "#channel-list")
    def on_channel_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, ChannelListItem):
            self._navigation.move_selection(event.list_view.index)
        self.action_play()

    def action_play(self) -> None:
        try:
            self._navigation.activate(self._launch_channel)
        except EmptySelectionError:
            log.debug("Activation ignored; no visible channels")

    def _launch_channel(self, channel: Channel) -> Optional[PlayerCommand]:
        self._set_status(f"Playing: {escape(channel.name)}")
        try:
            command = build_player_command(channel, preferred=self._config.player)
        except PlayerLaunchError as exc:
            self._set_error(str(exc))
            return None
        if not self._config.stay:
            try:
                probe_player(command.executable)
            except PlayerLaunchError as exc:
                self._set_error(str(exc))
                log.error("Player check failed for %s: %s", channel.name, exc)
                return None
            log.info("Leaving the TUI to play %s in the foreground", channel.name)
            self.exit(result=command)
            return command
        try:
            launch_player(command, foreground=False)
        except PlayerLaunchError as exc:
            self._set_error(str(exc))
            log.error("Background launch failed for %s: %s", channel.name, exc)
            return None
        self._set_status(f"Launched {escape(command.display_name)} in background.")
        return command

    def action_probe_player(self) -> None:
        if self._probing_player:
            self._set_status("Player probe already running…")
            return
        self._probing_player = True
        self._set_status("Probing player…")
        self.run_worker(self._probe_player(), name="probe-player", group="probe")

    async def _probe_player(self) -> None:
        try:
            summary = await asyncio.to_thread(probe_player, self._config.player)
        except PlayerLaunchError as exc:
            self.call_later(self._handle_probe_result, False, str(exc))
        else:
            self.call_later(self._handle_probe_result, True, summary)

    def _handle_probe_result(self, success: bool, message: str) -> None:
        self._probing_player = False
        if success:
            self._set_status(f"Player available: {escape(message)}")
        else:
            self._set_error(message)

    def action_toggle_logs(self) -> None:
        visible = self.query_one(LogViewer).toggle()
        log.debug("Log panel %s", "shown" if visible else "hidden")


__all__ = ["ChannelBrowserApp", "banner_text", "describe_channel", "truncate"]
