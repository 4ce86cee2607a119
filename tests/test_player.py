import shutil
import subprocess

import pytest

from m3upt_tui import player as player_module
from m3upt_tui.player import (
    BackgroundLaunch,
    ForegroundLaunch,
    PlayerCommand,
    PlayerLaunchError,
    build_player_command,
    detect_player,
    launch_player,
    probe_player,
)
from m3upt_tui.playlist import Channel


def test_detect_player_prefers_preferred(monkeypatch):
    calls = []

    def fake_which(cmd: str):
        calls.append(cmd)
        return "/usr/bin/mpv" if cmd == "mpv" else None

    monkeypatch.setattr(shutil, "which", fake_which)
    assert detect_player("mpv", candidates=["vlc", "mpv"]) == "/usr/bin/mpv"
    assert calls[0] == "mpv"


def test_detect_player_falls_back_to_candidates(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda cmd: "/usr/bin/vlc" if cmd == "vlc" else None)
    assert detect_player("/opt/custom/mpv") == "/usr/bin/vlc"


def test_build_player_command_raises_when_missing(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda _: None)
    channel = Channel(name="Test", url="http://example")
    with pytest.raises(PlayerLaunchError) as excinfo:
        build_player_command(channel, preferred="/opt/mpv")
    assert "--mpv" in str(excinfo.value)
    assert "/opt/mpv" in str(excinfo.value)


def test_build_player_command_passes_url_to_mpv(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda cmd: f"/usr/bin/{cmd}")
    channel = Channel(name="RTP 1", url="http://example/rtp1")
    command = build_player_command(channel)
    assert isinstance(command, PlayerCommand)
    assert command.executable == "/usr/bin/mpv"
    assert command.args == ["http://example/rtp1"]
    assert command.channel_name == "RTP 1"
    assert command.display_name == "mpv"


def test_build_player_command_ffplay_flags(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda cmd: f"/usr/bin/{cmd}")
    channel = Channel(name="SIC", url="http://example/sic")
    command = build_player_command(channel, preferred="ffplay")
    assert command.as_sequence() == [
        "/usr/bin/ffplay",
        "-autoexit",
        "-window_title",
        "SIC",
        "http://example/sic",
    ]


def test_launch_player_foreground_reports_exit_code(monkeypatch):
    captured = {}

    class Result:
        returncode = 3

    def fake_run(argv, **kwargs):
        captured["argv"] = argv
        captured["kwargs"] = kwargs
        return Result()

    monkeypatch.setattr(player_module.subprocess, "run", fake_run)
    command = PlayerCommand(executable="/usr/bin/mpv", args=["http://x/1"])
    result = launch_player(command, foreground=True)
    assert isinstance(result, ForegroundLaunch)
    assert result.returncode == 3
    assert captured["argv"] == ["/usr/bin/mpv", "http://x/1"]
    assert "stdout" not in captured["kwargs"]


def test_launch_player_background_detaches(monkeypatch):
    captured = {}

    class DummyProcess:
        pid = 4242

    def fake_popen(argv, **kwargs):
        captured["argv"] = argv
        captured["kwargs"] = kwargs
        return DummyProcess()

    monkeypatch.setattr(player_module.subprocess, "Popen", fake_popen)
    command = PlayerCommand(executable="/usr/bin/mpv", args=["http://x/1"])
    result = launch_player(command, foreground=False)
    assert isinstance(result, BackgroundLaunch)
    assert result.process.pid == 4242
    assert captured["argv"] == ["/usr/bin/mpv", "http://x/1"]
    assert captured["kwargs"]["stdout"] is subprocess.DEVNULL
    assert captured["kwargs"]["stdin"] is subprocess.DEVNULL


@pytest.mark.parametrize("foreground", [True, False])
def test_launch_player_start_failure(monkeypatch, foreground):
    def boom(*args, **kwargs):
        raise FileNotFoundError("no such file")

    monkeypatch.setattr(player_module.subprocess, "run", boom)
    monkeypatch.setattr(player_module.subprocess, "Popen", boom)
    command = PlayerCommand(executable="/missing/mpv", args=["http://x"])
    with pytest.raises(PlayerLaunchError, match="Failed to start mpv"):
        launch_player(command, foreground=foreground)


def test_probe_player_success(monkeypatch):
    monkeypatch.setattr(player_module, "detect_player", lambda preferred=None, **kwargs: "/usr/bin/mpv")

    class Result:
        returncode = 0
        stdout = "mpv 0.37.0 Copyright\nbuilt on ..."
        stderr = ""

    monkeypatch.setattr(player_module.subprocess, "run", lambda *args, **kwargs: Result())
    assert probe_player() == "mpv 0.37.0 Copyright"


def test_probe_player_failure(monkeypatch):
    monkeypatch.setattr(player_module, "detect_player", lambda preferred=None, **kwargs: "/usr/bin/mpv")

    class Result:
        returncode = 1
        stdout = ""
        stderr = "fatal error"

    monkeypatch.setattr(player_module.subprocess, "run", lambda *args, **kwargs: Result())
    with pytest.raises(PlayerLaunchError, match="fatal error"):
        probe_player()


def test_probe_player_timeout(monkeypatch):
    monkeypatch.setattr(player_module, "detect_player", lambda preferred=None, **kwargs: "/usr/bin/mpv")

    def fake_run(*args, **kwargs):
        raise subprocess.TimeoutExpired(cmd=args[0], timeout=kwargs["timeout"])

    monkeypatch.setattr(player_module.subprocess, "run", fake_run)
    monkeypatch.setenv(player_module.PLAYER_PROBE_TIMEOUT_ENV, "2.5")

    with pytest.raises(PlayerLaunchError) as excinfo:
        probe_player()

    assert "timed out after 2.5 seconds" in str(excinfo.value)


def test_probe_timeout_env_invalid_uses_default(monkeypatch):
    monkeypatch.setenv(player_module.PLAYER_PROBE_TIMEOUT_ENV, "soon")
    assert player_module._probe_timeout_from_env() == player_module.DEFAULT_PLAYER_PROBE_TIMEOUT
    monkeypatch.setenv(player_module.PLAYER_PROBE_TIMEOUT_ENV, "-1")
    assert player_module._probe_timeout_from_env() == player_module.DEFAULT_PLAYER_PROBE_TIMEOUT
