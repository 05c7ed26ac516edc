"""Configuration tests."""

from pathlib import Path

import pytest

from spook.command import CommandSpec
from spook.config import (
    DEFAULT_EVENT_NAME,
    DEFAULT_EVENT_PORT,
    DEFAULT_NOTIFY_PERIOD_MS,
    BroadcastConfig,
    Settings,
    load_settings,
)
from spook.errors import ConfigError


def test_defaults(settings: Settings) -> None:
    """Unset options fall back to the documented defaults."""
    defaults = load_settings(watched_paths=settings.watched_paths, signal=True, _env_file=None)

    assert defaults.event_name == DEFAULT_EVENT_NAME == "update"
    assert defaults.port == DEFAULT_EVENT_PORT == 2133
    assert defaults.notify_period_ms == DEFAULT_NOTIFY_PERIOD_MS == 1000
    assert defaults.verbose is False
    assert defaults.init is False
    assert defaults.command_spec is None


def test_broadcast_and_command_derivation(watched_dir: Path) -> None:
    """Command and broadcast target are derived from the flat settings."""
    settings = load_settings(
        watched_paths=[str(watched_dir)],
        command=["make", "-C", "docs", "html"],
        signal=True,
        event_name="reload",
        port=4000,
        _env_file=None,
    )

    assert settings.command_spec == CommandSpec(program="make", args=("-C", "docs", "html"))
    assert settings.broadcast == BroadcastConfig(name="reload", port=4000)


def test_no_broadcast_without_signal(watched_dir: Path) -> None:
    """Server events are off unless requested."""
    settings = load_settings(watched_paths=[str(watched_dir)], command=["make"], _env_file=None)
    assert settings.broadcast is None


def test_watch_targets_recurse_into_directories_only(watched_dir: Path) -> None:
    """Directories are watched recursively, files on their own."""
    file_path = str(watched_dir / "index.html")
    settings = load_settings(watched_paths=[str(watched_dir), file_path], signal=True, _env_file=None)

    assert [(t.path, t.recursive) for t in settings.watch_targets] == [
        (str(watched_dir), True),
        (file_path, False),
    ]


def test_command_or_signal_required(watched_dir: Path) -> None:
    """There must be something to do on change."""
    with pytest.raises(ConfigError) as exc_info:
        load_settings(watched_paths=[str(watched_dir)], _env_file=None)

    assert str(exc_info.value) == "a command to run is required unless --signal is given"


def test_paths_required() -> None:
    """At least one path must be watched."""
    with pytest.raises(ConfigError):
        load_settings(signal=True, _env_file=None)


@pytest.mark.parametrize("port", [0, 80, 1023, 65536])
def test_port_out_of_range(watched_dir: Path, port: int) -> None:
    """Privileged and invalid ports are rejected."""
    with pytest.raises(ConfigError) as exc_info:
        load_settings(watched_paths=[str(watched_dir)], signal=True, port=port, _env_file=None)

    assert str(exc_info.value) == "the port should be a number in the range 1024-65535"


@pytest.mark.parametrize("port", [1024, 65535])
def test_port_bounds_accepted(watched_dir: Path, port: int) -> None:
    """The range bounds are inclusive."""
    settings = load_settings(watched_paths=[str(watched_dir)], signal=True, port=port, _env_file=None)
    assert settings.port == port


@pytest.mark.parametrize("period", [99, 3_600_001])
def test_period_out_of_range(watched_dir: Path, period: int) -> None:
    """Debounce periods outside 100ms-1h are rejected."""
    with pytest.raises(ConfigError) as exc_info:
        load_settings(
            watched_paths=[str(watched_dir)],
            signal=True,
            notify_period_ms=period,
            _env_file=None,
        )

    assert "100-3600000ms" in str(exc_info.value)


@pytest.mark.parametrize("name", ["", "up\ndate", "up\rdate"])
def test_event_name_must_be_one_line(watched_dir: Path, name: str) -> None:
    """Event names are written on a single SSE field line."""
    with pytest.raises(ConfigError):
        load_settings(watched_paths=[str(watched_dir)], signal=True, event_name=name, _env_file=None)


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, watched_dir: Path) -> None:
    """SPOOK_* variables configure options not given explicitly."""
    monkeypatch.setenv("SPOOK_PORT", "4321")
    monkeypatch.setenv("SPOOK_SIGNAL", "true")
    monkeypatch.setenv("SPOOK_EVENT_NAME", "refresh")

    settings = load_settings(watched_paths=[str(watched_dir)], _env_file=None)

    assert settings.broadcast == BroadcastConfig(name="refresh", port=4321)


def test_ignore_patterns_parsing(watched_dir: Path) -> None:
    """Ignore patterns are a comma-separated list."""
    settings = load_settings(
        watched_paths=[str(watched_dir)],
        signal=True,
        ignore_patterns_raw=" .swp, ~ ,,.bak",
        _env_file=None,
    )
    assert settings.ignore_patterns == [".swp", "~", ".bak"]
