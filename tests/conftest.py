"""Pytest configuration and fixtures."""

import asyncio
import sys
from collections.abc import Callable
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from spook.broadcast import SubscriberRegistry
from spook.config import BroadcastConfig, Settings


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    """Create a directory with one watched file."""
    (tmp_path / "index.html").write_text("<p>hello</p>")
    return tmp_path


@pytest.fixture
def settings(watched_dir: Path) -> Settings:
    """Create broadcast-enabled test settings."""
    return Settings(
        watched_paths=[str(watched_dir)],
        signal=True,
        port=8765,
        _env_file=None,
    )


@pytest.fixture
def registry() -> SubscriberRegistry:
    """Create an empty subscriber registry."""
    return SubscriberRegistry()


@pytest.fixture
def broadcast_config() -> BroadcastConfig:
    """Broadcast target on an OS-assigned port."""
    return BroadcastConfig(name="update", port=0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate holds or fail after timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def until() -> Callable[..., object]:
    """Expose the wait_until helper to tests."""
    return wait_until
