import os
from typing import Any, Callable, List

import httpx
import pytest
from typer.testing import CliRunner

from fetchkit.infrastructure.cli.display import ConsoleDisplay
from fetchkit.infrastructure.config import settings


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def recorded_requests() -> List[httpx.Request]:
    """Requests seen by the mock transport, in order."""
    return []


@pytest.fixture
def mock_transport_factory(recorded_requests: List[httpx.Request]):
    """Builds an httpx.MockTransport that records every request it serves."""

    def factory(handler: Callable[[httpx.Request], Any]) -> httpx.MockTransport:
        async def recording_handler(request: httpx.Request):
            recorded_requests.append(request)
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result

        return httpx.MockTransport(recording_handler)

    return factory


@pytest.fixture
def sleep_calls() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleep_calls: List[float]):
    """Awaitable replacement for asyncio.sleep that records requested delays."""

    async def sleep(delay: float) -> None:
        sleep_calls.append(delay)

    return sleep


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay where the CLI composition root builds it."""
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch("fetchkit.main.ConsoleDisplay", return_value=mock)
    return mock


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests independent of the developer's config files and environment."""
    monkeypatch.setenv("FETCHKIT_CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX) and name != "FETCHKIT_CONFIG_FILE":
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()

