"""Shared fixtures for Pitlane tests."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pitlane.config import Config
from pitlane.stripe_cli import StripeCLI


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def quiet_console():
    """Silence wizard output so tests only see what they assert on."""
    with patch("pitlane.setup.console.print"), \
         patch("pitlane.setup.console.rule"):
        yield


@pytest.fixture
def fake_cli():
    """Patch StripeCLI so no real ``stripe`` process is spawned.

    Defaults to installed, logged in, and minting ``whsec_test123``.
    Tweak the returned mocks per test.
    """
    with patch.object(StripeCLI, "is_installed", new=AsyncMock(return_value=True)) as installed, \
         patch.object(StripeCLI, "is_authenticated", new=AsyncMock(return_value=True)) as authed, \
         patch.object(StripeCLI, "print_webhook_secret", new=AsyncMock(return_value="whsec_test123")) as listen:
        yield MagicMock(is_installed=installed, is_authenticated=authed, print_webhook_secret=listen)


def make_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    """A stand-in for an asyncio.subprocess.Process."""
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    return proc
