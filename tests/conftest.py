"""
pytest configuration and fixtures.
"""

from typing import List

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from routechain import Router, Server, ServerConfig
from routechain.http import Response


@pytest.fixture
def response() -> Response:
    """A fresh, unsent response."""
    return Response()


@pytest.fixture
def router() -> Router:
    """Router with default configuration."""
    return Router()


@pytest.fixture
def server() -> Server:
    """In-process server accepting every known verb."""
    return Server(ServerConfig(log_level="WARNING"))


@pytest.fixture
def get_only_server() -> Server:
    """In-process server that only speaks GET."""
    return Server(ServerConfig(supported_methods=("GET",), log_level="WARNING"))


class DoneRecorder:
    """Completion callback that records every call."""

    def __init__(self):
        self.calls: List[object] = []

    def __call__(self, error=None):
        self.calls.append(error)

    @property
    def called(self) -> bool:
        return bool(self.calls)

    @property
    def error(self):
        return self.calls[-1] if self.calls else None


@pytest.fixture
def done() -> DoneRecorder:
    """Records calls to a dispatch's completion callback."""
    return DoneRecorder()
