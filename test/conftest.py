import os
import socket

import pytest

from webdriver_transport import (
    Transport,
    TransportErrorCode,
    TransportRequest,
    TransportResult,
    TransportSession,
    empty_info,
)

ENVIRONMENT_VARIABLES = [
    "WEBDRIVER_DEFAULT_SOCKET_TIMEOUT",
    "WEBDRIVER_CONNECT_ATTEMPTS",
    "WEBDRIVER_REISSUE_ON_CONNECT_FAILURE",
    "WEBDRIVER_HTTP_LIBRARY",
    "WEBDRIVER_LOG_LEVEL",
]


class ScriptedSession(TransportSession):
    def __init__(self, transport: "ScriptedTransport"):
        self._transport = transport
        self.closed = False

    def perform(self, request: TransportRequest) -> TransportResult:
        self._transport.performed.append(request)
        results = self._transport.results
        # Keep returning the last result once the script runs out
        return results.pop(0) if len(results) > 1 else results[0]

    def close(self) -> None:
        self.closed = True


class ScriptedTransport(Transport):
    """Returns prepared results instead of touching the network"""

    name = "Scripted"

    def __init__(self, *results: TransportResult):
        self.results = list(results) or [ok_result()]
        self.performed: list[TransportRequest] = []
        self.sessions: list[ScriptedSession] = []

    def open(self) -> TransportSession:
        session = ScriptedSession(self)
        self.sessions.append(session)
        return session


def ok_result(body: str = '{"value":null}', http_code: int = 200) -> TransportResult:
    info = empty_info("http://localhost:4444/session", 0.01) | {"http_code": http_code, "content_type": "application/json;charset=utf-8"}
    return TransportResult(body, info)


def failed_result(error_code: TransportErrorCode, error_message: str = "Failed") -> TransportResult:
    return TransportResult("", empty_info("http://localhost:4444/session"), error_code, error_message)


@pytest.fixture
def scripted_transport() -> type[ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def refused_url() -> str:
    """A local URL nothing is listening on, so connecting is refused straight away"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/session"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    """Make sure the developer's own settings don't leak into the tests. Anything set during a test is removed afterwards."""
    for name in ENVIRONMENT_VARIABLES:
        monkeypatch.setenv(name, os.environ.get(name, ""))
        monkeypatch.delenv(name)
    yield
