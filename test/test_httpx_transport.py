import socket
import ssl

import httpx
import pytest

from webdriver_config import ExecutorConfig
from webdriver_exception import TransportExecutionError
from webdriver_httpx import HttpxTransport
from webdriver_service import HttpExecutor
from webdriver_transport import TransportErrorCode, TransportRequest


class RecordingHandler:
    """Stands in for a WebDriver server. Records each request and replies, or raises, as told."""

    def __init__(self, *replies):
        self.replies = list(replies) or [httpx.Response(200, json={"value": None})]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def _executor(handler: RecordingHandler, config: ExecutorConfig | None = None) -> HttpExecutor:
    return HttpExecutor(HttpxTransport(http2=False, transport=httpx.MockTransport(handler)), config)


def test_post_is_sent_with_json_headers():
    handler = RecordingHandler(httpx.Response(200, text='\n{"value":{"sessionId":"abc"}}\n', headers={"Content-Type": "application/json;charset=utf-8"}))

    raw_body, info = _executor(handler).execute("POST", "http://h/session", {"desiredCapabilities": {}})

    assert raw_body == '{"value":{"sessionId":"abc"}}'
    assert info["http_code"] == 200
    assert info["content_type"] == "application/json;charset=utf-8"
    assert info["url"] == "http://h/session"

    sent = handler.requests[0]
    assert sent.method == "POST"
    assert sent.content == b'{"desiredCapabilities":{}}'
    assert sent.headers["Content-Type"] == "application/json;charset=UTF-8"
    assert sent.headers["Accept"] == "application/json;charset=UTF-8"
    assert "Expect" not in sent.headers


def test_post_without_parameters_sends_zero_length():
    handler = RecordingHandler()

    _executor(handler).execute("POST", "http://h/session/abc/refresh")

    sent = handler.requests[0]
    assert sent.content == b""
    assert sent.headers["Content-Length"] == "0"


def test_delete_has_no_body():
    handler = RecordingHandler()

    _executor(handler).execute("DELETE", "http://h/session/abc", {"ignored": True})

    sent = handler.requests[0]
    assert sent.method == "DELETE"
    assert sent.content == b""


def test_error_status_is_returned():
    handler = RecordingHandler(httpx.Response(500, json={"value": {"error": "unknown error", "message": "boom"}}))

    raw_body, info = _executor(handler).execute("GET", "http://h/session/abc/title")

    assert info["http_code"] == 500
    assert '"unknown error"' in raw_body


def test_redirects_are_not_followed_by_default():
    handler = RecordingHandler(httpx.Response(303, headers={"Location": "http://h/session/abc"}))

    _, info = _executor(handler).execute("POST", "http://h/session", {"desiredCapabilities": {}})

    assert info["http_code"] == 303
    assert len(handler.requests) == 1


def test_redirects_can_be_followed():
    handler = RecordingHandler(httpx.Response(302, headers={"Location": "http://h/status"}), httpx.Response(200, json={"value": {"ready": True}}))

    _, info = _executor(handler).execute("GET", "http://h/", None, {"follow_redirects": True})

    assert info["http_code"] == 200
    assert info["redirect_count"] == 1
    assert info["url"] == "http://h/status"


def test_could_not_connect_is_not_raised():
    handler = RecordingHandler(httpx.ConnectError("[Errno 111] Connection refused"))

    raw_body, info = _executor(handler).execute("GET", "http://h/status")

    assert raw_body == ""
    assert info["http_code"] == 0
    assert len(handler.requests) == 1


def test_could_not_connect_is_reissued_when_configured():
    handler = RecordingHandler(httpx.ConnectError("[Errno 111] Connection refused"), httpx.ConnectError("[Errno 111] Connection refused"), httpx.Response(200, text="ready"))

    raw_body, _ = _executor(handler, ExecutorConfig(reissue_on_connect_failure=True)).execute("GET", "http://h/status")

    assert raw_body == "ready"
    assert len(handler.requests) == 3


def test_timeout_is_fatal():
    handler = RecordingHandler(httpx.ReadTimeout("timed out"))

    with pytest.raises(TransportExecutionError) as raised:
        _executor(handler).execute("POST", "http://h/session/abc/url", {"url": "https://example.com"})

    assert raised.value.message == 'HTTPX error thrown for http POST to http://h/session/abc/url with params: {"url":"https://example.com"}\n\ntimed out'


def test_empty_reply_is_not_an_error():
    handler = RecordingHandler(httpx.RemoteProtocolError("Server disconnected without sending a response."))

    raw_body, info = _executor(handler).execute("DELETE", "http://h/session/abc")

    assert raw_body == ""
    assert info["http_code"] == 0


def test_refused_connection_is_classified(refused_url: str):
    with HttpxTransport(http2=False).open() as session:
        result = session.perform(TransportRequest(refused_url, timeout=5))

    assert result.error_code == TransportErrorCode.COULDNT_CONNECT
    assert result.info["http_code"] == 0


def test_relative_url_is_fatal():
    with pytest.raises(TransportExecutionError, match="HTTPX error thrown for http GET to /status"):
        HttpExecutor(HttpxTransport(http2=False)).execute("GET", "/status")


@pytest.mark.parametrize(
    "options, expected",
    [
        ({"verify": "/nonexistent/ca.pem"}, TransportErrorCode.SSL_CACERT_BADFILE),
        ({"cert": "/nonexistent/client.pem"}, TransportErrorCode.SSL_CERTPROBLEM),
        ({"cert": ("/nonexistent/client.pem", "/nonexistent/client.key")}, TransportErrorCode.SSL_CERTPROBLEM),
    ],
)
def test_missing_certificate_file_is_classified(options: dict, expected: TransportErrorCode):
    handler = RecordingHandler()

    with HttpxTransport(http2=False, transport=httpx.MockTransport(handler)).open() as session:
        result = session.perform(TransportRequest("https://h/status", **options))

    assert result.error_code == expected
    assert "/nonexistent/" in result.error_message
    assert result.info["http_code"] == 0
    assert handler.requests == []


def test_missing_certificate_file_is_fatal():
    handler = RecordingHandler()

    with pytest.raises(TransportExecutionError) as raised:
        _executor(handler).execute("GET", "https://h/status", None, {"cert": "/nonexistent/client.pem"})

    assert raised.value.message.startswith("HTTPX error thrown for http GET to https://h/status\n\nCould not load client certificate /nonexistent/client.pem")
    assert handler.requests == []


def test_session_is_closed():
    transport = HttpxTransport(http2=False, transport=httpx.MockTransport(RecordingHandler()))
    session = transport.open()
    session.perform(TransportRequest("http://h/status"))
    client = session._client

    session.close()

    assert client.is_closed
    session.close()


def _connect_error_caused_by(cause: BaseException) -> httpx.ConnectError:
    try:
        raise cause
    except BaseException as inner:
        error = httpx.ConnectError(str(inner))
        error.__cause__ = inner
        return error


@pytest.mark.parametrize(
    "exc, expected",
    [
        (httpx.ConnectTimeout("timed out"), TransportErrorCode.OPERATION_TIMEDOUT),
        (httpx.PoolTimeout("timed out"), TransportErrorCode.OPERATION_TIMEDOUT),
        (httpx.ProxyError("proxy refused"), TransportErrorCode.COULDNT_RESOLVE_PROXY),
        (httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'"), TransportErrorCode.UNSUPPORTED_PROTOCOL),
        (httpx.InvalidURL("Invalid port"), TransportErrorCode.URL_MALFORMAT),
        (httpx.ConnectError("refused"), TransportErrorCode.COULDNT_CONNECT),
        (_connect_error_caused_by(socket.gaierror(-2, "Name or service not known")), TransportErrorCode.COULDNT_RESOLVE_HOST),
        (_connect_error_caused_by(ssl.SSLCertVerificationError("certificate verify failed")), TransportErrorCode.PEER_FAILED_VERIFICATION),
        (_connect_error_caused_by(ssl.SSLError("wrong version number")), TransportErrorCode.SSL_CONNECT_ERROR),
        (httpx.RemoteProtocolError("Server disconnected without sending a response."), TransportErrorCode.GOT_NOTHING),
        (httpx.RemoteProtocolError("illegal header"), TransportErrorCode.RECV_ERROR),
        (httpx.ReadError("reset"), TransportErrorCode.RECV_ERROR),
        (httpx.WriteError("broken pipe"), TransportErrorCode.SEND_ERROR),
        (httpx.DecodingError("bad gzip"), TransportErrorCode.BAD_CONTENT_ENCODING),
        (httpx.TooManyRedirects("too many"), TransportErrorCode.TOO_MANY_REDIRECTS),
    ],
)
def test_classify(exc: Exception, expected: TransportErrorCode):
    assert HttpxTransport.classify(exc) == expected
