import dataclasses as dc
import http.client
import socket
import ssl
from collections.abc import Iterator
from enum import IntEnum
from typing import Any

from webdriver_exception import InvalidRequestError


class TransportErrorCode(IntEnum):
    """Transport failures, numbered after the matching libcurl error codes"""

    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    TOO_MANY_REDIRECTS = 47
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56
    SSL_CERTPROBLEM = 58
    PEER_FAILED_VERIFICATION = 60
    BAD_CONTENT_ENCODING = 61
    SSL_CACERT_BADFILE = 77


class CertificateFileError(OSError):
    """A CA bundle or client certificate file could not be loaded before sending"""

    def __init__(self, error_code: TransportErrorCode, message: str):
        super().__init__(message)
        self.error_code = error_code


@dc.dataclass(slots=True)
class TransportRequest:
    """Everything a transport needs to send one request. Overridable by name through the executor's extra options."""

    url: str
    method: str = "GET"
    headers: list[tuple[str, str]] = dc.field(default_factory=list)
    """Sent in order. An empty value suppresses a header the library would otherwise add."""
    body: bytes | None = None
    timeout: float | None = None
    connect_timeout: float | None = None
    verify: bool | str = True
    cert: str | tuple[str, str] | None = None
    proxy: str | None = None
    follow_redirects: bool = False
    max_redirects: int | None = None
    auth: tuple[str, str] | None = None

    def __post_init__(self) -> None:
        self.validate()

    @staticmethod
    def option_names() -> frozenset[str]:
        return frozenset(field.name for field in dc.fields(TransportRequest))

    def validate(self) -> None:
        if not isinstance(self.url, str):
            raise InvalidRequestError(f"Expected a string URL, got {type(self.url).__name__}")

        if not isinstance(self.method, str) or not self.method:
            raise InvalidRequestError(f"Expected a non-empty HTTP method, got {self.method!r}")

        for header in self.headers:
            if not (isinstance(header, tuple) and len(header) == 2 and all(isinstance(part, str) for part in header)):
                raise InvalidRequestError(f"Headers must be (name, value) string pairs, got {header!r}")

        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if self.body is not None and not isinstance(self.body, bytes):
            raise InvalidRequestError(f"Expected a bytes body, got {type(self.body).__name__}")

        for name in ("timeout", "connect_timeout"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise InvalidRequestError(f"Expected '{name}' to be a non-negative number of seconds, got {value!r}")

        if self.max_redirects is not None and (not isinstance(self.max_redirects, int) or self.max_redirects < 0):
            raise InvalidRequestError(f"Expected 'max_redirects' to be a non-negative integer, got {self.max_redirects!r}")

    @property
    def sent_headers(self) -> dict[str, str]:
        """Headers to put on the wire, with suppression entries removed"""
        return {name: value for name, value in self.headers if value}

    @property
    def suppressed_headers(self) -> list[str]:
        return [name for name, value in self.headers if not value]


@dc.dataclass(slots=True)
class TransportResult:
    raw_body: str
    info: dict[str, Any]
    error_code: TransportErrorCode = TransportErrorCode.OK
    error_message: str = ""

    @property
    def failed(self) -> bool:
        return self.error_code != TransportErrorCode.OK

    @staticmethod
    def trim(text: str | None) -> str:
        # Same character set as PHP's trim()
        return (text or "").strip(" \t\n\r\0\x0b")


def empty_info(url: str, total_time: float = 0.0) -> dict[str, Any]:
    return {
        "url": url,
        "http_code": 0,
        "content_type": None,
        "redirect_count": 0,
        "total_time": total_time,
        "size_upload": 0,
        "size_download": 0,
        "download_content_length": -1,
    }


def content_length(value: str | None) -> int:
    """-1 when the response did not declare its length"""
    try:
        return int(value) if value is not None else -1
    except ValueError:
        return -1


def exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Walk the causes of an exception, including the 'reason' urllib3 hangs underlying errors on"""

    seen: set[int] = set()
    pending: list[BaseException] = [exc]
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        for linked in (current.__cause__, current.__context__, getattr(current, "reason", None), *current.args):
            if isinstance(linked, BaseException):
                pending.append(linked)


def classify_socket_error(exc: BaseException) -> TransportErrorCode | None:
    """Look through the exception chain for the operating system level failure"""

    for cause in exception_chain(exc):
        match cause:
            case ssl.SSLCertVerificationError():
                return TransportErrorCode.PEER_FAILED_VERIFICATION
            case ssl.SSLError():
                return TransportErrorCode.SSL_CONNECT_ERROR
            case socket.gaierror():
                return TransportErrorCode.COULDNT_RESOLVE_HOST
            case http.client.RemoteDisconnected():
                return TransportErrorCode.GOT_NOTHING
            case ConnectionRefusedError():
                return TransportErrorCode.COULDNT_CONNECT
            case TimeoutError():
                return TransportErrorCode.OPERATION_TIMEDOUT
            case ConnectionResetError() | ConnectionAbortedError():
                return TransportErrorCode.RECV_ERROR
    return None


class TransportSession:
    """One scoped client, opened for a single executor call and closed when it completes"""

    def perform(self, request: TransportRequest) -> TransportResult:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "TransportSession":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class Transport:
    name = "Transport"
    """Used as the error kind in messages, e.g. 'Requests error thrown for http GET to ...'"""

    def open(self) -> TransportSession:
        raise NotImplementedError
