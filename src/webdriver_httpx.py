import ssl
import time

import httpx
import structlog

from webdriver_transport import (
    CertificateFileError,
    Transport,
    TransportErrorCode,
    TransportRequest,
    TransportResult,
    TransportSession,
    classify_socket_error,
    content_length,
    empty_info,
)


class HttpxSession(TransportSession):
    def __init__(self, name: str, http2: bool, transport: httpx.BaseTransport | None = None):
        self._logger = structlog.getLogger(self.__class__.__name__)
        self._name = name
        self._http2 = http2
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self, request: TransportRequest) -> httpx.Client:
        """Client level settings come from the first request performed in this session"""
        if self._client is None:
            redirects = {} if request.max_redirects is None else {"max_redirects": request.max_redirects}
            self._client = httpx.Client(
                http2=self._http2,
                transport=self._transport,
                timeout=httpx.Timeout(request.timeout or None, connect=request.connect_timeout or request.timeout or None),
                verify=HttpxSession._ssl_context(request),
                proxy=request.proxy,
                auth=request.auth,
                follow_redirects=request.follow_redirects,
                **redirects,
            )
        return self._client

    @staticmethod
    def _ssl_context(request: TransportRequest) -> ssl.SSLContext | bool:
        if request.cert is None and isinstance(request.verify, bool):
            return request.verify

        try:
            ctx = ssl.create_default_context(cafile=request.verify if isinstance(request.verify, str) else None)
        except OSError as exc:
            raise CertificateFileError(TransportErrorCode.SSL_CACERT_BADFILE, f"Could not load CA certificate bundle {request.verify}: {exc}") from exc
        if request.verify is False:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE

        if request.cert:
            certfile, keyfile = request.cert if isinstance(request.cert, tuple) else (request.cert, None)
            try:
                ctx.load_cert_chain(certfile, keyfile)
            except OSError as exc:
                raise CertificateFileError(TransportErrorCode.SSL_CERTPROBLEM, f"Could not load client certificate {certfile}: {exc}") from exc

        return ctx

    def perform(self, request: TransportRequest) -> TransportResult:

        with structlog.contextvars.bound_contextvars(method=request.method, url=request.url, http_library=self._name):
            self._logger.debug("Sending request", headers_supplied=sorted(request.sent_headers.keys()), body_size=len(request.body or b""))

            started = time.monotonic()
            try:
                client = self._get_client(request)
                outgoing = client.build_request(request.method, request.url, headers=request.sent_headers, content=request.body)
                for suppressed in request.suppressed_headers:
                    outgoing.headers.pop(suppressed, None)

                response = client.send(outgoing)
                raw_body = TransportResult.trim(response.text)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                error_code = HttpxTransport.classify(exc)
                self._logger.debug("Request failed", error_code=error_code, error=str(exc))
                return TransportResult("", empty_info(request.url, time.monotonic() - started), error_code, str(exc) or exc.__class__.__name__)
            except OSError as exc:
                error_code = exc.error_code if isinstance(exc, CertificateFileError) else classify_socket_error(exc) or TransportErrorCode.SEND_ERROR
                self._logger.debug("Request failed", error_code=error_code, error=str(exc))
                return TransportResult("", empty_info(request.url, time.monotonic() - started), error_code, str(exc) or exc.__class__.__name__)

            info = {
                "url": str(response.url),
                "http_code": response.status_code,
                "content_type": response.headers.get("Content-Type"),
                "redirect_count": len(response.history),
                "total_time": time.monotonic() - started,
                "size_upload": len(request.body or b""),
                "size_download": len(response.content),
                "download_content_length": content_length(response.headers.get("Content-Length")),
            }
            self._logger.debug("Response", headers_returned=sorted(response.headers.keys()), status_code=response.status_code, http_version=response.http_version)
            return TransportResult(raw_body, info)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class HttpxTransport(Transport):
    name = "HTTPX"

    def __init__(self, http2: bool = True, transport: httpx.BaseTransport | None = None):
        """'transport' replaces the network layer, e.g. with httpx.MockTransport"""
        self._http2 = http2
        self._transport = transport

    def open(self) -> TransportSession:
        return HttpxSession(self.name, self._http2, self._transport)

    @staticmethod
    def classify(exc: Exception) -> TransportErrorCode:
        """Map an httpx failure to the closest transport error code"""

        match exc:
            case httpx.TimeoutException():
                return TransportErrorCode.OPERATION_TIMEDOUT
            case httpx.ProxyError():
                return TransportErrorCode.COULDNT_RESOLVE_PROXY
            case httpx.UnsupportedProtocol():
                return TransportErrorCode.UNSUPPORTED_PROTOCOL
            case httpx.InvalidURL():
                return TransportErrorCode.URL_MALFORMAT
            case httpx.ConnectError():
                return classify_socket_error(exc) or TransportErrorCode.COULDNT_CONNECT
            case httpx.RemoteProtocolError() if "without sending a response" in str(exc):
                return TransportErrorCode.GOT_NOTHING
            case httpx.TooManyRedirects():
                return TransportErrorCode.TOO_MANY_REDIRECTS
            case httpx.DecodingError():
                return TransportErrorCode.BAD_CONTENT_ENCODING
            case httpx.ReadError() | httpx.RemoteProtocolError():
                return TransportErrorCode.RECV_ERROR
            case _:
                return TransportErrorCode.SEND_ERROR
