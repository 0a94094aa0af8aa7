import time

import requests
import structlog

from webdriver_transport import (
    Transport,
    TransportErrorCode,
    TransportRequest,
    TransportResult,
    TransportSession,
    classify_socket_error,
    content_length,
    empty_info,
)


class RequestsSession(TransportSession):
    def __init__(self, name: str):
        self._logger = structlog.getLogger(self.__class__.__name__)
        self._name = name
        self._session = requests.Session()
        # Only send the headers the request asks for
        self._session.headers.clear()

    def perform(self, request: TransportRequest) -> TransportResult:
        self._session.max_redirects = request.max_redirects if request.max_redirects is not None else requests.models.DEFAULT_REDIRECT_LIMIT

        headers: dict[str, str | None] = dict(request.sent_headers)
        for suppressed in request.suppressed_headers:
            headers[suppressed] = None

        with structlog.contextvars.bound_contextvars(method=request.method, url=request.url, http_library=self._name):
            self._logger.debug("Sending request", headers_supplied=sorted(request.sent_headers.keys()), body_size=len(request.body or b""))

            started = time.monotonic()
            try:
                response = self._session.request(
                    request.method,
                    request.url,
                    headers=headers,
                    data=request.body,
                    timeout=self._timeout(request),
                    verify=request.verify,
                    cert=request.cert,
                    proxies={"http": request.proxy, "https": request.proxy} if request.proxy else None,
                    allow_redirects=request.follow_redirects,
                    auth=request.auth,
                )
                raw_body = TransportResult.trim(response.text)
            except requests.exceptions.RequestException as exc:
                error_code = RequestsTransport.classify(exc)
                self._logger.debug("Request failed", error_code=error_code, error=str(exc))
                return TransportResult("", empty_info(request.url, time.monotonic() - started), error_code, str(exc) or exc.__class__.__name__)
            except OSError as exc:
                # Raised before sending when a CA bundle or client certificate path does not exist
                error_code = RequestsTransport.classify_os_error(exc)
                self._logger.debug("Request failed", error_code=error_code, error=str(exc))
                return TransportResult("", empty_info(request.url, time.monotonic() - started), error_code, str(exc) or exc.__class__.__name__)

            info = {
                "url": response.url,
                "http_code": response.status_code,
                "content_type": response.headers.get("Content-Type"),
                "redirect_count": len(response.history),
                "total_time": time.monotonic() - started,
                "size_upload": len(request.body or b""),
                "size_download": len(response.content),
                "download_content_length": content_length(response.headers.get("Content-Length")),
            }
            self._logger.debug("Response", headers_returned=sorted(response.headers.keys()), status_code=response.status_code)
            return TransportResult(raw_body, info)

    @staticmethod
    def _timeout(request: TransportRequest) -> float | tuple[float | None, float | None] | None:
        # Zero means wait forever, as it does for a socket timeout
        timeout = request.timeout or None
        if request.connect_timeout:
            return request.connect_timeout, timeout
        return timeout

    def close(self) -> None:
        self._session.close()


class RequestsTransport(Transport):
    name = "Requests"

    def open(self) -> TransportSession:
        return RequestsSession(self.name)

    @staticmethod
    def classify(exc: requests.exceptions.RequestException) -> TransportErrorCode:
        """Map a requests failure to the closest transport error code"""

        # Order matters: several of these are subclasses of ConnectionError
        match exc:
            case requests.exceptions.Timeout():
                return TransportErrorCode.OPERATION_TIMEDOUT
            case requests.exceptions.ProxyError():
                return TransportErrorCode.COULDNT_RESOLVE_PROXY
            case requests.exceptions.SSLError():
                return classify_socket_error(exc) or TransportErrorCode.SSL_CONNECT_ERROR
            case requests.exceptions.InvalidSchema():
                return TransportErrorCode.UNSUPPORTED_PROTOCOL
            case requests.exceptions.InvalidURL() | requests.exceptions.MissingSchema():
                return TransportErrorCode.URL_MALFORMAT
            case requests.exceptions.TooManyRedirects():
                return TransportErrorCode.TOO_MANY_REDIRECTS
            case requests.exceptions.ContentDecodingError():
                return TransportErrorCode.BAD_CONTENT_ENCODING
            case requests.exceptions.ChunkedEncodingError():
                return TransportErrorCode.RECV_ERROR
            case requests.exceptions.ConnectionError():
                return classify_socket_error(exc) or TransportErrorCode.COULDNT_CONNECT
            case _:
                return TransportErrorCode.SEND_ERROR

    @staticmethod
    def classify_os_error(exc: OSError) -> TransportErrorCode:
        """requests checks the 'verify' and 'cert' paths itself and raises a plain OSError"""

        if "CA certificate bundle" in str(exc):
            return TransportErrorCode.SSL_CACERT_BADFILE
        return TransportErrorCode.SSL_CERTPROBLEM
