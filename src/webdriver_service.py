import contextlib
from collections.abc import Mapping
from typing import Any

import structlog

from decorators import Decorators
from observability.tracing import Tracing
from webdriver_config import ExecutorConfig
from webdriver_exception import WebDriverException
from webdriver_request import RequestBuilder
from webdriver_transport import Transport, TransportErrorCode, TransportRequest, TransportResult, TransportSession


class ServiceInterface:
    """What a WebDriver client needs from its HTTP layer"""

    def execute(self, method: str, url: str, parameters: Any = None, extra_options: Mapping[str, Any] | None = None) -> tuple[str, dict[str, Any]]:
        """
        Send a WebDriver command.

        Returns the trimmed response body and the transport info (http_code, total_time, ...).
        Raises TransportExecutionError when the request could not be completed.
        """
        raise NotImplementedError


class HttpExecutor(ServiceInterface):
    def __init__(self, transport: Transport, config: ExecutorConfig | None = None):
        self._logger = structlog.getLogger(self.__class__.__name__)
        self._transport = transport
        self._config = config or ExecutorConfig()
        self._builder = RequestBuilder(self._config.default_socket_timeout)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    @Tracing.traced
    @Decorators.add_request_to_logging_context
    @Decorators.log_invocation_with_scalar_args
    def execute(self, method: str, url: str, parameters: Any = None, extra_options: Mapping[str, Any] | None = None) -> tuple[str, dict[str, Any]]:
        request = self.create_request(method, url, parameters, extra_options)

        with contextlib.closing(self._transport.open()) as session:
            result = self.process(session, request)

            success = False
            limit = self._config.connect_attempts
            attempt = 0

            while not success and attempt < limit:
                attempt += 1
                try:
                    self.handle_response(result, method, url, parameters)
                    success = True
                except WebDriverException:
                    if result.error_code != TransportErrorCode.COULDNT_CONNECT:
                        self._logger.debug("Transport error is not retryable", error_code=result.error_code, attempt=attempt)
                        raise

                    self._logger.info("Could not connect", attempt=attempt, limit=limit)
                    if self._config.reissue_on_connect_failure and attempt < limit:
                        result = self.process(session, request)

            if not success:
                # The caller still gets the captured result, as though it succeeded
                self._logger.warning("Gave up waiting to connect", attempts=attempt, error=result.error_message)

        return result.raw_body, result.info

    def create_request(self, method: str, url: str, parameters: Any = None, extra_options: Mapping[str, Any] | None = None) -> TransportRequest:
        return self._builder.build(method, url, parameters, extra_options)

    def process(self, session: TransportSession, request: TransportRequest) -> TransportResult:
        result = session.perform(request)
        self._logger.debug("Processed", http_code=result.info.get("http_code"), error_code=result.error_code, total_time=result.info.get("total_time"))
        return result

    def handle_response(self, result: TransportResult, method: str, url: str, parameters: Any = None) -> None:
        """Raise if the transport failed. A server that closed the connection without a response is not treated as a failure."""

        if result.error_code != TransportErrorCode.GOT_NOTHING and result.error_message:
            message = f"{self._transport.name} error thrown for http {method} to {url}"
            if RequestBuilder.has_json_parameters(parameters):
                try:
                    encoded = RequestBuilder.encode_parameters(parameters)
                except (TypeError, ValueError):
                    # GET and DELETE parameters are never encoded, so they may not be JSON
                    encoded = repr(parameters)
                message += f" with params: {encoded}"

            raise WebDriverException.factory(WebDriverException.TRANSPORT_EXEC, f"{message}\n\n{result.error_message}")
