import json
from collections.abc import Mapping
from typing import Any

import structlog

from webdriver_exception import InvalidRequestError
from webdriver_transport import TransportRequest

JSON_CONTENT_TYPE = "application/json;charset=UTF-8"


class RequestBuilder:
    """Turns a WebDriver command into the request a transport sends"""

    def __init__(self, default_socket_timeout: float):
        self._logger = structlog.getLogger(self.__class__.__name__)
        self._default_socket_timeout = default_socket_timeout

    @staticmethod
    def has_json_parameters(parameters: Any) -> bool:
        """Only non-empty JSON containers become a request body. Scalars are left for the caller to put in the URL."""
        return isinstance(parameters, (Mapping, list, tuple)) and bool(parameters)

    @staticmethod
    def encode_parameters(parameters: Mapping | list | tuple) -> str:
        return json.dumps(parameters, separators=(",", ":"))

    def build(self, method: str, url: str, parameters: Any = None, extra_options: Mapping[str, Any] | None = None) -> TransportRequest:
        headers = [
            ("Content-Type", JSON_CONTENT_TYPE),
            ("Accept", JSON_CONTENT_TYPE),
        ]

        options: dict[str, Any] = {"url": url, "timeout": self._default_socket_timeout}

        match method:
            case "GET":
                pass
            case "POST" | "PUT":
                if self.has_json_parameters(parameters):
                    try:
                        options["body"] = self.encode_parameters(parameters).encode("utf-8")
                    except (TypeError, ValueError) as exc:
                        raise InvalidRequestError(f"Parameters for http {method} to {url} can't be sent as JSON: {exc}") from exc
                else:
                    headers.append(("Content-Length", "0"))

                # Stop the HTTP library negotiating "Expect: 100-continue", which stalls servers that don't support it
                headers.append(("Expect", ""))

                options["method"] = method
            case "DELETE":
                options["method"] = "DELETE"
            case _:
                self._logger.debug("Unknown request method sent as GET", method=method)

        for name, value in (extra_options or {}).items():
            if name not in TransportRequest.option_names():
                raise InvalidRequestError(f"Unknown request option '{name}'. Expected one of: {', '.join(sorted(TransportRequest.option_names()))}")
            options[name] = value

        if "headers" in options:
            self._logger.debug("Request headers option replaced by the JSON headers", supplied=options["headers"])
        options["headers"] = headers

        return TransportRequest(**options)
