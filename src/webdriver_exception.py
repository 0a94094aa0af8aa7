class WebDriverException(Exception):
    """Base class for errors raised to the WebDriver client"""

    TRANSPORT_EXEC = -1
    INVALID_REQUEST = -6

    def __init__(self, message: str | None = None, code: int | None = None):
        if code is not None and not isinstance(code, int):
            raise TypeError("Expected integer WebDriver error code")
        if code is not None:
            self._code = code
        if not message:
            message = self.default_message
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> int:
        return getattr(self, "_code", self.expected_code)

    @property
    def expected_code(self) -> int:
        return 0

    @property
    def default_message(self) -> str:
        return "WebDriver exception"

    @staticmethod
    def factory(code: int, message: str | None = None) -> "WebDriverException":
        """Build the exception matching a WebDriver error code. Unknown codes produce the base class with the code attached."""

        match code:
            case WebDriverException.TRANSPORT_EXEC:
                return TransportExecutionError(message)
            case WebDriverException.INVALID_REQUEST:
                return InvalidRequestError(message)
            case _:
                return WebDriverException(message, code)


class TransportExecutionError(WebDriverException):
    """The HTTP transport failed to deliver the request or receive a response"""

    @property
    def expected_code(self) -> int:
        return WebDriverException.TRANSPORT_EXEC

    @property
    def default_message(self) -> str:
        return "Transport execution failed"


class InvalidRequestError(WebDriverException, ValueError):
    """The request could not be assembled from the supplied options"""

    @property
    def expected_code(self) -> int:
        return WebDriverException.INVALID_REQUEST

    @property
    def default_message(self) -> str:
        return "Invalid request"
