import dataclasses as dc
import os

from dotenv import load_dotenv


class ConfigurationError(ValueError):
    pass


@dc.dataclass(slots=True, frozen=True)
class ExecutorConfig:
    default_socket_timeout: float = 60.0
    """Seconds allowed for the whole request. Zero waits forever."""

    connect_attempts: int = 10
    """How many times a 'could not connect' result is checked before giving up"""

    reissue_on_connect_failure: bool = False
    """Send the request again on each retry instead of re-checking the first result"""

    http_library: str = "requests"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.default_socket_timeout < 0:
            raise ConfigurationError(f"The default socket timeout can't be negative: {self.default_socket_timeout}")
        if self.connect_attempts < 1:
            raise ConfigurationError(f"At least one connect attempt is needed, got {self.connect_attempts}")

    @classmethod
    def from_environment(cls, dotenv_path: str | None = None) -> "ExecutorConfig":
        """Read the WEBDRIVER_* environment variables, after loading any .env file. Unset variables keep their defaults."""

        load_dotenv(dotenv_path)

        overrides: dict = {}

        timeout = os.environ.get("WEBDRIVER_DEFAULT_SOCKET_TIMEOUT")
        if timeout:
            overrides["default_socket_timeout"] = cls._parse(float, "WEBDRIVER_DEFAULT_SOCKET_TIMEOUT", timeout)

        attempts = os.environ.get("WEBDRIVER_CONNECT_ATTEMPTS")
        if attempts:
            overrides["connect_attempts"] = cls._parse(int, "WEBDRIVER_CONNECT_ATTEMPTS", attempts)

        if os.environ.get("WEBDRIVER_REISSUE_ON_CONNECT_FAILURE") == "1":
            overrides["reissue_on_connect_failure"] = True

        http_library = os.environ.get("WEBDRIVER_HTTP_LIBRARY")
        if http_library:
            overrides["http_library"] = http_library

        log_level = os.environ.get("WEBDRIVER_LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.upper()

        return cls(**overrides)

    @staticmethod
    def _parse(convert, name: str, value: str):
        try:
            return convert(value)
        except ValueError as exc:
            raise ConfigurationError(f"Please provide a valid value for '{name}', got '{value}'") from exc
