import structlog

from observability.app_logging import AppLogging
from webdriver_config import ExecutorConfig
from webdriver_service import HttpExecutor, ServiceInterface
from webdriver_transport import Transport


class ServiceFactory:

    @staticmethod
    def get_transport(http_library: str | None = None) -> Transport:
        match http_library:
            case "httpx":
                from webdriver_httpx import HttpxTransport

                return HttpxTransport()
            case _:
                # Specify a default so people don't have to worry about it until they want to
                from webdriver_requests import RequestsTransport

                return RequestsTransport()

    @staticmethod
    def get_service(config: ExecutorConfig | None = None, configure_logging: bool = False) -> ServiceInterface:
        """Build an executor from the given configuration, or from the environment when none is given"""

        config = config or ExecutorConfig.from_environment()
        if configure_logging:
            AppLogging.configure_logging(config.log_level)

        transport = ServiceFactory.get_transport(config.http_library)
        structlog.getLogger(ServiceFactory.__name__).debug("Created service", http_library=transport.name, default_socket_timeout=config.default_socket_timeout)
        return HttpExecutor(transport, config)
