import logging

import structlog
from opentelemetry import trace


class AppLogging:

    _handler: logging.Handler | None = None

    @staticmethod
    def add_open_telemetry_spans(_, __, event_dict: dict) -> dict:
        # See https://www.structlog.org/en/stable/frameworks.html#opentelemetry

        span = trace.get_current_span()
        if not span.is_recording():
            return event_dict

        ctx = span.get_span_context()
        parent = getattr(span, "parent", None)

        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        if parent:
            event_dict["parent_span_id"] = trace.format_span_id(parent.span_id)

        return event_dict

    @staticmethod
    def configure_logging(level: str | int = logging.INFO) -> None:
        """Route structlog and stdlib logging (including the HTTP libraries) through one console renderer"""

        timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S")
        shared_processors = [
            structlog.stdlib.add_log_level,
            timestamper,
        ]

        structlog.configure(
            processors=shared_processors
            + [
                structlog.contextvars.merge_contextvars,
                AppLogging.add_open_telemetry_spans,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        formatter = structlog.stdlib.ProcessorFormatter(
            # These run ONLY on `logging` entries that do NOT originate within
            # structlog.
            foreign_pre_chain=shared_processors,
            # These run on ALL entries after the pre_chain is done.
            processors=[
                # Remove _record & _from_structlog.
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(),
            ],
        )

        root_logger = logging.getLogger()
        if AppLogging._handler is not None:
            root_logger.removeHandler(AppLogging._handler)

        AppLogging._handler = logging.StreamHandler()
        AppLogging._handler.setFormatter(formatter)
        root_logger.addHandler(AppLogging._handler)
        root_logger.setLevel(level)
