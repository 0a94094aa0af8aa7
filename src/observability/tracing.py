import functools

from opentelemetry import trace

TRACER_NAME = "webdriver-transport"


class Tracing:
    @staticmethod
    def traced(func):
        """Run an executor call in a span. Spans are only exported when the application installs an OpenTelemetry SDK."""

        @functools.wraps(func)
        def wrapper(self, method: str, url: str, *args, **kwargs):
            with trace.get_tracer(TRACER_NAME).start_as_current_span(func.__qualname__, kind=trace.SpanKind.CLIENT) as span:
                span.set_attribute("http.request.method", method)
                span.set_attribute("url.full", url)
                try:
                    result = func(self, method, url, *args, **kwargs)
                except Exception as exc:
                    # start_as_current_span records the exception itself
                    code = getattr(exc, "code", None)
                    if code is not None:
                        span.set_attribute("webdriver.error_code", code)
                    raise
                _, info = result
                if info.get("http_code"):
                    span.set_attribute("http.response.status_code", info["http_code"])
                return result

        return wrapper
