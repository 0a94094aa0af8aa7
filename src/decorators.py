import functools

import structlog

SCALAR_TYPES = (int, float, str, bool)


class Decorators:

    @staticmethod
    def add_request_to_logging_context(func):
        """For methods called as (self, method, url, ...)"""

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with structlog.contextvars.bound_contextvars(method=args[1], url=args[2]):
                return func(*args, **kwargs)

        return wrapper

    @staticmethod
    def log_invocation_with_scalar_args(func):
        """Limit the logging to scalar arguments so request bodies don't overwhelm the logger"""

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with structlog.contextvars.bound_contextvars(function_name=func.__name__):
                scalar_args = [arg for arg in args if type(arg) in SCALAR_TYPES]
                option_names = sorted(kwargs.get("extra_options") or {})
                logger = structlog.getLogger(func.__qualname__.split(".")[0])
                logger.debug(func.__name__, scalar_args=scalar_args, option_names=option_names)
                return func(*args, **kwargs)

        return wrapper
