"""
Setup logging for the application.
"""

import contextvars
import logging

trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "trace_id", default=None
)

ALLOWED_NAME_PREFIX = ["wiki.", "tests."]


def add_trace_id(record: logging.LogRecord) -> bool:
    """
    Inject the current trace id into the record, and keep only our own loggers.
    """
    record.trace_id = trace_id_var.get() or "-"
    return any(record.name.startswith(prefix) for prefix in ALLOWED_NAME_PREFIX)


def setup_logging(level: int = logging.DEBUG):
    """
    Setup logging for the application.
    """
    # make logging to log DEBUG in blue, warning in yellow, error in red
    logging.addLevelName(logging.DEBUG, "\033[94mDEBUG\033[0m")
    logging.addLevelName(logging.WARNING, "\033[93mWARNING\033[0m")
    logging.addLevelName(logging.ERROR, "\033[91mERROR\033[0m")
    logging.basicConfig(
        format="\033[94m[%(levelname)s\t]\033[0m \033[92m[%(name)24s]\033[0m \033[90m[%(trace_id)s]\033[0m %(message)s",
        level=level,
    )
    for handler in logging.root.handlers:
        handler.addFilter(add_trace_id)
