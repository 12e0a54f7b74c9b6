from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

# Request-scoped values stamped onto every log record
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
sales_channel_id_var: ContextVar[Optional[str]] = ContextVar("sales_channel_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | sc=%(sales_channel_id)s | %(message)s"


class RequestContextFilter(logging.Filter):
    """Copies the current correlation id and sales channel id onto log records ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.sales_channel_id = sales_channel_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
@contextmanager
def request_context(correlation_id: str, sales_channel_id: Optional[str] = None) -> Iterator[None]:
    """Bind request identifiers for the duration of a request."""
    corr_token = correlation_id_var.set(correlation_id)
    channel_token = sales_channel_id_var.set(sales_channel_id)
    try:
        yield
    finally:
        sales_channel_id_var.reset(channel_token)
        correlation_id_var.reset(corr_token)


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Route root logging to stdout through the request context filter.

    Existing root handlers are replaced so repeated calls do not duplicate output.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
