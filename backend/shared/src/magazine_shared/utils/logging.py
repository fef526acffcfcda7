"""Logging with a per-request correlation ID.

The ID lives in a ContextVar, so concurrent requests (threads or tasks) each
see their own value. Loggers obtained through ``get_logger`` stamp it on
every record, and ``configure_logging`` installs a formatter that prints it
first on each line.

    logger = get_logger(__name__)
    set_correlation_id(incoming_header)
    log_webhook_event(logger, "Paid", "payment_1", step="record_payment", result="ok")
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (or a fresh UUID) to the current context and return it."""
    value = correlation_id or generate_correlation_id()
    _correlation_id.set(value)
    return value


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def _current_id() -> str:
    return get_correlation_id() or NO_CORRELATION_ID


class CorrelationIdFilter(logging.Filter):
    """Stamps ``record.correlation_id`` from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _current_id()
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes each formatted line with ``[correlation_id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None) or _current_id()
        return f"[{correlation_id}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """``logging.getLogger`` with the correlation filter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def configure_logging(level: int | str = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; an existing structured handler is reused.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return

    stream = logging.StreamHandler()
    stream.setFormatter(
        StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    stream.addFilter(CorrelationIdFilter())
    root.addHandler(stream)


def _emit(
    logger: logging.Logger,
    level: int,
    headline: str,
    context: dict[str, Any],
    shown: list[str],
) -> None:
    """Log ``headline | k=v | ...`` for the ``shown`` keys, with ``context`` as extras."""
    fields = [f"{key}={context[key]}" for key in shown if key in context]
    logger.log(level, " | ".join([headline, *fields]), extra=context)


def _drop_empty(**fields: Any) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None and v != ""}


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    transaction_key: str | None = None,
    customer_id: str | None = None,
    amount: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a gateway or ledger operation.

    Logged at ERROR when ``error`` is given, INFO otherwise. Every non-empty
    field, extras included, is rendered into the message and attached to the
    record.
    """
    context = _drop_empty(
        transaction_key=transaction_key,
        customer_id=customer_id,
        amount=amount,
        status=status,
        error=error,
    )
    context.update(extra)
    context["operation"] = operation

    level = logging.ERROR if error else logging.INFO
    shown = [key for key in context if key != "operation"]
    _emit(logger, level, f"Payment operation: {operation}", context, shown)


_WEBHOOK_RESULT_LEVELS = {
    "fail": logging.ERROR,
    "warn": logging.WARNING,
    "duplicate": logging.WARNING,
}


def log_webhook_event(
    logger: logging.Logger,
    event_status: str,
    payment_id: str,
    *,
    step: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one stage of webhook processing.

    ``result`` picks the level: ``fail`` is ERROR, ``warn`` and ``duplicate``
    are WARNING, anything else (received, ok) is INFO.
    """
    context: dict[str, Any] = {"event_status": event_status, "payment_id": payment_id}
    context.update(_drop_empty(step=step, result=result, error=error))
    context.update(extra)

    level = _WEBHOOK_RESULT_LEVELS.get(result or "", logging.INFO)
    _emit(
        logger,
        level,
        f"Webhook event: {event_status} ({payment_id})",
        context,
        ["step", "result", "error"],
    )
