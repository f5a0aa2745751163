"""
Custom logging formatters for the multifamily project.
"""
import logging
import json


# Attributes every LogRecord carries; anything else came in through `extra=`
STANDARD_RECORD_FIELDS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName',
    'exc_info', 'exc_text', 'stack_info', 'asctime', 'message',
})


class DetailedFormatter(logging.Formatter):
    """
    Formatter that appends structured context passed via ``extra``.

    Billing code logs user ids, seat counts and Stripe ids this way, e.g.::

        logger.info("Seats added", extra={"user_id": user.id, "purchased": 7})

    renders as ``... Seats added | EXTRA: {"purchased": 7, "user_id": "..."}``.
    """

    def format(self, record):
        formatted = super().format(record)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in STANDARD_RECORD_FIELDS
        }

        if extra_fields:
            try:
                extra_str = json.dumps(extra_fields, default=str, sort_keys=True)
            except (TypeError, ValueError):
                extra_str = ", ".join(f"{k}={v}" for k, v in extra_fields.items())
            formatted += f" | EXTRA: {extra_str}"

        return formatted
