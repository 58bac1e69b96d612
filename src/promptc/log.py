"""Structured logging on top of the standard library.

Fields are passed as keyword arguments and land both in the rendered message
(``key=value`` pairs) and on the record as ``record.fields``:

    logger = get_logger(__name__)
    logger.info("Prompt compiled", original_tokens=120, optimized_tokens=80)
"""

import logging
from typing import Any, MutableMapping, Union

_LOGGING_KWARGS = {"exc_info", "stack_info", "stacklevel", "extra"}


class FieldsAdapter(logging.LoggerAdapter):
    """LoggerAdapter that accepts arbitrary structured fields as kwargs."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in _LOGGING_KWARGS}
        if not fields:
            return msg, kwargs
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        rendered = " ".join(f"{k}={v!r}" for k, v in fields.items())
        return f"{msg} {rendered}", kwargs


def get_logger(name: Union[str, logging.Logger]) -> FieldsAdapter:
    logger = name if isinstance(name, logging.Logger) else logging.getLogger(name)
    return FieldsAdapter(logger, {})


def configure(verbose: bool = False) -> None:
    """Basic console logging for the CLI and the editor backend."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def ensure_logger(log, default: FieldsAdapter) -> FieldsAdapter:
    """Accept a FieldsAdapter, a plain ``logging.Logger`` or None."""
    if log is None:
        return default
    if isinstance(log, logging.Logger):
        return get_logger(log)
    return log
