# pipeline_sdk/adapters/logger.py
# SPDX-License-Identifier: Apache-2.0

"""
Logger adapters backed by the standard `logging` module.

`StdlibLogger` forwards request events to the `pipeline_sdk.requests` logger
and audit records to `pipeline_sdk.audit`. Structured metadata is redacted
and attached to each LogRecord as `record.pipeline` so handlers/formatters
can render it (e.g. a JSON formatter), while the message stays readable.

    logging.basicConfig(level=logging.INFO)
    config = WrapperConfig(adapters=PipelineAdapters(logger=StdlibLogger()))
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from pipeline_sdk.adapters.base import AuditRecord
from pipeline_sdk.core.async_bridge import maybe_await
from pipeline_sdk.core.redact import redact

REQUEST_LOGGER_NAME = "pipeline_sdk.requests"
AUDIT_LOGGER_NAME = "pipeline_sdk.audit"

LOG = logging.getLogger(__name__)


class StdlibLogger:
    """
    LoggerAdapter over `logging.Logger`.

    Args:
        logger / audit_logger:
            Override the target loggers (defaults to the module-level names).
        redact_fields:
            Extra key fragments to redact from metadata.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        audit_logger: Optional[logging.Logger] = None,
        *,
        redact_fields: Iterable[str] = (),
    ) -> None:
        self._log = logger or logging.getLogger(REQUEST_LOGGER_NAME)
        self._audit = audit_logger or logging.getLogger(AUDIT_LOGGER_NAME)
        self._redact_fields = tuple(redact_fields)

    def _extra(self, meta: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
        return {"pipeline": redact(dict(meta or {}), self._redact_fields)}

    def debug(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log.debug(message, extra=self._extra(meta))

    def info(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log.info(message, extra=self._extra(meta))

    def warning(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log.warning(message, extra=self._extra(meta))

    def error(
        self,
        message: str,
        err: Optional[BaseException] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> None:
        exc_info = (type(err), err, err.__traceback__) if err is not None else None
        self._log.error(message, exc_info=exc_info, extra=self._extra(meta))

    def audit(self, record: AuditRecord) -> None:
        payload = record.to_dict()
        if "meta" in payload:
            payload["meta"] = redact(payload["meta"], self._redact_fields)
        self._audit.info(
            "%s %s -> %d (%s)",
            record.action,
            record.resource,
            record.status,
            "ok" if record.success else record.error_code,
            extra={"pipeline": payload},
        )


async def safe_log(
    logger: Any,
    level: str,
    message: str,
    meta: Optional[Mapping[str, Any]] = None,
    err: Optional[BaseException] = None,
) -> None:
    """
    Emit through a LoggerAdapter without ever raising.

    Works with sync and async adapters; a missing adapter is a no-op.
    """
    if logger is None:
        return
    try:
        if level == "error":
            result = logger.error(message, err, dict(meta or {}))
        else:
            result = getattr(logger, level)(message, dict(meta or {}))
        await maybe_await(result)
    except Exception:  # noqa: BLE001
        LOG.debug("logger adapter failed while emitting %r", message, exc_info=True)


async def safe_audit(logger: Any, record: AuditRecord) -> None:
    if logger is None:
        return
    try:
        await maybe_await(logger.audit(record))
    except Exception:  # noqa: BLE001
        LOG.warning("audit emission failed for request %s", record.request_id, exc_info=True)


class NoopLogger:
    """Discards everything."""
    def debug(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None: ...
    def info(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None: ...
    def warning(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None: ...

    def error(
        self,
        message: str,
        err: Optional[BaseException] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def audit(self, record: AuditRecord) -> None: ...


__all__ = ["StdlibLogger", "NoopLogger", "safe_log", "safe_audit", "REQUEST_LOGGER_NAME", "AUDIT_LOGGER_NAME"]
