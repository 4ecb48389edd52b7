# tests/test_logger.py
# SPDX-License-Identifier: Apache-2.0
"""
Logger adapters.

Asserts:
  • StdlibLogger routes request events and audit records to separate loggers
  • Metadata is redacted and attached as `record.pipeline`
  • safe_log / safe_audit never raise and accept sync or async adapters
"""

import logging

import pytest

from pipeline_sdk.adapters.base import AuditRecord, LoggerAdapter
from pipeline_sdk.adapters.logger import (
    AUDIT_LOGGER_NAME,
    REQUEST_LOGGER_NAME,
    NoopLogger,
    StdlibLogger,
    safe_audit,
    safe_log,
)
from pipeline_sdk.core.context import Principal
from pipeline_sdk.core.redact import REDACTED
from tests.mock.mock_adapters import AsyncRecordingLogger, ExplodingLogger


def _record(**overrides):
    fields = dict(
        request_id="r-1",
        user=Principal(id="u-1"),
        action="POST",
        resource="/items",
        status=201,
        success=True,
        duration_ms=12.3456,
        ip="10.0.0.1",
    )
    fields.update(overrides)
    return AuditRecord(**fields)


def test_adapters_satisfy_protocol():
    assert isinstance(StdlibLogger(), LoggerAdapter)
    assert isinstance(NoopLogger(), LoggerAdapter)


def test_stdlib_logger_redacts_meta(caplog):
    caplog.set_level(logging.DEBUG, logger=REQUEST_LOGGER_NAME)
    log = StdlibLogger(redact_fields=["email"])

    log.info("GET /items", {"request_id": "r-1", "token": "abc", "email": "a@b.c"})

    (rec,) = [r for r in caplog.records if r.name == REQUEST_LOGGER_NAME]
    assert rec.getMessage() == "GET /items"
    assert rec.levelno == logging.INFO
    assert rec.pipeline == {"request_id": "r-1", "token": REDACTED, "email": REDACTED}


def test_stdlib_logger_error_carries_exception(caplog):
    caplog.set_level(logging.ERROR, logger=REQUEST_LOGGER_NAME)
    try:
        raise ValueError("broken")
    except ValueError as exc:
        err = exc

    StdlibLogger().error("Unhandled error", err, {"request_id": "r-2"})

    (rec,) = [r for r in caplog.records if r.name == REQUEST_LOGGER_NAME]
    assert rec.exc_info[1] is err
    assert rec.pipeline["request_id"] == "r-2"


def test_stdlib_logger_audit(caplog):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)
    StdlibLogger().audit(_record(status=403, success=False, error_code="FORBIDDEN", meta={"password": "x"}))

    (rec,) = [r for r in caplog.records if r.name == AUDIT_LOGGER_NAME]
    assert rec.getMessage() == "POST /items -> 403 (FORBIDDEN)"
    assert rec.pipeline["user_id"] == "u-1"
    assert rec.pipeline["error_code"] == "FORBIDDEN"
    assert rec.pipeline["meta"] == {"password": REDACTED}


def test_audit_record_to_dict():
    d = _record().to_dict()
    assert d["user_id"] == "u-1"
    assert d["duration_ms"] == 12.346
    assert d["ip"] == "10.0.0.1"
    assert "user_agent" not in d and "error_code" not in d and "meta" not in d
    assert d["timestamp"].endswith("+00:00")


@pytest.mark.asyncio
async def test_safe_log_with_async_adapter():
    log = AsyncRecordingLogger()
    await safe_log(log, "info", "hello", {"a": 1})
    await safe_log(log, "error", "bad", {"b": 2}, RuntimeError("x"))
    await safe_audit(log, _record())

    assert [(e.level, e.message) for e in log.entries] == [("info", "hello"), ("error", "bad")]
    assert isinstance(log.entries[1].err, RuntimeError)
    assert len(log.audits) == 1


@pytest.mark.asyncio
async def test_safe_helpers_swallow_failures():
    await safe_log(ExplodingLogger(), "warning", "ignored")
    await safe_audit(ExplodingLogger(), _record())
    await safe_log(None, "info", "no adapter")
    await safe_audit(None, _record())
