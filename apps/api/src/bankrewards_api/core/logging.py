from __future__ import annotations

import json
import logging
import sys
from logging import LogRecord
from typing import Any, Dict, Iterable, Mapping

from loguru import logger
from opentelemetry import trace

# Identifiers grouped under "loyalty" so log queries can filter on one object.
LOYALTY_CONTEXT_KEYS = (
    "customer_id",
    "reward_id",
    "rule_id",
    "campaign_id",
    "transaction_id",
    "redemption_id",
)

_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite")

_STDLIB_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class InterceptHandler(logging.Handler):
    """Forward stdlib records (uvicorn, sqlalchemy) to Loguru with their extras bound."""

    def emit(self, record: LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        extra = {key: value for key, value in vars(record).items() if key not in _STDLIB_RECORD_ATTRS}
        text = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.bind(**extra).opt(depth=6, exception=record.exc_info).log(level, text)


def _error_fields(exception: Any) -> Dict[str, Any] | None:
    if exception is None or exception.type is None:
        return None
    error: Dict[str, Any] = {"type": exception.type.__name__, "message": str(exception.value)}
    code = getattr(exception.value, "code", None)
    if code:
        error["code"] = code
    return error


def _split_context(extra: Mapping[str, Any], keys: Iterable[str]) -> tuple[Dict[str, Any], Dict[str, Any]]:
    wanted = set(keys)
    grouped = {key: value for key, value in extra.items() if key in wanted}
    rest = {key: value for key, value in extra.items() if key not in wanted}
    return grouped, rest


def build_log_payload(record: Mapping[str, Any], metadata: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn a Loguru record into the JSON document written to stdout.

    Loyalty identifiers bound on the record land under ``loyalty``; remaining
    extras stay top level. An attached exception is reduced to its type,
    message and loyalty error ``code`` when present.
    """

    payload: Dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name.lower(),
        "message": record["message"],
        "logger": record["name"],
        "service": metadata.get("service_name", "unknown"),
        "environment": metadata.get("environment", "unknown"),
        "version": metadata.get("version", "unknown"),
    }

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        payload["trace_id"] = f"{span_context.trace_id:032x}"
        payload["span_id"] = f"{span_context.span_id:016x}"

    loyalty, rest = _split_context(record["extra"], LOYALTY_CONTEXT_KEYS)
    payload.update(rest)
    if loyalty:
        payload["loyalty"] = loyalty

    error = _error_fields(record.get("exception"))
    if error:
        payload["error"] = error

    return payload


def configure_logging(*, service_name: str, environment: str, version: str, level: str = "INFO") -> None:
    """Send Loguru and stdlib logging to a single JSON sink on stdout."""

    metadata = {"service_name": service_name, "environment": environment, "version": version}

    def sink(message: "logger.Message") -> None:
        sys.stdout.write(json.dumps(build_log_payload(message.record, metadata), default=str) + "\n")

    logger.remove()
    logger.add(sink, level=level.upper(), backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
