"""
staybook.observability.logging

Structured logging for the API process and the arq worker.

Responsibilities:
- Configure `structlog` on top of stdlib logging (JSON in deployed envs, console in dev).
- Mask credentials that can end up in event fields (passwords, lock codes, Stripe secrets).
- Keep chatty SDK loggers (Stripe, botocore, httpx) at WARNING.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Field names whose values never reach the log sink.
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "password_hash",
        "new_password",
        "old_password",
        "smart_lock_code",
        "key_box_pin",
        "security_keys",
        "client_secret",
        "authorization",
        "fcm_token",
    }
)

NOISY_LOGGERS = ("stripe", "botocore", "boto3", "s3transfer", "httpx", "httpcore", "aiosqlite")


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            _mask_sensitive,
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    # "staybook" for the API, "staybook-worker" for cron jobs.
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _mask_sensitive(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
