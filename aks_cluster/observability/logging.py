"""Structured logging for the API and the Automation API wrapper.

Inside a running Pulumi program use ``pulumi.log`` instead; its output is
routed through the engine.
"""

from __future__ import annotations

import logging
import sys

import structlog

REDACTED = "[secret]"

# Event keys whose values are never written out, whatever their type.
SECRET_KEY_MARKERS = ("kubeconfig", "secret", "passphrase", "password", "token")


def redact_secrets(_logger, _method_name: str, event_dict: dict) -> dict:
    for key in event_dict:
        if key != "event" and any(marker in key.lower() for marker in SECRET_KEY_MARKERS):
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON lines on stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_secrets,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(component=component)  # type: ignore[return-value]
