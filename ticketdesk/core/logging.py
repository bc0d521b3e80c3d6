"""Log routing and OpenTelemetry export for Ticketdesk."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ticketdesk.core.config import Settings

APP_LOGGER = "ticketdesk"


def _level(name: str, default: int = logging.INFO) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def parse_otlp_headers(header_string: str | None) -> dict[str, str]:
    """Turn ``key=value,key2=value2`` into a header mapping, skipping malformed pairs."""

    pairs = (item.partition("=") for item in (header_string or "").split(","))
    return {key.strip(): value.strip() for key, sep, value in pairs if sep and key.strip()}


def build_logging_config(settings: Settings) -> dict[str, Any]:
    """dictConfig payload: one console handler, the app tree at ``log_level`` and SQL at ``sql_log_level``."""

    app_level = _level(settings.log_level)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"console": {"format": settings.log_format}},
        "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "console"}},
        "loggers": {
            APP_LOGGER: {"level": app_level},
            "sqlalchemy.engine": {"level": _level(settings.sql_log_level, logging.WARNING)},
        },
        "root": {"handlers": ["console"], "level": app_level},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    dictConfig(build_logging_config(settings))
    return logging.getLogger(APP_LOGGER)


def build_tracer_provider(settings: Settings) -> TracerProvider:
    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": settings.otel_service_version,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint or None,
        headers=parse_otlp_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install the OTLP tracer provider, once per process, when tracing is enabled.

    Ticket operations open spans through ``trace.get_tracer``; without a
    provider those spans are no-ops.
    """

    if not settings.otel_enabled or isinstance(trace.get_tracer_provider(), TracerProvider):
        return None
    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is not None:
        provider.shutdown()
