import logging

from opentelemetry.sdk.trace import TracerProvider

from ticketdesk.core.config import Settings
from ticketdesk.core.logging import (
    build_logging_config,
    build_tracer_provider,
    init_tracer,
    parse_otlp_headers,
    shutdown_tracer,
)


def test_parse_otlp_headers_skips_malformed_pairs():
    headers = parse_otlp_headers("api-key=abc, x-team = support,broken,=orphan,")

    assert headers == {"api-key": "abc", "x-team": "support"}
    assert parse_otlp_headers(None) == {}


def test_logging_config_levels():
    settings = Settings(_env_file=None, log_level="debug", sql_log_level="nonsense")

    config = build_logging_config(settings)

    assert config["loggers"]["ticketdesk"]["level"] == logging.DEBUG
    assert config["loggers"]["sqlalchemy.engine"]["level"] == logging.WARNING
    assert config["root"]["handlers"] == ["console"]


def test_init_tracer_disabled_returns_none():
    assert init_tracer(Settings(_env_file=None, otel_enabled=False)) is None


def test_tracer_provider_carries_service_resource():
    settings = Settings(
        _env_file=None,
        otel_service_name="ticketdesk-test",
        environment="ci",
        otel_exporter_otlp_endpoint="http://collector:4318/v1/traces",
    )

    provider = build_tracer_provider(settings)
    try:
        assert isinstance(provider, TracerProvider)
        attributes = provider.resource.attributes
        assert attributes["service.name"] == "ticketdesk-test"
        assert attributes["deployment.environment"] == "ci"
    finally:
        shutdown_tracer(provider)
