from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from tableside.config import Settings, get_settings

# probes and scrapes would otherwise produce a span every few seconds
UNTRACED_URLS = "health/live,health/ready,metrics"

logger = logging.getLogger(__name__)
_provider: TracerProvider | None = None


def current_trace_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x")


def current_span_id() -> str | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.span_id, "016x")


def _build_provider(settings: Settings) -> TracerProvider:
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: settings.service_name}))
    endpoint = settings.otlp_endpoint
    if not endpoint:
        logger.info("otel_exporter_disabled", extra={"reason": "no OTLP endpoint"})
        return provider

    try:
        exporter = OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://"))
    except Exception:
        logger.exception("otel_exporter_setup_failed", extra={"reason": endpoint})
    else:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def configure_otel(app: FastAPI) -> None:
    """Install the process-wide tracer provider once and instrument ``app``."""
    global _provider
    if _provider is None:
        _provider = _build_provider(get_settings())
        trace.set_tracer_provider(_provider)
        set_global_textmap(TraceContextTextMapPropagator())

    if getattr(app.state, "otel_instrumented", False):
        return
    FastAPIInstrumentor.instrument_app(app, tracer_provider=_provider, excluded_urls=UNTRACED_URLS)
    app.state.otel_instrumented = True
