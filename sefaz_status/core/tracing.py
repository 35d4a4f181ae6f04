"""
Spans OpenTelemetry para as etapas do ciclo de monitoramento.

Sem SDK configurado o tracer da API é no-op; com SDK (ex.: exportador OTLP
configurado via variáveis OTEL_*), sonda e portal aparecem como spans
separados.
"""
import logging
from contextlib import asynccontextmanager

from opentelemetry import trace as otel_trace

logger = logging.getLogger(__name__)

TRACER_NAME = "sefaz_status"

# Flag para desabilitar tracing (útil para testes)
_tracing_enabled: bool = True


def set_tracing_enabled(enabled: bool):
    """Define se o tracing está habilitado."""
    global _tracing_enabled
    _tracing_enabled = enabled


@asynccontextmanager
async def trace_span(operation_name: str, **attributes):
    """
    Context manager assíncrono que abre um span para uma etapa do ciclo.

    Uso:
        async with trace_span("sefaz.probe", url=url) as span:
            outcome = await prober.probe(url)
            if span:
                span.set_attribute("elapsed_ms", outcome.elapsed_ms)

    Yields:
        Span do OpenTelemetry ou None se tracing desabilitado
    """
    if not _tracing_enabled:
        yield None
        return

    tracer = otel_trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(operation_name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        yield span
