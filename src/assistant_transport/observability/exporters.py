"""OTel provider setup (console exporter)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_tracer_provider: Any = None
_meter_provider: Any = None


@dataclass(frozen=True, slots=True)
class ObservabilityConfig:
    """Configuration for OTel exporters."""

    enabled: bool = False
    exporter: str = "console"  # console | none
    service_name: str = "assistant-transport"


def configure_exporters(config: ObservabilityConfig) -> bool:
    """Set up OTel TracerProvider and MeterProvider.

    Returns True if OTel was configured, False if disabled.
    """
    global _tracer_provider, _meter_provider

    if not config.enabled or config.exporter == "none":
        return False

    resource = Resource.create({"service.name": config.service_name})

    tp = TracerProvider(resource=resource)
    tp.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tp)
    _tracer_provider = tp

    reader = PeriodicExportingMetricReader(ConsoleMetricExporter())
    mp = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(mp)
    _meter_provider = mp

    return True


def shutdown() -> None:
    """Shut down OTel providers gracefully."""
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None:
        try:
            _tracer_provider.shutdown()
        except Exception:
            logger.debug("Tracer provider shutdown failed", exc_info=True)
        _tracer_provider = None

    if _meter_provider is not None:
        try:
            _meter_provider.shutdown()
        except Exception:
            logger.debug("Meter provider shutdown failed", exc_info=True)
        _meter_provider = None
