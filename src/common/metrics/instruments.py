"""
OpenTelemetry metrics for geocoding and LLM observability.

Exports cache hit rates, resolver outcomes, resolution cycle latency and
LLM performance (TTFT, TPS, token counts) via OTLP to an OpenTelemetry
Collector.

Metrics are fire-and-forget: if the collector is down, the app continues normally.
"""

import os

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from common.logging_config import get_logger

logger = get_logger("common_metrics")

# OTEL Collector endpoint (default: localhost:4317 for gRPC)
OTEL_ENDPOINT = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")

# Setup OTEL metrics
_resource = Resource.create({"service.name": "client-map-geocoder"})

try:
    _exporter = OTLPMetricExporter(endpoint=OTEL_ENDPOINT, insecure=True)
    _reader = PeriodicExportingMetricReader(_exporter, export_interval_millis=5000)
    _provider = MeterProvider(resource=_resource, metric_readers=[_reader])
    metrics.set_meter_provider(_provider)
    logger.info(f"OpenTelemetry metrics enabled, exporting to {OTEL_ENDPOINT}")
except Exception as e:
    logger.warning(f"OpenTelemetry setup failed (metrics disabled): {e}")
    _provider = None

# Geocoding instruments
_geo_meter = metrics.get_meter("geocode", version="1.0.0")

cache_hits = _geo_meter.create_counter(
    name="geocode.cache.hits",
    description="Record addresses answered by the coordinate cache",
    unit="lookups",
)

cache_misses = _geo_meter.create_counter(
    name="geocode.cache.misses",
    description="Record addresses missing from the coordinate cache",
    unit="lookups",
)

resolver_requests = _geo_meter.create_counter(
    name="geocode.resolver.requests",
    description="Outbound requests made by a resolver strategy",
    unit="requests",
)

resolver_failures = _geo_meter.create_counter(
    name="geocode.resolver.failures",
    description="Resolver requests that failed on transport or payload",
    unit="requests",
)

resolver_resolved = _geo_meter.create_counter(
    name="geocode.resolver.resolved",
    description="Addresses resolved to coordinates by a resolver strategy",
    unit="addresses",
)

cycle_duration = _geo_meter.create_histogram(
    name="geocode.cycle.duration",
    description="Duration of one resolution cycle, Idle to Idle (ms)",
    unit="ms",
)

# LLM instruments
_llm_meter = metrics.get_meter("llm", version="1.0.0")

llm_ttft = _llm_meter.create_histogram(
    name="llm.ttft",
    description="Time to first token (ms)",
    unit="ms",
)

llm_total_duration = _llm_meter.create_histogram(
    name="llm.total_duration",
    description="Total request-response duration (ms)",
    unit="ms",
)

llm_generation_duration = _llm_meter.create_histogram(
    name="llm.generation_duration",
    description="Token generation duration (ms)",
    unit="ms",
)

llm_tps = _llm_meter.create_histogram(
    name="llm.tokens_per_second",
    description="Tokens per second during generation",
    unit="tokens/s",
)

llm_prompt_tokens = _llm_meter.create_counter(
    name="llm.prompt_tokens",
    description="Total prompt tokens processed",
    unit="tokens",
)

llm_completion_tokens = _llm_meter.create_counter(
    name="llm.completion_tokens",
    description="Total completion tokens generated",
    unit="tokens",
)
