"""OpenTelemetry metrics for geocoding and LLM observability."""

from common.metrics.instruments import (
    cache_hits,
    cache_misses,
    cycle_duration,
    llm_completion_tokens,
    llm_generation_duration,
    llm_prompt_tokens,
    llm_total_duration,
    llm_tps,
    llm_ttft,
    resolver_failures,
    resolver_requests,
    resolver_resolved,
)

__all__ = [
    "cache_hits",
    "cache_misses",
    "cycle_duration",
    "llm_completion_tokens",
    "llm_generation_duration",
    "llm_prompt_tokens",
    "llm_total_duration",
    "llm_tps",
    "llm_ttft",
    "resolver_failures",
    "resolver_requests",
    "resolver_resolved",
]
