"""
Batch AI Resolver

Geocodes a whole batch of addresses in one LLM round trip. The model is
asked to clean the addresses itself (postal codes, unit numbers,
parenthetical notes) and answer with {address, lat, lng} triples keyed by
the address it was given.

Every valid triple is written to the coordinate cache. Addresses the model
leaves out are simply absent from the result (a partial result, not an
error); total failure yields an empty mapping and never raises.
"""

from typing import Any

from address_normalizer.core import normalize
from common.config import BATCH_GEOCODER_ENABLED, LLM_HOST, MAX_BATCH_SIZE
from common.geocoding import Coordinates, parse_coordinates
from common.llm_utils import get_json_response
from common.logging_config import get_logger
from common.metrics import resolver_failures, resolver_requests, resolver_resolved
from coordinate_cache.core import CoordinateCache

logger = get_logger("batch_ai_resolver")

STRATEGY_NAME = "batch_ai"

SYSTEM_PROMPT = """You are a Korean address geocoder. You receive a numbered list of South Korean postal addresses and return the WGS84 latitude/longitude of each one.

RULES:
1. Before geocoding, ignore 5-digit postal codes, unit/floor/building numbers (e.g. 102호, 3층, 101동) and notes in parentheses
2. Geocode to the road-name or lot-number address; if that is unknown use the most specific area you are confident about
3. Copy each "address" value EXACTLY as it was given to you, character for character
4. Omit an address entirely if you cannot locate it - never guess 0 or null coordinates
5. lat and lng must be JSON numbers

Return ONLY this JSON structure:
{
  "results": [
    {"address": "address exactly as given", "lat": 37.5, "lng": 126.9}
  ]
}"""


def _build_prompt(addresses: list[str]) -> str:
    lines = "\n".join(f"{i}. {address}" for i, address in enumerate(addresses, start=1))
    return f"Geocode these {len(addresses)} addresses:\n{lines}"


def _extract_items(payload: Any) -> list[Any]:
    """Pull the list of triples out of the model payload."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        results = payload.get("results")
        if isinstance(results, list):
            return results
        # Some models pick their own key for the list
        for value in payload.values():
            if isinstance(value, list):
                return value
        # A single triple returned as an object
        if "address" in payload:
            return [payload]
    return []


class BatchAIResolver:
    """Resolves up to MAX_BATCH_SIZE addresses per LLM request."""

    name = STRATEGY_NAME

    def __init__(
        self,
        cache: CoordinateCache,
        llm_client: Any = None,
        enabled: bool = BATCH_GEOCODER_ENABLED,
        host: str | None = LLM_HOST,
        max_batch_size: int = MAX_BATCH_SIZE,
    ) -> None:
        self.cache = cache
        self.llm_client = llm_client
        self.enabled = enabled
        self.host = host
        self.max_batch_size = max_batch_size

    @property
    def available(self) -> bool:
        """False when disabled or no LLM endpoint is configured."""
        return self.enabled and (bool(self.host) or self.llm_client is not None)

    async def resolve_batch(self, addresses: list[str]) -> dict[str, Coordinates]:
        """
        Resolve a batch of raw addresses in a single request.

        Args:
            addresses: Raw address strings; callers truncate to the batch cap,
                anything beyond it is ignored here as well

        Returns:
            Mapping of caller-supplied address -> coordinates for every address
            the model located
        """
        submitted = [a for a in dict.fromkeys(addresses[: self.max_batch_size]) if a and a.strip()]
        if not submitted:
            return {}
        if not self.available:
            logger.warning("Batch AI resolver unavailable (disabled or no LLM host configured)")
            return {}

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": _build_prompt(submitted)},
        ]

        resolver_requests.add(1, attributes={"strategy": STRATEGY_NAME})
        try:
            payload = await get_json_response(messages, client=self.llm_client)
        except Exception as e:
            logger.warning(f"Batch AI request failed: {e}")
            payload = None

        if payload is None:
            resolver_failures.add(1, attributes={"strategy": STRATEGY_NAME})
            return {}

        by_normalized: dict[str, str] = {}
        for address in submitted:
            by_normalized.setdefault(normalize(address), address)

        results: dict[str, Coordinates] = {}
        dropped = 0
        for item in _extract_items(payload):
            if not isinstance(item, dict):
                dropped += 1
                continue
            returned_address = item.get("address")
            coordinates = parse_coordinates(item.get("lat"), item.get("lng"))
            if not isinstance(returned_address, str) or coordinates is None:
                dropped += 1
                continue

            try:
                self.cache.put(returned_address, coordinates)
            except Exception as e:
                logger.warning(f"Could not cache coordinates for {returned_address!r}: {e}")

            if returned_address in submitted:
                original = returned_address
            else:
                original = by_normalized.get(normalize(returned_address))
            if original is None:
                logger.debug(f"Model returned an address that was not submitted: {returned_address!r}")
                continue
            results[original] = coordinates

        if dropped:
            logger.debug(f"Dropped {dropped} batch entries with missing or invalid coordinates")
        resolver_resolved.add(len(results), attributes={"strategy": STRATEGY_NAME})
        logger.info(f"Batch AI resolution: {len(results)}/{len(submitted)} addresses resolved")
        return results

    async def resolve(self, address: str) -> Coordinates | None:
        """Resolve a single address as a one-item batch."""
        results = await self.resolve_batch([address])
        return results.get(address)
