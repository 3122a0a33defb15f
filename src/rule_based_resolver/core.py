"""
Rule-Based Resolver

Resolves one address at a time against the Nominatim free-text search:
1. Normalize the address
2. Query with limit=1 and a Korean language preference
3. On no result, drop the last token and retry while at least
   MIN_FALLBACK_TOKENS tokens remain, pausing request_delay before each retry

Transport and payload failures count as "no result" for that step, and a
failed cache write only loses the cache entry; the resolver never raises
to its caller.
"""

import asyncio

import httpx

from address_normalizer.core import normalize
from common.config import (
    HTTP_TIMEOUT_SECONDS,
    MIN_FALLBACK_TOKENS,
    NOMINATIM_ACCEPT_LANGUAGE,
    NOMINATIM_SEARCH_URL,
    NOMINATIM_USER_AGENT,
    RULE_BASED_REQUEST_DELAY_SECONDS,
)
from common.geocoding import Coordinates, parse_coordinates
from common.logging_config import get_logger
from common.metrics import resolver_failures, resolver_requests, resolver_resolved
from coordinate_cache.core import CoordinateCache

logger = get_logger("rule_based_resolver")

STRATEGY_NAME = "rule_based"

_REQUEST_HEADERS = {
    "Accept-Language": NOMINATIM_ACCEPT_LANGUAGE,
    "User-Agent": NOMINATIM_USER_AGENT,
}


class RuleBasedResolver:
    """Nominatim geocoder with progressive truncation fallback."""

    name = STRATEGY_NAME

    def __init__(
        self,
        cache: CoordinateCache | None = None,
        client: httpx.AsyncClient | None = None,
        search_url: str = NOMINATIM_SEARCH_URL,
        request_delay: float = RULE_BASED_REQUEST_DELAY_SECONDS,
        min_tokens: int = MIN_FALLBACK_TOKENS,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.cache = cache
        self.search_url = search_url
        self.request_delay = request_delay
        self.min_tokens = min_tokens
        self.timeout = timeout
        self._client = client

    @property
    def available(self) -> bool:
        return bool(self.search_url)

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout)

    async def _search(self, client: httpx.AsyncClient, query: str) -> Coordinates | None:
        """Run one search request; any failure is logged and returns None."""
        resolver_requests.add(1, attributes={"strategy": STRATEGY_NAME})
        try:
            response = await client.get(
                self.search_url,
                params={"q": query, "format": "json", "limit": 1},
                headers=_REQUEST_HEADERS,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            resolver_failures.add(1, attributes={"strategy": STRATEGY_NAME})
            logger.warning(f"Nominatim request failed for '{query}': {e}")
            return None

        if not isinstance(payload, list):
            resolver_failures.add(1, attributes={"strategy": STRATEGY_NAME})
            logger.warning(f"Unexpected Nominatim payload for '{query}': {type(payload).__name__}")
            return None
        if not payload:
            return None

        first = payload[0]
        if not isinstance(first, dict):
            resolver_failures.add(1, attributes={"strategy": STRATEGY_NAME})
            return None
        return parse_coordinates(first.get("lat"), first.get("lon"))

    def _store(self, address: str, coordinates: Coordinates) -> None:
        """Write a hit to the cache; a storage failure only costs the cache entry."""
        if self.cache is None:
            return
        try:
            self.cache.put(address, coordinates)
        except Exception as e:
            logger.warning(f"Could not cache coordinates for '{address}': {e}")

    async def _resolve_with(self, client: httpx.AsyncClient, address: str) -> Coordinates | None:
        query = normalize(address)
        tokens = query.split(" ") if query else []
        if not tokens:
            return None

        while True:
            attempt = " ".join(tokens)
            coordinates = await self._search(client, attempt)
            if coordinates is not None:
                logger.debug(f"Resolved '{address}' via '{attempt}'")
                self._store(address, coordinates)
                resolver_resolved.add(1, attributes={"strategy": STRATEGY_NAME})
                return coordinates

            tokens = tokens[:-1]
            if len(tokens) < self.min_tokens:
                logger.debug(f"No result for '{address}' after truncation fallback")
                return None
            # Retries hit the same public endpoint
            if self.request_delay > 0:
                await asyncio.sleep(self.request_delay)

    async def resolve(self, address: str) -> Coordinates | None:
        """
        Resolve a single raw address.

        Args:
            address: Raw address string

        Returns:
            Coordinates of the first search hit, or None
        """
        if self._client is not None:
            return await self._resolve_with(self._client, address)
        async with self._new_client() as client:
            return await self._resolve_with(client, address)

    async def resolve_batch(self, addresses: list[str]) -> dict[str, Coordinates]:
        """
        Resolve addresses sequentially, pausing request_delay between requests.

        Returns:
            Mapping of input address -> coordinates for the ones that resolved
        """
        results: dict[str, Coordinates] = {}
        if not addresses:
            return results

        async def run(client: httpx.AsyncClient) -> None:
            for index, address in enumerate(addresses):
                if index and self.request_delay > 0:
                    await asyncio.sleep(self.request_delay)
                coordinates = await self._resolve_with(client, address)
                if coordinates is not None:
                    results[address] = coordinates

        if self._client is not None:
            await run(self._client)
        else:
            async with self._new_client() as client:
                await run(client)

        logger.info(f"Rule-based resolution: {len(results)}/{len(addresses)} addresses resolved")
        return results
