"""
Resolution Orchestrator

Drives one resolution cycle for the client map:

    Idle -> LoadingRecords -> ResolvingCoordinates -> Idle

1. Fetch records from the record source
2. Attach cached coordinates
3. Publish the partial list (first paint)
4. Send the remaining addresses, deduplicated and capped, to the first
   available resolver strategy in one batch
5. Merge the results and publish the final list

Only one cycle runs at a time: a load requested while a cycle is active is
dropped, not queued. Every publish is a full ResolutionSnapshot.
"""

import asyncio
import time
from typing import Callable, Sequence

from address_normalizer.core import normalize
from common.config import MAX_BATCH_SIZE
from common.geocoding import Coordinates
from common.logging_config import get_logger
from common.metrics import cache_hits, cache_misses, cycle_duration
from coordinate_cache.core import CoordinateCache
from record_source.types import ClientRecord
from resolution_orchestrator.types import (
    RecordLoader,
    ResolutionSnapshot,
    ResolutionState,
    Resolver,
)

logger = get_logger("resolution_orchestrator")

Subscriber = Callable[[ResolutionSnapshot], None]


def build_batch(records: Sequence[ClientRecord], max_batch_size: int = MAX_BATCH_SIZE) -> dict[str, str]:
    """
    Pick the addresses to submit for resolution.

    Records without a coordinate are grouped by normalized address, keeping
    the first raw address of each group, in record order, up to the cap.

    Returns:
        Mapping of normalized address -> raw address to submit
    """
    batch: dict[str, str] = {}
    for record in records:
        if record.coordinate is not None:
            continue
        key = normalize(record.address)
        if not key or key in batch:
            continue
        if len(batch) >= max_batch_size:
            break
        batch[key] = record.address
    return batch


def merge_coordinates(
    records: Sequence[ClientRecord],
    batch: dict[str, str],
    results: dict[str, Coordinates],
) -> list[ClientRecord]:
    """Attach resolved coordinates to every record whose address was in the batch."""
    merged: list[ClientRecord] = []
    for record in records:
        if record.coordinate is None and record.address.strip():
            submitted = batch.get(normalize(record.address))
            coordinate = results.get(submitted) if submitted is not None else None
            if coordinate is None:
                coordinate = results.get(record.address)
            if coordinate is not None:
                record = record.with_coordinate(coordinate)
        merged.append(record)
    return merged


class ResolutionOrchestrator:
    """Single-flight state machine turning a record source into a geocoded list."""

    def __init__(
        self,
        record_source: RecordLoader,
        cache: CoordinateCache,
        resolvers: Sequence[Resolver],
        on_publish: Subscriber | None = None,
        max_batch_size: int = MAX_BATCH_SIZE,
    ) -> None:
        self.record_source = record_source
        self.cache = cache
        self.resolvers = list(resolvers)
        self.max_batch_size = max_batch_size
        self._subscribers: list[Subscriber] = [on_publish] if on_publish else []
        self._state = ResolutionState.IDLE
        self._records: list[ClientRecord] = []
        self._error: str | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def records(self) -> list[ClientRecord]:
        return list(self._records)

    @property
    def is_loading_records(self) -> bool:
        return self._state is ResolutionState.LOADING_RECORDS

    @property
    def is_resolving_coordinates(self) -> bool:
        return self._state is ResolutionState.RESOLVING_COORDINATES

    def snapshot(self) -> ResolutionSnapshot:
        """Current records and phase flags."""
        return ResolutionSnapshot(
            records=list(self._records),
            is_loading_records=self.is_loading_records,
            is_resolving_coordinates=self.is_resolving_coordinates,
            error=self._error,
        )

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback receiving every published snapshot."""
        self._subscribers.append(callback)

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for callback in self._subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber failed")

    def _transition(self, state: ResolutionState) -> None:
        logger.debug(f"State {self._state.value} -> {state.value}")
        self._state = state
        self._publish()

    def select_resolver(self) -> Resolver | None:
        """First configured strategy that reports itself available."""
        for resolver in self.resolvers:
            if resolver.available:
                return resolver
        return None

    def _apply_cache(self, records: list[ClientRecord]) -> list[ClientRecord]:
        hits = misses = 0
        resolved: list[ClientRecord] = []
        for record in records:
            if record.coordinate is None and record.address.strip():
                cached = self.cache.get(record.address)
                if cached is not None:
                    record = record.with_coordinate(cached)
                    hits += 1
                else:
                    misses += 1
            resolved.append(record)
        cache_hits.add(hits)
        cache_misses.add(misses)
        logger.info(f"Cache lookup: {hits} hits, {misses} misses")
        return resolved

    def trigger(self, source_url: str) -> asyncio.Task | None:
        """
        Fire-and-forget variant of load().

        Must be called from a running event loop. Returns the scheduled task,
        or None when a cycle is already active.
        """
        pending = self._task is not None and not self._task.done()
        if pending or self._state is not ResolutionState.IDLE:
            logger.info("Resolution cycle already running; refresh ignored")
            return None
        self._task = asyncio.create_task(self.load(source_url))
        return self._task

    async def load(self, source_url: str) -> None:
        """
        Run one resolution cycle for `source_url`.

        Never raises an ordinary exception: failures are logged and the
        orchestrator returns to Idle with the last published record list
        intact. Cancellation also returns the orchestrator to Idle before
        it propagates.
        """
        if self._state is not ResolutionState.IDLE:
            logger.info("Resolution cycle already running; load ignored")
            return

        started = time.perf_counter()
        self._error = None
        self._transition(ResolutionState.LOADING_RECORDS)

        outcome = "cancelled"
        try:
            outcome = await self._run_cycle(source_url)
        finally:
            self._finish(started, outcome)

    async def _run_cycle(self, source_url: str) -> str:
        """Fetch, apply the cache, resolve and merge. Returns the cycle outcome."""
        try:
            records = await self.record_source.fetch(source_url)
        except Exception as e:
            logger.error(f"Loading records failed, keeping previous list: {e}")
            self._error = str(e)
            return "fetch_failed"

        try:
            records = self._apply_cache(list(records))
            batch = build_batch(records, self.max_batch_size)

            if not batch:
                self._records = records
                logger.info(f"Nothing left to resolve for {len(records)} records; skipping resolution")
                return "cached"

            # First paint: cached coordinates only
            self._records = records
            self._transition(ResolutionState.RESOLVING_COORDINATES)

            resolver = self.select_resolver()
            if resolver is None:
                logger.warning(f"No resolver available; {len(batch)} addresses left unresolved")
                results: dict[str, Coordinates] = {}
            else:
                logger.info(f"Resolving {len(batch)} addresses with {resolver.name}")
                results = await resolver.resolve_batch(list(batch.values()))

            self._records = merge_coordinates(records, batch, results)
            remaining = sum(1 for r in self._records if r.coordinate is None and r.address.strip())
            logger.info(f"Resolution merged: {len(results)} resolved, {remaining} still without coordinates")
        except Exception:
            logger.exception("Resolution cycle failed")
            self._error = "Resolution cycle failed"
            return "failed"

        return "completed"

    def _finish(self, started: float, outcome: str) -> None:
        self._transition(ResolutionState.IDLE)
        elapsed_ms = (time.perf_counter() - started) * 1000
        cycle_duration.record(elapsed_ms, attributes={"outcome": outcome})
        logger.info(f"Resolution cycle {outcome} in {elapsed_ms:.0f}ms ({len(self._records)} records)")
