"""Tests for the batch AI resolver."""

import asyncio

from batch_ai_resolver.core import BatchAIResolver, _build_prompt, _extract_items

ADDRESSES = [
    "서울 영등포구 신길로 220",
    "서울 중구 세종대로 110",
    "부산 해운대구 해운대해변로 264",
    "대전 서구 둔산로 100",
    "광주 서구 내방로 111",
]


def _triple(address: str, lat=37.5, lng=126.9) -> dict:
    return {"address": address, "lat": lat, "lng": lng}


def _make_resolver(llm, cache, **kwargs) -> BatchAIResolver:
    return BatchAIResolver(cache, llm_client=llm, enabled=True, **kwargs)


class TestResolveBatch:
    """Tests for BatchAIResolver.resolve_batch."""

    def test_partial_result(self, fake_llm, memory_cache):
        """Addresses the model leaves out are absent, not errors."""
        llm = fake_llm({"results": [_triple(a) for a in ADDRESSES[:3]]})
        results = asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES))
        assert set(results) == set(ADDRESSES[:3])
        assert results[ADDRESSES[0]] == {"lat": 37.5, "lng": 126.9}

    def test_single_request_per_batch(self, fake_llm, memory_cache):
        """The whole batch goes out in one JSON-mode call."""
        llm = fake_llm({"results": []})
        asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES))
        assert len(llm.calls) == 1
        assert llm.calls[0]["format"] == "json"
        prompt = llm.calls[0]["messages"][-1]["content"]
        for address in ADDRESSES:
            assert address in prompt

    def test_invalid_coordinates_dropped(self, fake_llm, memory_cache):
        """Missing or non-numeric coordinates are dropped, never zeroed."""
        llm = fake_llm(
            {
                "results": [
                    _triple(ADDRESSES[0]),
                    {"address": ADDRESSES[1], "lat": None, "lng": 126.9},
                    {"address": ADDRESSES[2], "lat": "unknown", "lng": "?"},
                    {"address": ADDRESSES[3]},
                ]
            }
        )
        results = asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES))
        assert list(results) == [ADDRESSES[0]]
        assert memory_cache.get(ADDRESSES[1]) is None
        assert len(memory_cache) == 1

    def test_numeric_strings_accepted(self, fake_llm, memory_cache):
        """Coordinates given as numeric strings are parsed."""
        llm = fake_llm({"results": [_triple(ADDRESSES[0], lat="37.5", lng="126.9")]})
        results = asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES[:1]))
        assert results[ADDRESSES[0]] == {"lat": 37.5, "lng": 126.9}

    def test_writes_every_valid_triple_to_cache(self, fake_llm, memory_cache):
        """Each resolved address is cached under its normalized form."""
        llm = fake_llm({"results": [_triple(a, lat=35.0 + i) for i, a in enumerate(ADDRESSES[:2])]})
        asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES[:2]))
        assert memory_cache.get(ADDRESSES[0]) == {"lat": 35.0, "lng": 126.9}
        assert memory_cache.get(ADDRESSES[1]) == {"lat": 36.0, "lng": 126.9}

    def test_matches_cleaned_address_back_to_original(self, fake_llm, memory_cache):
        """A model answer keyed by the cleaned address maps to the raw input."""
        raw = "07313 서울 영등포구 신길로 220 102호(신길동)"
        llm = fake_llm({"results": [_triple("서울 영등포구 신길로 220")]})
        results = asyncio.run(_make_resolver(llm, memory_cache).resolve_batch([raw]))
        assert results == {raw: {"lat": 37.5, "lng": 126.9}}
        assert memory_cache.get(raw) == {"lat": 37.5, "lng": 126.9}

    def test_unknown_address_cached_but_not_returned(self, fake_llm, memory_cache):
        """Addresses that were never submitted do not appear in the result."""
        llm = fake_llm({"results": [_triple("제주 제주시 문연로 6")]})
        results = asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES[:1]))
        assert results == {}

    def test_bare_list_payload(self, fake_llm, memory_cache):
        """A top-level JSON array of triples is accepted."""
        llm = fake_llm([_triple(ADDRESSES[0])])
        results = asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES[:1]))
        assert ADDRESSES[0] in results

    def test_unparseable_output_yields_empty(self, fake_llm, memory_cache):
        """Non-JSON model output resolves nothing."""
        llm = fake_llm("죄송합니다, 좌표를 찾을 수 없습니다.")
        assert asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES)) == {}

    def test_llm_failure_yields_empty(self, fake_llm, memory_cache):
        """A failing LLM call resolves nothing and does not raise."""
        llm = fake_llm(error=ConnectionError("ollama is down"))
        assert asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(ADDRESSES)) == {}
        assert len(memory_cache) == 0

    def test_disabled_makes_no_call(self, fake_llm, memory_cache):
        """A disabled resolver answers {} without contacting the model."""
        llm = fake_llm({"results": [_triple(ADDRESSES[0])]})
        resolver = BatchAIResolver(memory_cache, llm_client=llm, enabled=False)
        assert resolver.available is False
        assert asyncio.run(resolver.resolve_batch(ADDRESSES)) == {}
        assert llm.calls == []

    def test_caps_batch_size(self, fake_llm, memory_cache):
        """Only the first max_batch_size addresses are submitted."""
        addresses = [f"서울 영등포구 신길로 {100 + i}" for i in range(35)]
        llm = fake_llm({"results": []})
        asyncio.run(_make_resolver(llm, memory_cache, max_batch_size=30).resolve_batch(addresses))
        prompt = llm.calls[0]["messages"][-1]["content"]
        assert "Geocode these 30 addresses" in prompt
        assert addresses[29] in prompt
        assert addresses[30] not in prompt

    def test_blank_and_duplicate_addresses_skipped(self, fake_llm, memory_cache):
        """Blank entries are dropped and duplicates submitted once."""
        llm = fake_llm({"results": []})
        resolver = _make_resolver(llm, memory_cache)
        asyncio.run(resolver.resolve_batch(["", "  ", ADDRESSES[0], ADDRESSES[0]]))
        assert "Geocode these 1 addresses" in llm.calls[0]["messages"][-1]["content"]

    def test_all_blank_makes_no_call(self, fake_llm, memory_cache):
        """A batch with nothing to resolve never reaches the model."""
        llm = fake_llm({"results": []})
        assert asyncio.run(_make_resolver(llm, memory_cache).resolve_batch(["", " "])) == {}
        assert llm.calls == []


class TestResolveOne:
    """Tests for BatchAIResolver.resolve."""

    def test_resolves_single_address(self, fake_llm, memory_cache):
        """resolve() is a one-item batch."""
        llm = fake_llm({"results": [_triple(ADDRESSES[0])]})
        assert asyncio.run(_make_resolver(llm, memory_cache).resolve(ADDRESSES[0])) == {"lat": 37.5, "lng": 126.9}

    def test_unresolved_returns_none(self, fake_llm, memory_cache):
        """An address the model skips resolves to None."""
        llm = fake_llm({"results": []})
        assert asyncio.run(_make_resolver(llm, memory_cache).resolve(ADDRESSES[0])) is None


class TestAvailability:
    """Tests for the available property."""

    def test_unavailable_without_host_or_client(self, memory_cache):
        """No host and no injected client means unavailable."""
        assert BatchAIResolver(memory_cache, enabled=True, host="").available is False

    def test_injected_client_is_enough(self, fake_llm, memory_cache):
        """An injected client makes the resolver available without a host."""
        assert BatchAIResolver(memory_cache, llm_client=fake_llm(), enabled=True, host="").available is True


class TestHelpers:
    """Tests for prompt and payload helpers."""

    def test_build_prompt_numbers_addresses(self):
        """Addresses are listed one per line with 1-based numbers."""
        prompt = _build_prompt(ADDRESSES[:2])
        assert f"1. {ADDRESSES[0]}" in prompt
        assert f"2. {ADDRESSES[1]}" in prompt

    def test_extract_items_variants(self):
        """Results are found under 'results', another list key, or as one object."""
        triple = _triple(ADDRESSES[0])
        assert _extract_items({"results": [triple]}) == [triple]
        assert _extract_items({"addresses": [triple]}) == [triple]
        assert _extract_items(triple) == [triple]
        assert _extract_items([triple]) == [triple]
        assert _extract_items("nope") == []


class TestCacheWriteFailure:
    """Tests for resolution when the cache cannot be written."""

    def test_results_survive_failed_writes(self, fake_llm, locked_cache):
        """A locked cache does not stop results from being returned."""
        llm = fake_llm({"results": [_triple(a) for a in ADDRESSES[:2]]})
        resolver = _make_resolver(llm, locked_cache)
        results = asyncio.run(resolver.resolve_batch(ADDRESSES[:2]))
        assert set(results) == set(ADDRESSES[:2])
        assert locked_cache.attempts == 2
