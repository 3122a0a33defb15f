"""Shared pytest fixtures and utilities for all tests."""

import json
import sqlite3

import pytest

from coordinate_cache.core import InMemoryCoordinateCache, SQLiteCoordinateCache
from record_source.types import ClientRecord


class FakeLLMClient:
    """Stands in for ollama.AsyncClient; records every chat() call."""

    def __init__(self, content: str | None = "", error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    async def chat(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return {
            "message": {"role": "assistant", "content": self.content},
            "total_duration": 2_000_000_000,
            "prompt_eval_count": 120,
            "eval_count": 40,
            "eval_duration": 1_000_000_000,
        }


@pytest.fixture
def memory_cache() -> InMemoryCoordinateCache:
    return InMemoryCoordinateCache()


@pytest.fixture
def sqlite_cache(tmp_path) -> SQLiteCoordinateCache:
    return SQLiteCoordinateCache(str(tmp_path / "geocode_cache.db"))


@pytest.fixture
def fake_llm():
    """Factory for fake LLM clients answering with fixed content."""

    def _make(content=None, error: Exception | None = None) -> FakeLLMClient:
        if content is not None and not isinstance(content, str):
            content = json.dumps(content, ensure_ascii=False)
        return FakeLLMClient(content=content, error=error)

    return _make


@pytest.fixture
def make_record():
    """Factory for client records with sensible defaults."""

    def _make(index: int = 0, address: str = "", coordinate=None, **overrides) -> ClientRecord:
        fields = {
            "id": f"client-{index}",
            "name": f"거래처{index}",
            "representative": "홍길동",
            "business_type": "도소매",
            "category": "문구",
            "legal_form": "Individual",
            "address": address,
            "business_number": "123-45-67890",
            "phone": "02-123-4567",
            "coordinate": coordinate,
        }
        fields.update(overrides)
        return ClientRecord(**fields)

    return _make


class LockedCache:
    """Cache whose writes always fail, as a locked SQLite file does."""

    def __init__(self):
        self.attempts = 0

    def get(self, address):
        return None

    def put(self, address, coordinates):
        self.attempts += 1
        raise sqlite3.OperationalError("database is locked")


@pytest.fixture
def locked_cache() -> LockedCache:
    return LockedCache()
