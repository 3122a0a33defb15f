"""
Centralized configuration for the client map geocoding pipeline.
All tunable constants and settings are defined here.
"""

import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Record source - published Google Sheet (CSV output)
DEFAULT_SHEET_URL: str = os.environ.get(
    "CLIENT_SHEET_URL",
    "https://docs.google.com/spreadsheets/d/e/2PACX-1vQ7VTCRMlAbmi0WwxQfxSuBUv4JzgWlNYYChrdAQuoTj68nph8p-C4iMWRfhmWV7TpKmui-SyzKx-Pr/pub?gid=1142932116&single=true&output=csv",
)

# Transport timeout shared by every httpx call
HTTP_TIMEOUT_SECONDS: float = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15"))

# Batch resolution - addresses beyond this cap wait for the next load
MAX_BATCH_SIZE: int = 30

# Coordinate cache
CACHE_KEY_PREFIX: str = "geo_cache_"
CACHE_DB_PATH: str = os.environ.get("GEOCODE_CACHE_PATH", "data/geocode_cache.db")

# Rule-based resolver (Nominatim free-text search)
NOMINATIM_SEARCH_URL: str = os.environ.get(
    "NOMINATIM_URL", "https://nominatim.openstreetmap.org/search"
)
NOMINATIM_ACCEPT_LANGUAGE: str = "ko-KR,ko;q=0.9"
NOMINATIM_USER_AGENT: str = "client-map-geocoder/1.0"

# Truncation fallback stops once fewer tokens than this remain
MIN_FALLBACK_TOKENS: int = 3

# Public Nominatim allows one request per second
RULE_BASED_REQUEST_DELAY_SECONDS: float = 1.0

# Batch AI resolver - disabled or hostless means "unavailable"
BATCH_GEOCODER_ENABLED: bool = _env_flag("BATCH_GEOCODER_ENABLED", True)

# LLM settings
LLM_MODEL: str = os.environ.get("LLM_MODEL", "qwen3:8b")

# Ollama endpoint; hosted Ollama additionally needs an API key
LLM_HOST: str | None = os.environ.get("OLLAMA_HOST", "http://localhost:11434") or None
LLM_API_KEY: str | None = os.environ.get("OLLAMA_API_KEY") or None

# LLM model parameters (Ollama options)
# Context window size - 30 addresses plus instructions fit comfortably
LLM_NUM_CTX: int = 8192

# Temperature - geocoding wants deterministic answers
LLM_TEMPERATURE: float = 0.0

LLM_TOP_P: float = 0.9
LLM_TOP_K: int = 40

# Number of tokens to predict (-1 = infinite, -2 = fill context)
LLM_NUM_PREDICT: int = -1

# Temperature for the free-text client briefing
LLM_INSIGHTS_TEMPERATURE: float = 0.7

# System prompt prepended to every call (optional, set to None to disable)
LLM_SYSTEM_PROMPT: str | None = None

# Qwen 3 "Thinking" Mode - True forces direct responses
LLM_DISABLE_THINKING: bool = _env_flag("LLM_DISABLE_THINKING", True)

LLM_NO_THINK_PROMPT: str = "Respond directly. Do not use internal reasoning tokens."
