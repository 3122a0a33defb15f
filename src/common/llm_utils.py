"""LLM utilities for Ollama interactions."""

import json
import re
from typing import Any

import ollama

from common.config import (
    LLM_API_KEY,
    LLM_DISABLE_THINKING,
    LLM_HOST,
    LLM_MODEL,
    LLM_NO_THINK_PROMPT,
    LLM_NUM_CTX,
    LLM_NUM_PREDICT,
    LLM_SYSTEM_PROMPT,
    LLM_TEMPERATURE,
    LLM_TOP_K,
    LLM_TOP_P,
)
from common.logging_config import get_logger
from common.metrics import (
    llm_completion_tokens,
    llm_generation_duration,
    llm_prompt_tokens,
    llm_total_duration,
    llm_tps,
    llm_ttft,
)

logger = get_logger("common_llm_utils")

logger.info(f"LLM configured: model={LLM_MODEL}, host={LLM_HOST}, temp={LLM_TEMPERATURE}")

# Matches a ```json ... ``` fenced block, which some models emit even in JSON mode
_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

# Shared async client, created on first use
_client: ollama.AsyncClient | None = None


def _get_client() -> ollama.AsyncClient:
    """Get or create the Ollama async client (cached)."""
    global _client
    if _client is None:
        headers = {"Authorization": f"Bearer {LLM_API_KEY}"} if LLM_API_KEY else None
        _client = ollama.AsyncClient(host=LLM_HOST, headers=headers)
    return _client


def _log_metrics(response: Any, caller: str = "unknown") -> None:
    """
    Log and export LLM performance metrics from Ollama response.

    Ollama returns timing data in nanoseconds. We convert to human-readable format
    and emit OpenTelemetry metrics.
    """
    total_ns = response.get("total_duration") or 0
    prompt_eval_ns = response.get("prompt_eval_duration") or 0
    eval_ns = response.get("eval_duration") or 0
    load_ns = response.get("load_duration") or 0
    prompt_tokens = response.get("prompt_eval_count") or 0
    completion_tokens = response.get("eval_count") or 0

    total_ms = total_ns / 1_000_000
    ttft_ms = (load_ns + prompt_eval_ns) / 1_000_000
    eval_ms = eval_ns / 1_000_000
    tps = (completion_tokens / (eval_ns / 1_000_000_000)) if eval_ns > 0 else 0

    logger.info(
        f"[{caller}] "
        f"total={total_ms:.0f}ms | "
        f"TTFT={ttft_ms:.0f}ms | "
        f"generation={eval_ms:.0f}ms | "
        f"tokens={prompt_tokens}→{completion_tokens} | "
        f"TPS={tps:.1f}"
    )

    attrs = {"caller": caller, "model": LLM_MODEL}
    llm_ttft.record(ttft_ms, attributes=attrs)
    llm_total_duration.record(total_ms, attributes=attrs)
    llm_generation_duration.record(eval_ms, attributes=attrs)
    llm_tps.record(tps, attributes=attrs)
    llm_prompt_tokens.add(prompt_tokens, attributes=attrs)
    llm_completion_tokens.add(completion_tokens, attributes=attrs)


def _get_llm_options(temperature: float | None = None) -> dict:
    """Build the options dict for Ollama calls from config."""
    return {
        "num_ctx": LLM_NUM_CTX,
        "temperature": LLM_TEMPERATURE if temperature is None else temperature,
        "top_p": LLM_TOP_P,
        "top_k": LLM_TOP_K,
        "num_predict": LLM_NUM_PREDICT,
    }


def _prepare_messages(messages: list[dict]) -> list[dict]:
    """Prepend the configured system prompt and no-think instruction."""
    effective_system_prompt = LLM_SYSTEM_PROMPT

    if LLM_DISABLE_THINKING and effective_system_prompt is None:
        effective_system_prompt = LLM_NO_THINK_PROMPT
    elif LLM_DISABLE_THINKING and effective_system_prompt is not None:
        effective_system_prompt = f"{LLM_NO_THINK_PROMPT}\n\n{effective_system_prompt}"

    if effective_system_prompt is None:
        return messages

    if messages and messages[0].get("role") == "system":
        if LLM_DISABLE_THINKING:
            updated_messages = messages.copy()
            updated_messages[0] = {
                "role": "system",
                "content": f"{LLM_NO_THINK_PROMPT}\n\n{messages[0]['content']}",
            }
            return updated_messages
        return messages

    return [{"role": "system", "content": effective_system_prompt}] + messages


def _log_llm_context(messages: list[dict], caller: str = "unknown") -> None:
    """
    Log the full LLM context/messages for debugging prompts.

    Uses DEBUG level - control visibility via logging configuration.
    """
    logger.debug(f"LLM CALL from: {caller} | model={LLM_MODEL} | messages={len(messages)}")
    for i, msg in enumerate(messages):
        logger.debug(f"[{i}] {msg.get('role', 'unknown').upper()}: {msg.get('content', '')}")


def extract_json(text: str) -> dict | list | None:
    """
    Parse a JSON payload out of raw model output.

    Accepts bare JSON, JSON wrapped in a Markdown code fence, or JSON
    embedded in surrounding prose (first object or array wins).

    Returns:
        The parsed dict or list, or None if nothing parseable was found
    """
    if not text:
        return None

    candidate = text.strip()
    fenced = _CODE_FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        starts = [i for i in (candidate.find("["), candidate.find("{")) if i != -1]
        if not starts:
            return None
        start = min(starts)
        end = candidate.rfind("]" if candidate[start] == "[" else "}")
        if end <= start:
            return None
        try:
            parsed = json.loads(candidate[start : end + 1])
        except json.JSONDecodeError:
            return None

    if isinstance(parsed, (dict, list)):
        return parsed
    return None


async def get_ai_response(
    messages: list[dict],
    client: Any = None,
    temperature: float | None = None,
) -> str:
    """Get a plain text response from the LLM."""
    llm = client or _get_client()
    prepared_messages = _prepare_messages(messages)
    _log_llm_context(prepared_messages, caller="get_ai_response")
    response = await llm.chat(
        model=LLM_MODEL,
        messages=prepared_messages,
        options=_get_llm_options(temperature),
    )
    response_content = response["message"]["content"]
    _log_metrics(response, caller="get_ai_response")
    logger.debug(f"LLM RESPONSE: {response_content}")
    return response_content


async def get_json_response(messages: list[dict], client: Any = None) -> dict | list | None:
    """
    Get a JSON response from the LLM (forces JSON format).

    Never raises: transport errors, Ollama errors and unparseable output
    all come back as None.
    """
    llm = client or _get_client()
    prepared_messages = _prepare_messages(messages)
    _log_llm_context(prepared_messages, caller="get_json_response")
    try:
        response = await llm.chat(
            model=LLM_MODEL,
            messages=prepared_messages,
            format="json",
            options=_get_llm_options(),
        )
        content = response["message"]["content"]
        _log_metrics(response, caller="get_json_response")
    except Exception as e:
        logger.warning(f"LLM JSON call failed: {e}")
        return None

    logger.debug(f"LLM JSON RESPONSE: {content}")

    parsed = extract_json(content)
    if parsed is None:
        logger.warning("Failed to parse LLM JSON response")
    return parsed
