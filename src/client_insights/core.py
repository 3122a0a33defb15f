"""
Client Insights

Generates a short visit briefing for one client, written as a small-business
consultant would say it. Shown on the client detail card; failures fall back
to a fixed message.
"""

from typing import Any

from common.config import LLM_INSIGHTS_TEMPERATURE
from common.llm_utils import get_ai_response
from common.logging_config import get_logger
from record_source.types import ClientRecord

logger = get_logger("client_insights")

FALLBACK_MESSAGE = "현재 AI 비서가 응답할 수 없습니다."

SYSTEM_PROMPT = """당신은 한국의 중소기업 전문 경영 컨설턴트입니다.
거래처 정보를 바탕으로 영업 담당자를 위한 방문 상담 가이드를 작성하세요.
3~4줄 내외의 친절한 구어체로 작성하고, 목록이나 제목 없이 본문만 답하세요."""


def build_prompt(record: ClientRecord) -> str:
    """Describe the client for the consultant prompt."""
    parts = [
        f"상호: {record.name or '-'}",
        f"업태: {record.business_type or '-'}",
        f"종목: {record.category or '-'}",
        f"구분: {'법인' if record.legal_form == 'Corporation' else '개인'}",
        f"주소: {record.address or '-'}",
    ]
    return ", ".join(parts)


async def generate_client_insights(record: ClientRecord, client: Any = None) -> str:
    """
    Generate a visit briefing for a client.

    Args:
        record: The client to brief on
        client: Optional Ollama-compatible async client

    Returns:
        The briefing text, or FALLBACK_MESSAGE if the LLM is unreachable or
        answers with nothing
    """
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_prompt(record)},
    ]
    try:
        text = await get_ai_response(messages, client=client, temperature=LLM_INSIGHTS_TEMPERATURE)
    except Exception as e:
        logger.warning(f"Insight generation failed for {record.id}: {e}")
        return FALLBACK_MESSAGE

    text = (text or "").strip()
    if not text:
        logger.warning(f"Empty insight response for {record.id}")
        return FALLBACK_MESSAGE
    return text
