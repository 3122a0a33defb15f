"""
Formatting utilities for the client map.

Provides display formatting for phase indicators, client records and
error messages, plus the sidebar search filter. All functions are
UI-agnostic and return plain strings or lists.
"""

from record_source.types import ClientRecord
from resolution_orchestrator.types import ResolutionSnapshot

# Phase labels shown while a cycle runs
LOADING_RECORDS_LABEL = "데이터 로딩 중..."
RESOLVING_COORDINATES_LABEL = "주소 분석 중..."

MISSING_LOCATION_MARKER = "⚠ 위치 없음"
LOCATED_MARKER = "📍"

LEGAL_FORM_LABELS = {"Corporation": "법인", "Individual": "개인"}


def format_status(snapshot: ResolutionSnapshot) -> str:
    """
    Format the transient status indicator for a snapshot.

    Returns:
        The loading label, the resolving label, or "" when idle.
    """
    if snapshot.is_resolving_coordinates:
        return RESOLVING_COORDINATES_LABEL
    if snapshot.is_loading_records:
        return LOADING_RECORDS_LABEL
    return ""


def format_record(record: ClientRecord) -> str:
    """
    Format one client as a single list line.

    Records without a coordinate carry the missing-location marker instead
    of a position.
    """
    legal_form = LEGAL_FORM_LABELS.get(record.legal_form, record.legal_form)
    name = record.name or "이름 없음"
    head = f"{name} ({record.representative or '-'}, {legal_form})"
    address = record.address or "-"

    if record.coordinate is None:
        return f"{head} | {address} | {MISSING_LOCATION_MARKER}"
    lat, lng = record.coordinate["lat"], record.coordinate["lng"]
    return f"{head} | {address} | {LOCATED_MARKER} {lat:.5f}, {lng:.5f}"


def format_records(records: list[ClientRecord]) -> str:
    """
    Format the client list with a summary line.

    Example output:
        거래처 3곳 (위치 확인 2곳, 위치 없음 1곳)
        1. 신길상사 (홍길동, 법인) | 서울 영등포구 신길로 220 | 📍 37.50712, 126.91410
    """
    if not records:
        return "표시할 데이터가 없습니다."

    located = sum(1 for r in records if r.coordinate is not None)
    lines = [f"거래처 {len(records)}곳 (위치 확인 {located}곳, 위치 없음 {len(records) - located}곳)"]
    for i, record in enumerate(records, 1):
        lines.append(f"{i}. {format_record(record)}")
    return "\n".join(lines)


def filter_records(records: list[ClientRecord], query: str) -> list[ClientRecord]:
    """Case-insensitive search over name, representative and address."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)
    return [
        r
        for r in records
        if needle in r.name.lower()
        or needle in r.representative.lower()
        or needle in r.address.lower()
    ]


def format_error_for_display(error: str) -> str:
    """
    Convert an internal error message to a user-friendly one.

    Args:
        error: The raw error message

    Returns:
        A sanitized message without technical details.
    """
    if not error:
        return "알 수 없는 오류가 발생했습니다. 다시 시도해주세요."

    error_mappings = {
        "Failed to fetch records": "데이터 로딩 실패! URL이 CSV 형식이 맞는지 확인해주세요.",
        "Record source URL is empty": "데이터 소스 URL을 입력해주세요.",
        "timeout": "요청 시간이 초과되었습니다. 다시 시도해주세요.",
        "connection": "네트워크 연결을 확인해주세요.",
    }

    error_lower = error.lower()
    for pattern, friendly in error_mappings.items():
        if pattern.lower() in error_lower:
            return friendly

    return "알 수 없는 오류가 발생했습니다. 다시 시도해주세요."
