"""Tests for client map formatting utilities."""

from client_map_app.formatting import (
    LOADING_RECORDS_LABEL,
    MISSING_LOCATION_MARKER,
    RESOLVING_COORDINATES_LABEL,
    filter_records,
    format_error_for_display,
    format_record,
    format_records,
    format_status,
)
from resolution_orchestrator.types import ResolutionSnapshot

SHINGIL = {"lat": 37.50712, "lng": 126.9141}


class TestFormatStatus:
    """Tests for format_status function."""

    def test_loading(self):
        """Loading records shows the loading label."""
        assert format_status(ResolutionSnapshot(is_loading_records=True)) == LOADING_RECORDS_LABEL

    def test_resolving(self):
        """Resolving coordinates shows the analysis label."""
        assert format_status(ResolutionSnapshot(is_resolving_coordinates=True)) == RESOLVING_COORDINATES_LABEL

    def test_idle(self):
        """Idle shows nothing."""
        assert format_status(ResolutionSnapshot()) == ""


class TestFormatRecord:
    """Tests for format_record function."""

    def test_located_record(self, make_record):
        """Located records show their position."""
        line = format_record(make_record(0, "서울 영등포구 신길로 220", coordinate=SHINGIL, name="신길상사"))
        assert line.startswith("신길상사 (홍길동, 개인)")
        assert "37.50712, 126.91410" in line

    def test_missing_location_marker(self, make_record):
        """Unlocated records carry the missing-location marker."""
        line = format_record(make_record(0, "서울 영등포구 신길로 220"))
        assert line.endswith(MISSING_LOCATION_MARKER)

    def test_corporation_label(self, make_record):
        """Corporations are labelled 법인."""
        assert "법인" in format_record(make_record(0, "", legal_form="Corporation"))

    def test_blank_name_and_address(self, make_record):
        """Blank name and address get placeholders."""
        line = format_record(make_record(0, "", name=""))
        assert line.startswith("이름 없음")
        assert "| - |" in line


class TestFormatRecords:
    """Tests for format_records function."""

    def test_empty_list(self):
        """An empty list has its own message."""
        assert format_records([]) == "표시할 데이터가 없습니다."

    def test_summary_and_numbering(self, make_record):
        """A summary line counts located and unlocated clients."""
        records = [
            make_record(0, "서울 영등포구 신길로 220", coordinate=SHINGIL),
            make_record(1, "서울 중구 세종대로 110"),
        ]
        lines = format_records(records).split("\n")
        assert lines[0] == "거래처 2곳 (위치 확인 1곳, 위치 없음 1곳)"
        assert lines[1].startswith("1. ")
        assert lines[2].startswith("2. ")


class TestFilterRecords:
    """Tests for filter_records function."""

    def test_matches_name_representative_and_address(self, make_record):
        """Search covers name, representative and address."""
        records = [
            make_record(0, "서울 영등포구 신길로 220", name="신길상사"),
            make_record(1, "부산 해운대구 우동 1", name="해운대식당", representative="이영희"),
            make_record(2, "서울 중구 세종대로 110", name="Sejong Stationery"),
        ]
        assert [r.id for r in filter_records(records, "신길")] == ["client-0"]
        assert [r.id for r in filter_records(records, "이영희")] == ["client-1"]
        assert [r.id for r in filter_records(records, "서울")] == ["client-0", "client-2"]
        assert [r.id for r in filter_records(records, "sejong")] == ["client-2"]

    def test_blank_query_returns_all(self, make_record):
        """An empty query matches everything."""
        records = [make_record(0, "서울 영등포구 신길로 220")]
        assert filter_records(records, "  ") == records


class TestFormatErrorForDisplay:
    """Tests for format_error_for_display function."""

    def test_fetch_failure(self):
        """Fetch failures point at the CSV URL."""
        message = format_error_for_display("Failed to fetch records from https://x: 404")
        assert "CSV" in message

    def test_timeout(self):
        """Timeouts get a retry hint."""
        assert "시간" in format_error_for_display("Read timeout")

    def test_unknown_error(self):
        """Unknown and empty errors get a generic message."""
        generic = "알 수 없는 오류가 발생했습니다. 다시 시도해주세요."
        assert format_error_for_display("KeyError: 'lat'") == generic
        assert format_error_for_display("") == generic
