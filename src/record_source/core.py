"""
Record Source

Fetches the published client sheet (CSV over HTTP) and turns it into
ClientRecord objects. Transport failures raise RecordSourceError; a
payload that cannot be parsed degrades to an empty list.
"""

import io

import httpx
import pandas as pd

from common.config import HTTP_TIMEOUT_SECONDS
from common.geocoding import Coordinates, parse_coordinates
from common.logging_config import get_logger
from record_source.types import ClientRecord

logger = get_logger("record_source")

# Header keywords per field, matched by substring; first matching column wins
COLUMN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "name": ("상호",),
    "representative": ("대표자", "대표"),
    "legal_form": ("개인/법인", "구분"),
    "business_number": ("사업자번호",),
    "address": ("주소",),
    "phone": ("전화", "연락처"),
    "business_type": ("업태",),
    "category": ("종목",),
    "lat": ("lat", "위도"),
    "lng": ("lng", "경도"),
}


class RecordSourceError(RuntimeError):
    """Raised when the record source cannot be fetched."""


def _resolve_columns(headers: list[str]) -> dict[str, str]:
    """Map each known field to the first header containing one of its keywords."""
    columns: dict[str, str] = {}
    for field_name, keywords in COLUMN_KEYWORDS.items():
        for keyword in keywords:
            match = next((h for h in headers if keyword in h), None)
            if match is not None:
                columns[field_name] = match
                break
    return columns


def _cell(value: object) -> str:
    # Short rows come back as NaN even with keep_default_na=False
    return value.strip() if isinstance(value, str) else ""


def _source_coordinate(lat: str, lng: str) -> Coordinates | None:
    coordinate = parse_coordinates(lat, lng)
    # Sheets fill blank coordinate cells with 0
    if coordinate is None or (coordinate["lat"] == 0 and coordinate["lng"] == 0):
        return None
    return coordinate


def parse_records(text: str) -> list[ClientRecord]:
    """
    Parse a delimited-text payload into client records.

    Args:
        text: CSV text with a header row

    Returns:
        List of ClientRecord; empty if the payload is malformed or has no
        address column
    """
    if not text or not text.strip():
        return []

    try:
        df = pd.read_csv(
            io.StringIO(text.lstrip("\ufeff")),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            on_bad_lines="skip",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        logger.warning(f"Malformed record payload, treating as empty: {e}")
        return []

    headers = [str(h).strip().strip('"') for h in df.columns]
    df.columns = headers
    columns = _resolve_columns(headers)
    if "address" not in columns:
        logger.warning(f"No address column in record payload (headers={headers})")
        return []

    records: list[ClientRecord] = []
    for row in df.to_dict(orient="records"):
        values = {field: _cell(row.get(column)) for field, column in columns.items()}
        if not any(_cell(v) for v in row.values()):
            continue

        records.append(
            ClientRecord(
                id=f"client-{len(records)}",
                name=values.get("name", ""),
                representative=values.get("representative", ""),
                business_type=values.get("business_type", ""),
                category=values.get("category", ""),
                legal_form="Corporation" if "법인" in values.get("legal_form", "") else "Individual",
                address=values.get("address", ""),
                business_number=values.get("business_number", ""),
                phone=values.get("phone", ""),
                coordinate=_source_coordinate(values.get("lat", ""), values.get("lng", "")),
            )
        )

    with_coords = sum(1 for r in records if r.has_coordinate)
    logger.info(f"Parsed {len(records)} client records ({with_coords} with sheet coordinates)")
    return records


class RecordSource:
    """Loads client records from a published CSV URL."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = HTTP_TIMEOUT_SECONDS):
        self._client = client
        self.timeout = timeout

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.get(url)

    async def fetch(self, url: str) -> list[ClientRecord]:
        """
        Fetch and parse the record payload at `url`.

        Raises:
            RecordSourceError: on network errors or non-success status
        """
        if not url:
            raise RecordSourceError("Record source URL is empty")

        logger.info(f"Fetching client records from {url}")
        try:
            response = await self._get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RecordSourceError(f"Failed to fetch records from {url}: {e}") from e

        return parse_records(response.text)
