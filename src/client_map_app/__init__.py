"""
Client map presentation helpers.

UI-agnostic formatting of resolution snapshots and a command-line runner
around the resolution orchestrator: Record Source → Cache → Resolver → list.
"""

from client_map_app.formatting import (
    filter_records,
    format_error_for_display,
    format_record,
    format_records,
    format_status,
)

__all__ = [
    "filter_records",
    "format_error_for_display",
    "format_record",
    "format_records",
    "format_status",
]
