"""
Export formatting for the usage ledger.

Pure formatting over a snapshot of the event log; nothing here mutates or
re-sorts the events it is given.
"""

import csv
import io
import json
from datetime import date, datetime
from typing import Sequence

from usage_ledger.storage.models import UsageEvent

from .analytics import (
    compute_daily_usage,
    compute_model_token_share,
    compute_overall_analytics,
)

CSV_HEADER = [
    "Conversation ID",
    "Model ID",
    "Input Tokens",
    "Output Tokens",
    "Total Tokens",
    "Timestamp",
]


def export_json(
    events: Sequence[UsageEvent],
    exported_at: datetime,
    today: date,
    daily_window: int = 30
) -> str:
    """Serialize raw events plus every aggregate view as pretty-printed JSON.
    
    Args:
        events: Event log in insertion order
        exported_at: Time stamped into the export
        today: Local date the daily window ends on
        daily_window: Number of days in the embedded daily view
        
    Returns:
        JSON document with overall, daily, byModel, rawData and exportedAt
    """
    data = {
        "overall": compute_overall_analytics(events).to_dict(),
        "daily": [d.to_dict() for d in compute_daily_usage(events, daily_window, today)],
        "byModel": [s.to_dict() for s in compute_model_token_share(events)],
        "rawData": [e.to_dict() for e in events],
        "exportedAt": exported_at.isoformat(),
    }
    return json.dumps(data, indent=2)


def export_csv(events: Sequence[UsageEvent]) -> str:
    """Serialize raw events as CSV, one row per event in log order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for event in events:
        writer.writerow([
            event.conversation_id,
            event.model_id,
            event.input_tokens,
            event.output_tokens,
            event.total_tokens,
            event.timestamp.isoformat(),
        ])
    return buffer.getvalue().rstrip("\n")
