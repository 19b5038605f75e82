# usage_ledger/demo/seed_demo_data.py

from usage_ledger.core.ledger import UsageLedger
from usage_ledger.storage.repository import SQLiteKeyValueStore

DEMO_USAGE = [
    ("conv-onboarding", "gemma-2b-it-gpu-int4", 120, 340),
    ("conv-onboarding", "gemma-2b-it-gpu-int4", 410, 280),
    ("conv-recipes", "gemma-2b-it-gpu-int4", 95, 610),
    ("conv-code-review", "gemma-7b-it-gpu-int8", 1800, 950),
    ("conv-code-review", "gemma-7b-it-gpu-int8", 2600, 1200),
]


def seed_demo_events(ledger: UsageLedger) -> int:
    """Record the demo usage into ledger and return the number of events."""
    for conversation_id, model_id, input_tokens, output_tokens in DEMO_USAGE:
        ledger.record(conversation_id, model_id, input_tokens, output_tokens)
    return len(DEMO_USAGE)


if __name__ == "__main__":
    count = seed_demo_events(UsageLedger(SQLiteKeyValueStore()))
    print(f"Inserted {count} demo usage events")
