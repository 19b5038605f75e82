"""
Data models for storage layer.

Defines the usage event record and its persisted form.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass(frozen=True)
class UsageEvent:
    """Immutable record of a single model invocation's token cost.
    
    Append-only events that make up the usage ledger.
    Once recorded, these records must never be modified.
    """
    conversation_id: str
    model_id: str
    input_tokens: int
    output_tokens: int
    timestamp: datetime
    
    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens
    
    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted/exported JSON shape."""
        return {
            "conversationId": self.conversation_id,
            "modelId": self.model_id,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "timestamp": self.timestamp.isoformat(),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageEvent":
        """Parse a persisted entry back into an event.
        
        The stored ``totalTokens`` is ignored and re-derived from the
        input and output counts. A trailing ``Z`` is accepted for UTC and
        naive timestamps are read as local time.
        
        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has an invalid value
            TypeError: If a field has the wrong type
        """
        raw_timestamp = data["timestamp"]
        if raw_timestamp.endswith("Z"):
            raw_timestamp = raw_timestamp[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw_timestamp)
            # must be representable in UTC and in local time
            parsed.astimezone(timezone.utc)
            timestamp = parsed.astimezone()
        except OverflowError as e:
            raise ValueError(f"timestamp out of range: {raw_timestamp}") from e
        for name in ("conversationId", "modelId"):
            if not isinstance(data[name], str):
                raise TypeError(f"{name} must be a string")
        input_tokens = data["inputTokens"]
        output_tokens = data["outputTokens"]
        for name, value in (("inputTokens", input_tokens), ("outputTokens", output_tokens)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an integer")
        return cls(
            conversation_id=data["conversationId"],
            model_id=data["modelId"],
            input_tokens=max(input_tokens, 0),
            output_tokens=max(output_tokens, 0),
            timestamp=timestamp,
        )
