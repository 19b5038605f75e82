"""
Usage ledger: append-only token usage log with derived analytics.

The ledger is the only writer of its event log. It loads the full history
from a durable key-value store on construction and rewrites the stored log
after every recorded event. Storage problems are logged and never raised:
the in-memory log is authoritative for the running session.
"""

import json
import logging
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Tuple

from usage_ledger.storage.models import UsageEvent
from usage_ledger.storage.repository import StorageError

from .analytics import (
    ConversationAnalytics,
    DailyUsage,
    ModelAnalytics,
    ModelTokenShare,
    OverallAnalytics,
    compute_conversation_analytics,
    compute_daily_usage,
    compute_model_analytics,
    compute_model_token_share,
    compute_overall_analytics,
)
from .export import export_csv, export_json
from .token_counter import TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "browsergpt_analytics"
LOG_FIELD = "tokenUsageLog"


class KeyValueStore(Protocol):
    """Durable store collaborator used by the ledger."""
    
    def get(self, key: str) -> Optional[str]: ...
    
    def set(self, key: str, value: str) -> None: ...
    
    def delete(self, key: str) -> None: ...


def local_now() -> datetime:
    """Current time as an aware datetime in the local time zone."""
    return datetime.now().astimezone()


class UsageLedger:
    """Durable, queryable record of every model invocation's token cost.
    
    Construct one per running application and pass it to whichever layer
    records or queries usage.
    """
    
    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], datetime] = local_now,
        storage_key: str = DEFAULT_STORAGE_KEY
    ):
        """Initialize the ledger and load any persisted history.
        
        Args:
            store: Durable key-value store holding the event log
            clock: Zero-argument callable returning the current time
            storage_key: Key the event log is stored under
        """
        self._store = store
        self._clock = clock
        self._storage_key = storage_key
        self._events: List[UsageEvent] = self._load()
    
    def _now(self) -> datetime:
        return self._clock().astimezone()
    
    def _load(self) -> List[UsageEvent]:
        """Read the persisted log; missing or corrupt data yields an empty log."""
        try:
            stored = self._store.get(self._storage_key)
        except (StorageError, OSError) as e:
            logger.error("Failed to load usage log %r: %s", self._storage_key, e)
            return []
        
        if not stored:
            return []
        
        try:
            data = json.loads(stored)
            entries = data[LOG_FIELD]
            if not isinstance(entries, list):
                raise TypeError(f"{LOG_FIELD} must be a list")
            events = [UsageEvent.from_dict(entry) for entry in entries]
        except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as e:
            logger.warning(
                "Discarding corrupt usage log %r: %s", self._storage_key, e
            )
            return []
        
        logger.debug("Loaded %d usage events from %r", len(events), self._storage_key)
        return events
    
    def _save(self) -> None:
        """Rewrite the full log to the store, logging any failure."""
        payload = json.dumps({LOG_FIELD: [e.to_dict() for e in self._events]})
        try:
            self._store.set(self._storage_key, payload)
        except (StorageError, OSError) as e:
            logger.error(
                "Failed to persist usage log %r (%d events kept in memory): %s",
                self._storage_key, len(self._events), e
            )
    
    def record(
        self,
        conversation_id: str,
        model_id: str,
        input_tokens: int,
        output_tokens: int
    ) -> None:
        """Append one usage event and persist the updated log.
        
        Negative token counts are clamped to zero. A storage failure leaves
        the event in memory for the rest of the session.
        
        Args:
            conversation_id: Conversation the generation belongs to
            model_id: Model variant that produced it
            input_tokens: Prompt token count
            output_tokens: Generated token count
        """
        usage = TokenUsage.clamped(input_tokens, output_tokens)
        if usage.input_tokens != input_tokens or usage.output_tokens != output_tokens:
            logger.warning(
                "Clamped token counts for %s/%s: in=%s out=%s",
                conversation_id, model_id, input_tokens, output_tokens
            )
        
        self._events.append(UsageEvent(
            conversation_id=conversation_id,
            model_id=model_id,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            timestamp=self._now()
        ))
        self._save()
    
    def events(self) -> Tuple[UsageEvent, ...]:
        """Snapshot of the log in insertion order."""
        return tuple(self._events)
    
    def query_conversation(self, conversation_id: str) -> Optional[ConversationAnalytics]:
        """Analytics for one conversation, or None if it was never recorded."""
        return compute_conversation_analytics(self._events, conversation_id)
    
    def query_model(self, model_id: str) -> Optional[ModelAnalytics]:
        """Analytics for one model, or None if it was never recorded."""
        return compute_model_analytics(self._events, model_id)
    
    def query_overall(self) -> OverallAnalytics:
        return compute_overall_analytics(self._events)
    
    def query_daily(self, days: int = 7) -> List[DailyUsage]:
        """Daily usage for the trailing ``days`` local calendar days."""
        return compute_daily_usage(self._events, days, self._now().date())
    
    def by_model_token_share(self) -> List[ModelTokenShare]:
        return compute_model_token_share(self._events)
    
    def recent(self, limit: int = 10) -> List[UsageEvent]:
        """The ``limit`` most recent events, newest first by timestamp."""
        if limit <= 0:
            return []
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
    
    def export_json(self, daily_window: int = 30) -> str:
        now = self._now()
        return export_json(self.events(), exported_at=now, today=now.date(), daily_window=daily_window)
    
    def export_csv(self) -> str:
        return export_csv(self.events())
    
    def clear(self) -> None:
        """Empty the log and delete its persisted copy. Not reversible."""
        self._events = []
        try:
            self._store.delete(self._storage_key)
        except (StorageError, OSError) as e:
            logger.error("Failed to delete usage log %r: %s", self._storage_key, e)
