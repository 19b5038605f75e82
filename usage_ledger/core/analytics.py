"""
Derived analytics views over the usage event log.

Every view is recomputed from the raw events on each call; nothing here
is stored. Timestamps are not assumed to be monotonic in log order, so
views that need first/last times sort their inputs explicitly.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from usage_ledger.storage.models import UsageEvent


@dataclass(frozen=True)
class ConversationAnalytics:
    """Aggregate usage for a single conversation."""
    conversation_id: str
    model_id: str
    message_count: int
    total_tokens: int
    created_at: datetime
    last_active_at: datetime
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "modelId": self.model_id,
            "messageCount": self.message_count,
            "totalTokens": self.total_tokens,
            "createdAt": self.created_at.isoformat(),
            "lastActiveAt": self.last_active_at.isoformat(),
        }


@dataclass(frozen=True)
class ModelAnalytics:
    """Aggregate usage for a single model."""
    model_id: str
    total_conversations: int
    total_messages: int
    total_tokens: int
    average_tokens_per_message: float
    last_used: datetime
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelId": self.model_id,
            "totalConversations": self.total_conversations,
            "totalMessages": self.total_messages,
            "totalTokens": self.total_tokens,
            "averageTokensPerMessage": self.average_tokens_per_message,
            "lastUsed": self.last_used.isoformat(),
        }


@dataclass(frozen=True)
class OverallAnalytics:
    """Aggregate usage across the whole ledger."""
    total_conversations: int
    total_messages: int
    total_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    most_used_model: str
    average_messages_per_conversation: float
    average_tokens_per_message: float
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalConversations": self.total_conversations,
            "totalMessages": self.total_messages,
            "totalTokens": self.total_tokens,
            "totalInputTokens": self.total_input_tokens,
            "totalOutputTokens": self.total_output_tokens,
            "mostUsedModel": self.most_used_model,
            "averageMessagesPerConversation": self.average_messages_per_conversation,
            "averageTokensPerMessage": self.average_tokens_per_message,
        }


@dataclass(frozen=True)
class DailyUsage:
    """Usage for one local calendar day."""
    date: str  # YYYY-MM-DD
    conversations: int
    messages: int
    tokens: int
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "conversations": self.conversations,
            "messages": self.messages,
            "tokens": self.tokens,
        }


@dataclass(frozen=True)
class ModelTokenShare:
    """One model's share of all tokens in the ledger."""
    model_id: str
    tokens: int
    percentage: float
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelId": self.model_id,
            "tokens": self.tokens,
            "percentage": self.percentage,
        }


def local_date(timestamp: datetime) -> date:
    """Calendar date of a timestamp in the local time zone."""
    return timestamp.astimezone().date()


def compute_conversation_analytics(
    events: Sequence[UsageEvent],
    conversation_id: str
) -> Optional[ConversationAnalytics]:
    """Aggregate the events of one conversation.
    
    Args:
        events: Full event log in insertion order
        conversation_id: Conversation to aggregate
        
    Returns:
        ConversationAnalytics, or None if the conversation has no events
    """
    matches = [e for e in events if e.conversation_id == conversation_id]
    if not matches:
        return None
    
    by_time = sorted(matches, key=lambda e: e.timestamp)
    return ConversationAnalytics(
        conversation_id=conversation_id,
        model_id=matches[0].model_id,
        message_count=len(matches),
        total_tokens=sum(e.total_tokens for e in matches),
        created_at=by_time[0].timestamp,
        last_active_at=by_time[-1].timestamp
    )


def compute_model_analytics(
    events: Sequence[UsageEvent],
    model_id: str
) -> Optional[ModelAnalytics]:
    """Aggregate the events recorded against one model.
    
    Args:
        events: Full event log in insertion order
        model_id: Model to aggregate
        
    Returns:
        ModelAnalytics, or None if the model has no events
    """
    matches = [e for e in events if e.model_id == model_id]
    if not matches:
        return None
    
    total_tokens = sum(e.total_tokens for e in matches)
    return ModelAnalytics(
        model_id=model_id,
        total_conversations=len({e.conversation_id for e in matches}),
        total_messages=len(matches),
        total_tokens=total_tokens,
        average_tokens_per_message=total_tokens / len(matches),
        last_used=max(e.timestamp for e in matches)
    )


def compute_overall_analytics(events: Sequence[UsageEvent]) -> OverallAnalytics:
    """Aggregate the whole log.
    
    The most used model is the one with the most events. On a tie the
    model that appears first in the log wins, so the result is
    deterministic for a given log.
    
    Args:
        events: Full event log in insertion order
        
    Returns:
        OverallAnalytics; all zeros and an empty model id for an empty log
    """
    conversations = {e.conversation_id for e in events}
    total_input = sum(e.input_tokens for e in events)
    total_output = sum(e.output_tokens for e in events)
    total_tokens = total_input + total_output
    
    # Counter keeps first-seen order and most_common() is stable on ties
    model_counts = Counter(e.model_id for e in events)
    most_used_model = model_counts.most_common(1)[0][0] if model_counts else ""
    
    message_count = len(events)
    return OverallAnalytics(
        total_conversations=len(conversations),
        total_messages=message_count,
        total_tokens=total_tokens,
        total_input_tokens=total_input,
        total_output_tokens=total_output,
        most_used_model=most_used_model,
        average_messages_per_conversation=(
            message_count / len(conversations) if conversations else 0.0
        ),
        average_tokens_per_message=(
            total_tokens / message_count if message_count else 0.0
        )
    )


def compute_daily_usage(
    events: Sequence[UsageEvent],
    days: int,
    today: date
) -> List[DailyUsage]:
    """Bucket events into a trailing window of local calendar days.
    
    Args:
        events: Full event log in insertion order
        days: Number of days in the window, ending with today inclusive
        today: The observer's current local date
        
    Returns:
        Exactly ``days`` entries in ascending date order; days without
        events are present with zero values
    """
    if days <= 0:
        return []
    
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    messages = dict.fromkeys(window, 0)
    tokens = dict.fromkeys(window, 0)
    conversations = {day: set() for day in window}
    
    for event in events:
        day = local_date(event.timestamp)
        if day not in messages:
            continue
        messages[day] += 1
        tokens[day] += event.total_tokens
        conversations[day].add(event.conversation_id)
    
    return [
        DailyUsage(
            date=day.isoformat(),
            conversations=len(conversations[day]),
            messages=messages[day],
            tokens=tokens[day]
        )
        for day in window
    ]


def compute_model_token_share(events: Sequence[UsageEvent]) -> List[ModelTokenShare]:
    """Per-model token totals as a percentage of all tokens.
    
    Returns:
        Entries sorted by token count, highest first; empty for an empty log
    """
    model_tokens: Dict[str, int] = {}
    for event in events:
        model_tokens[event.model_id] = model_tokens.get(event.model_id, 0) + event.total_tokens
    
    total_tokens = sum(model_tokens.values())
    shares = [
        ModelTokenShare(
            model_id=model_id,
            tokens=tokens,
            percentage=(tokens / total_tokens) * 100 if total_tokens > 0 else 0.0
        )
        for model_id, tokens in model_tokens.items()
    ]
    return sorted(shares, key=lambda s: s.tokens, reverse=True)
