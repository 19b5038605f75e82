"""
SDK for the usage ledger.

Provides model clients that record their token usage.
"""

from .openai_client import TrackedOpenAI

__all__ = ["TrackedOpenAI"]
