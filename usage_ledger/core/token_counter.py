"""
Token counting and usage tracking.

Normalizes the token counts callers report for a single generation.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Token usage for one model invocation.
    
    Contains exact token counts supplied by the caller; no estimation or
    model-specific logic.
    """
    input_tokens: int
    output_tokens: int
    
    @classmethod
    def clamped(cls, input_tokens: int, output_tokens: int) -> "TokenUsage":
        """Build usage with negative counts clamped to zero."""
        return cls(
            input_tokens=max(int(input_tokens), 0),
            output_tokens=max(int(output_tokens), 0)
        )
    
    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens
