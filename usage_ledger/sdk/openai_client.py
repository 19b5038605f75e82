"""
Tracked OpenAI client wrapper.

Records token usage into a ledger without modifying behavior.
"""

from typing import Any, Dict, List, Optional

from openai import OpenAI

from ..core.ledger import UsageLedger


class TrackedOpenAI:
    """OpenAI client wrapper that records one usage event per completion.
    
    API errors propagate unchanged; ledger storage problems never do,
    because the ledger itself tolerates them.
    """
    
    def __init__(
        self,
        model: str,
        ledger: UsageLedger,
        conversation_id: Optional[str] = None,
        client: Optional[OpenAI] = None
    ):
        """Initialize tracked OpenAI client.
        
        Args:
            model: OpenAI model name (required)
            ledger: Ledger that receives usage events (required)
            conversation_id: Default conversation for recorded events
            client: Preconfigured OpenAI client (defaults to ``OpenAI()``)
            
        Raises:
            ValueError: If model is missing/empty or ledger is missing
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if ledger is None:
            raise ValueError("ledger is required")
        
        self.model = model
        self.ledger = ledger
        self.conversation_id = conversation_id
        self.client = client or OpenAI()
    
    def chat(
        self,
        messages: List[Dict[str, str]],
        conversation_id: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """Create chat completion and record its usage.
        
        The event is filed under ``conversation_id`` if given, else the
        client's default conversation, else the response id.
        
        Args:
            messages: List of message dictionaries (required)
            conversation_id: Conversation to record against (optional)
            temperature: Sampling temperature (optional)
            max_tokens: Maximum tokens to generate (optional)
            **kwargs: Additional OpenAI parameters
            
        Returns:
            OpenAI chat completion response
            
        Raises:
            ValueError: If messages is empty or the response has no usage
            OpenAI API errors: Propagated without modification
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")
        
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs
        )
        
        usage = response.usage
        if not usage:
            raise ValueError("OpenAI response missing usage information")
        
        self.ledger.record(
            conversation_id=conversation_id or self.conversation_id or response.id,
            model_id=self.model,
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens
        )
        
        return response
