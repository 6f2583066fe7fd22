"""Text completion capability used for optional narrative enrichment"""
from abc import ABC, abstractmethod

# Prompts built for narrative enrichment carry the deterministic narrative
# on the line following this marker.
BASELINE_MARKER = "Baseline narrative:"


class TextCompletionProvider(ABC):
    """
    Single capability interface for generative text.

    Implementations must either return text or raise; callers wrap every
    call with a timeout and always keep a deterministic path available.
    """

    name: str = "provider"

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Return a completion for prompt"""

    async def close(self) -> None:
        return None
