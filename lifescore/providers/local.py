"""Deterministic provider: no network, no randomness"""
import logging

from lifescore.providers.base import BASELINE_MARKER, TextCompletionProvider

logger = logging.getLogger(__name__)


class LocalDeterministicProvider(TextCompletionProvider):
    """
    Echoes the baseline narrative embedded in the prompt.

    Used as the last-resort strategy and as the default provider when no
    external service is configured. Same prompt, same output.
    """

    name = "local"

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        text = prompt
        if BASELINE_MARKER in prompt:
            text = prompt.split(BASELINE_MARKER, 1)[1].strip().splitlines()[0]
        # Rough token budget: ~4 characters per token
        limit = max(max_tokens, 1) * 4
        if len(text) > limit:
            text = text[:limit].rstrip()
        logger.debug(f"Local provider produced {len(text)} characters")
        return text.strip()
