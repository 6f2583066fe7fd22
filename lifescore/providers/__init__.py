"""Text completion providers"""
from lifescore.providers.base import TextCompletionProvider, BASELINE_MARKER
from lifescore.providers.local import LocalDeterministicProvider
from lifescore.providers.openai_provider import ExternalLLMProvider

__all__ = [
    "TextCompletionProvider",
    "BASELINE_MARKER",
    "LocalDeterministicProvider",
    "ExternalLLMProvider",
]
