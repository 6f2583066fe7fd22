"""External LLM provider backed by the OpenAI async client"""
import logging
import time
from typing import Optional

import httpx
import pybreaker
from openai import AsyncOpenAI

from lifescore.exceptions import ExternalProviderError
from lifescore.providers.base import TextCompletionProvider
from lifescore.resilience.circuit_breaker import LLM_BREAKER, with_circuit_breaker
from lifescore.resilience.metrics import record_api_call
from lifescore.resilience.retry import with_retry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You rewrite short wellbeing and driving-safety summaries for an insurance "
    "engagement app. Keep every number exactly as given. Two or three sentences, "
    "friendly and concrete, no medical advice."
)


class ExternalLLMProvider(TextCompletionProvider):
    """
    Chat completion through OpenAI, protected by a circuit breaker and retry.

    Every failure (HTTP error, timeout, open circuit, empty reply) is raised
    as ExternalProviderError.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        client: Optional[AsyncOpenAI] = None,
        breaker: pybreaker.CircuitBreaker = LLM_BREAKER,
        max_retries: int = 2,
        request_timeout: float = 10.0,
    ):
        self.model = model
        self.breaker = breaker
        self.max_retries = max_retries
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            timeout=httpx.Timeout(request_timeout, connect=5.0),
            max_retries=0,  # retries handled by with_retry
        )
        # Retry wraps the breaker: each attempt counts toward the failure threshold
        self._protected_create = with_retry(max_retries=max_retries, api_name=self.name)(
            with_circuit_breaker(breaker)(self._create)
        )

    async def _create(self, prompt: str, max_tokens: int, temperature: float) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ExternalProviderError(message="Provider returned an empty completion", provider=self.name)
        return content.strip()

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        start = time.monotonic()
        try:
            text = await self._protected_create(prompt, max_tokens, temperature)
        except ExternalProviderError:
            record_api_call(self.name, success=False, duration=time.monotonic() - start)
            raise
        except pybreaker.CircuitBreakerError as e:
            record_api_call(self.name, success=False, duration=time.monotonic() - start)
            raise ExternalProviderError(
                message=f"Circuit {self.breaker.name} is open",
                provider=self.name,
                operation="complete",
                cause=e,
            )
        except Exception as e:
            record_api_call(self.name, success=False, duration=time.monotonic() - start)
            status = getattr(e, "status_code", None)
            raise ExternalProviderError(
                message=f"Completion failed: {type(e).__name__}: {e}",
                provider=self.name,
                status_code=status if isinstance(status, int) else None,
                operation="complete",
                cause=e,
            )

        record_api_call(self.name, success=True, duration=time.monotonic() - start)
        logger.info(f"Provider {self.name} returned {len(text)} characters")
        return text

    async def close(self) -> None:
        await self.client.close()
