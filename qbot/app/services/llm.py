"""Chat-completion client for the OpenAI-compatible API.

Every call is bounded by ``llm_timeout_seconds`` and retried with exponential
backoff on transient failures. Once retries are exhausted the error is mapped
to UpstreamTimeoutError or UpstreamFailureError.
"""

import asyncio
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from qbot.app.core.config import settings
from qbot.app.core.http_client import get_http_client
from qbot.app.core.logging import get_logger
from qbot.app.core.retry import RetryPolicy, call_with_retry
from qbot.app.exceptions import UpstreamFailureError, UpstreamTimeoutError

logger = get_logger(__name__)


class LLMClient:
    """Thin wrapper around AsyncOpenAI.

    Args:
        client: Preconfigured AsyncOpenAI; built from settings when omitted
        timeout: Per-call time budget in seconds
        retry_policy: Backoff policy for transient failures
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._client = client
        self.timeout = settings.llm_timeout_seconds if timeout is None else timeout
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=settings.llm_max_retries,
            base_delay=settings.llm_retry_base_delay,
            max_delay=settings.llm_retry_max_delay,
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            # SDK retries are off; call_with_retry owns the backoff
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key or None,
                base_url=settings.openai_base_url,
                organization=settings.openai_organization,
                max_retries=0,
                http_client=get_http_client(),
            )
        return self._client

    async def _create_once(self, **payload: Any) -> str:
        response = await asyncio.wait_for(
            self.client.chat.completions.create(**payload),
            timeout=self.timeout,
        )
        if not response.choices:
            raise UpstreamFailureError("LLM returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise UpstreamFailureError("LLM returned an empty message")
        return content

    async def complete_json(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Run one JSON-mode chat completion and return the raw message content.

        Raises:
            UpstreamTimeoutError: The call timed out on every attempt
            UpstreamFailureError: Any other upstream failure
        """
        payload = {
            "model": model or settings.evaluation_model,
            "messages": messages,
            "temperature": (
                settings.evaluation_temperature if temperature is None else temperature
            ),
            "response_format": {"type": "json_object"},
        }
        try:
            return await call_with_retry(self._create_once, policy=self.retry_policy, **payload)
        except (TimeoutError, openai.APITimeoutError) as e:
            logger.error(f"LLM call timed out after retries: {type(e).__name__}")
            raise UpstreamTimeoutError() from e
        except openai.OpenAIError as e:
            logger.error(f"LLM call failed: {type(e).__name__}: {e}")
            raise UpstreamFailureError(f"LLM call failed: {type(e).__name__}") from e


_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get the process-wide LLMClient (FastAPI dependency)."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


def reset_llm_client() -> None:
    """Drop the cached client. Useful for testing."""
    global _llm_client
    _llm_client = None
