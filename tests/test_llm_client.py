"""Tests for the LLM client: timeout, retries and error mapping."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from qbot.app.core.retry import RetryPolicy
from qbot.app.exceptions import UpstreamFailureError, UpstreamTimeoutError
from qbot.app.services.llm import LLMClient, get_llm_client, reset_llm_client

_REQUEST = httpx.Request("POST", "https://api.openai.test/v1/chat/completions")


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def _client(create):
    fake = MagicMock()
    fake.chat.completions.create = create
    return LLMClient(
        client=fake,
        timeout=1.0,
        retry_policy=RetryPolicy(max_retries=2, base_delay=0),
    )


@pytest.mark.asyncio
async def test_complete_json_sends_json_mode_payload():
    create = AsyncMock(return_value=_completion('{"evaluations": []}'))
    llm = _client(create)

    content = await llm.complete_json(
        [{"role": "user", "content": "hi"}], model="gpt-4o-mini", temperature=0.0
    )

    assert content == '{"evaluations": []}'
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.0
    assert kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_transient_errors_are_retried():
    create = AsyncMock(side_effect=[
        openai.APIConnectionError(request=_REQUEST),
        _completion("{}"),
    ])

    content = await _client(create).complete_json([{"role": "user", "content": "hi"}])

    assert content == "{}"
    assert create.await_count == 2


@pytest.mark.asyncio
async def test_slow_upstream_maps_to_timeout():
    async def hang(**kwargs):
        await asyncio.sleep(10)

    llm = _client(hang)
    llm.timeout = 0.01

    with pytest.raises(UpstreamTimeoutError):
        await llm.complete_json([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_sdk_timeout_maps_to_timeout():
    create = AsyncMock(side_effect=openai.APITimeoutError(request=_REQUEST))

    with pytest.raises(UpstreamTimeoutError):
        await _client(create).complete_json([{"role": "user", "content": "hi"}])

    assert create.await_count == 3


@pytest.mark.asyncio
async def test_client_error_maps_to_failure_without_retry():
    response = httpx.Response(401, request=_REQUEST)
    create = AsyncMock(
        side_effect=openai.AuthenticationError("bad key", response=response, body=None)
    )

    with pytest.raises(UpstreamFailureError) as exc_info:
        await _client(create).complete_json([{"role": "user", "content": "hi"}])

    assert not isinstance(exc_info.value, UpstreamTimeoutError)
    assert exc_info.value.status_code == 502
    assert create.await_count == 1


@pytest.mark.asyncio
async def test_empty_message_is_a_failure():
    create = AsyncMock(return_value=_completion(None))

    with pytest.raises(UpstreamFailureError):
        await _client(create).complete_json([{"role": "user", "content": "hi"}])


def test_llm_client_is_cached_until_reset():
    reset_llm_client()
    first = get_llm_client()

    assert get_llm_client() is first

    reset_llm_client()
    assert get_llm_client() is not first
    reset_llm_client()
