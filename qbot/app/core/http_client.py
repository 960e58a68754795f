"""Process-wide httpx.AsyncClient for outbound LLM traffic.

Opened by the application lifespan and passed to AsyncOpenAI, so evaluation
calls share one connection pool. Outside the lifespan (scripts, tests) no
client is open and the OpenAI SDK falls back to its own.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from qbot.app.core.config import Settings, settings
from qbot.app.core.logging import get_logger

logger = get_logger(__name__)

_llm_http_client: Optional[httpx.AsyncClient] = None


def build_http_client(config: Settings = settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=config.httpx_connect_timeout,
            read=config.httpx_read_timeout,
            write=config.httpx_write_timeout,
            pool=config.httpx_pool_timeout,
        ),
        limits=httpx.Limits(
            max_connections=config.httpx_max_connections,
            max_keepalive_connections=config.httpx_max_keepalive_connections,
            keepalive_expiry=config.httpx_keepalive_expiry,
        ),
    )


def get_http_client() -> Optional[httpx.AsyncClient]:
    """The open shared client, or None outside the application lifespan."""
    return _llm_http_client


@asynccontextmanager
async def init_http_client() -> AsyncIterator[httpx.AsyncClient]:
    global _llm_http_client

    _llm_http_client = build_http_client()
    logger.debug("Shared HTTP client opened")
    try:
        yield _llm_http_client
    finally:
        client, _llm_http_client = _llm_http_client, None
        await client.aclose()
        logger.debug("Shared HTTP client closed")
