"""Startup helpers: schema creation, connectivity check, shared HTTP client."""

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.ext.asyncio import create_async_engine

from conftest import make_engine
from qbot.app.core import http_client
from qbot.app.core.config import settings
from qbot.app.db.init_db import create_all_tables, verify_connection
from qbot.app.services.llm import LLMClient


@pytest.mark.asyncio
async def test_create_all_tables_is_idempotent(tmp_path):
    engine = make_engine(tmp_path)
    try:
        await create_all_tables(engine)
        await create_all_tables(engine)
        assert await verify_connection(engine)
    finally:
        await engine.dispose()

    sync_engine = create_engine(f"sqlite:///{tmp_path / 'qbot_test.db'}")
    tables = set(inspect(sync_engine).get_table_names())
    sync_engine.dispose()
    assert {
        "teachers", "classes", "students", "chatbots", "usage_sessions",
        "messages", "learning_goals", "student_goal_responses",
    } <= tables


@pytest.mark.asyncio
async def test_verify_connection_reports_failure(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")
    try:
        assert await verify_connection(engine) is False
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_shared_http_client_lifecycle(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    assert http_client.get_http_client() is None

    async with http_client.init_http_client() as client:
        assert http_client.get_http_client() is client
        llm = LLMClient()
        assert llm.client._client is client

    assert http_client.get_http_client() is None
    assert client.is_closed
