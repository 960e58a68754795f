"""Shared route dependencies."""

from typing import Annotated

from fastapi import Depends

from qbot.app.db.dependencies import SessionDep
from qbot.app.services.gate import SqlAlchemyUsageGateRepository, UsageGate
from qbot.app.services.llm import LLMClient, get_llm_client


def get_usage_gate(session: SessionDep) -> UsageGate:
    return UsageGate(SqlAlchemyUsageGateRepository(session))


UsageGateDep = Annotated[UsageGate, Depends(get_usage_gate)]
LLMClientDep = Annotated[LLMClient, Depends(get_llm_client)]
