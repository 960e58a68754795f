"""AI evaluation of learning goals for a finished session."""

from typing import List, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from qbot.app.api.deps import LLMClientDep
from qbot.app.db.dependencies import SessionDep
from qbot.app.middleware.auth import TeacherDep
from qbot.app.services.goal_evaluation import GoalVerdict, evaluate_session_goals

router = APIRouter(prefix="/ai", tags=["evaluation"])


class EvaluateGoalsRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class EvaluateGoalsResponse(BaseModel):
    status: str
    message: Optional[str] = None
    results: List[GoalVerdict] = []


@router.post("/evaluate-goals", response_model=EvaluateGoalsResponse)
async def evaluate_goals(
    data: EvaluateGoalsRequest,
    teacher: TeacherDep,
    session: SessionDep,
    llm: LLMClientDep,
):
    """Evaluate a session against its chatbot's learning goals.

    Answers 202 with status "pending" when the LLM is unavailable.
    """
    outcome = await evaluate_session_goals(session, teacher.id, data.session_id, llm)
    body = EvaluateGoalsResponse(
        status=outcome.status,
        message=outcome.message,
        results=outcome.results,
    )
    if outcome.status == "pending":
        return JSONResponse(status_code=202, content=body.model_dump())
    return body
