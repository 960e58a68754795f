from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from qbot.app.core.logging import get_logger
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import DatabaseError
from qbot.app.middleware.auth import TeacherDep
from qbot.app.services.dashboard import build_feedback_dashboard

router = APIRouter()
logger = get_logger(__name__)


@router.get("/dashboard/feedback")
async def feedback_dashboard(teacher: TeacherDep, session: SessionDep) -> dict:
    """Participation and goal achievement across the teacher's chatbots."""
    try:
        return await build_feedback_dashboard(session, teacher.id)
    except SQLAlchemyError as e:
        logger.error(f"Database error building dashboard: {e}")
        raise DatabaseError("Failed to retrieve dashboard data")
