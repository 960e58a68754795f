from fastapi import APIRouter

router = APIRouter(prefix="/teacher", tags=["teacher"])

from . import attempts, chatbots, classes, conversations, dashboard, learning_goals, students  # noqa: E402

router.include_router(classes.router, prefix="/classes", tags=["teacher-classes"])
router.include_router(students.router, prefix="/students", tags=["teacher-students"])
router.include_router(chatbots.router, prefix="/chatbots", tags=["teacher-chatbots"])
router.include_router(learning_goals.router, tags=["teacher-learning-goals"])
router.include_router(attempts.router, tags=["teacher-attempts"])
router.include_router(conversations.router, tags=["teacher-conversations"])
router.include_router(dashboard.router, tags=["teacher-dashboard"])
