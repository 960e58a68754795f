from fastapi import APIRouter, Depends

from qbot.app.middleware.auth import require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

from . import teachers  # noqa: E402

router.include_router(teachers.router, prefix="/teachers", tags=["admin-teachers"])
