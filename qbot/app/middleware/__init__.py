"""Middleware and auth dependencies."""

from qbot.app.middleware.auth import (
    Identity,
    IdentityDep,
    TeacherDep,
    require_admin,
    require_identity,
    require_teacher,
)
from qbot.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "Identity",
    "IdentityDep",
    "TeacherDep",
    "require_admin",
    "require_identity",
    "require_teacher",
    "RequestIdMiddleware",
    "get_request_id",
]
