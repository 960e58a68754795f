"""Bearer-token authentication dependencies.

Teachers and students both authenticate with ``Authorization: Bearer <token>``.
Only the SHA256 of a token is stored; a token is looked up among students
first, then teachers. Administrators use the ADMIN_TOKEN environment variable.
"""

import hmac
import os
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request

from qbot.app.core.security import hash_api_key
from qbot.app.db.crud import lookup_student_by_hash, lookup_teacher_by_hash
from qbot.app.db.dependencies import SessionDep
from qbot.app.exceptions import AuthenticationError, ForbiddenError, InvalidRequestError

MAX_TOKEN_LENGTH = 512

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller.

    A plain value instead of an ORM row, so it stays usable after the request
    session rolls back.
    """

    id: str
    role: str
    name: str
    teacher_id: str

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER


def get_admin_token() -> str:
    """Get admin token from environment variable.

    The token is cached on first access.

    Raises:
        ValueError: If ADMIN_TOKEN environment variable is not set
    """
    if not hasattr(get_admin_token, "_cached_token"):
        token = os.getenv("ADMIN_TOKEN")
        if token is not None:
            # Normalize accidental whitespace/newline from env/secret stores.
            token = token.strip()
        if not token:
            raise ValueError(
                "ADMIN_TOKEN environment variable is not set. "
                "Please set a secure admin token before starting the server."
            )
        get_admin_token._cached_token = token
    return get_admin_token._cached_token


def get_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.replace("Bearer ", "", 1).strip()


def require_admin(request: Request) -> str:
    """Validate the admin token with a constant-time comparison.

    Raises:
        AuthenticationError: If the admin token is missing or wrong
    """
    token = get_bearer_token(request) or ""
    expected_token = get_admin_token()

    if not hmac.compare_digest(token, expected_token):
        raise AuthenticationError("Invalid or missing admin token")

    return "admin"


async def require_identity(request: Request, session: SessionDep) -> Identity:
    """Resolve the bearer token to a student or teacher identity.

    Raises:
        AuthenticationError: Missing or unknown token (401)
        InvalidRequestError: Token longer than MAX_TOKEN_LENGTH (400)
    """
    token = get_bearer_token(request)
    if not token:
        raise AuthenticationError("Missing bearer token")

    # Checked before hashing so oversized inputs cost nothing
    if len(token) > MAX_TOKEN_LENGTH:
        raise InvalidRequestError(f"Bearer token too long (max {MAX_TOKEN_LENGTH} characters)")

    token_hash = hash_api_key(token)

    student = await lookup_student_by_hash(session, token_hash)
    if student is not None:
        return Identity(
            id=student.id,
            role=ROLE_STUDENT,
            name=student.name,
            teacher_id=student.teacher_id,
        )

    teacher = await lookup_teacher_by_hash(session, token_hash)
    if teacher is not None:
        return Identity(
            id=teacher.id,
            role=ROLE_TEACHER,
            name=teacher.name,
            teacher_id=teacher.id,
        )

    raise AuthenticationError("Invalid bearer token")


async def require_teacher(
    identity: Annotated[Identity, Depends(require_identity)],
) -> Identity:
    if not identity.is_teacher:
        raise ForbiddenError("Teacher account required")
    return identity


IdentityDep = Annotated[Identity, Depends(require_identity)]
TeacherDep = Annotated[Identity, Depends(require_teacher)]
