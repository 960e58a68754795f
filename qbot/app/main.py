import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qbot.app.api.admin import router as admin_router
from qbot.app.api.evaluation import router as evaluation_router
from qbot.app.api.sessions import router as sessions_router
from qbot.app.api.student_auth import router as student_auth_router
from qbot.app.api.teacher import router as teacher_router
from qbot.app.core.config import settings
from qbot.app.core.http_client import init_http_client
from qbot.app.core.logging import get_log_context, get_logger, setup_logging
from qbot.app.db.async_session import close_async_engine
from qbot.app.db.init_db import create_all_tables, verify_connection
from qbot.app.exceptions import QbotException
from qbot.app.middleware.request_id import RequestIdMiddleware, get_request_id
from qbot.app.services.llm import reset_llm_client


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Open the shared HTTP client and database on startup; release them on shutdown."""
        async with init_http_client() as http_client:
            if not await verify_connection():
                logger.error("Database connection failed!")
                raise RuntimeError("Cannot connect to database")

            await create_all_tables()
            logger.info(
                "Application startup complete",
                extra={"debug_mode": settings.debug},
            )

            yield {"http_client": http_client}

            # The cached LLM client holds the shared HTTP client
            reset_llm_client()

        await close_async_engine()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Qbot",
        description="Teacher-designed AI chatbots with class access control and attempt limits",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Order matters: last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(student_auth_router)
    app.include_router(sessions_router)
    app.include_router(evaluation_router)
    app.include_router(teacher_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        database_ok = await verify_connection()
        return {
            "status": "ok" if database_ok else "degraded",
            "components": {"database": {"status": "ok" if database_ok else "error"}},
        }

    @app.exception_handler(QbotException)
    async def qbot_exception_handler(request: Request, exc: QbotException) -> JSONResponse:
        """Render every domain error as {"error": code, "message": text}."""
        if exc.status_code >= 500:
            logger.error(
                f"{exc.error_code}: {exc.message}",
                extra=get_log_context(request_id=get_request_id(request)),
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "invalid_input",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Unhandled exceptions become 500 without a traceback in the body.

        Debug mode adds the exception type and message.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
                "traceback": traceback.format_exc(),
            },
        )

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                    "request_id": request_id,
                },
            )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            },
        )

    return app


app = create_app()
