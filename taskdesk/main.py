"""
TaskDesk: application entry point.

This is the **only** file that assembles the app. Business logic lives in
the `services/`, `api/`, `models/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

import taskdesk.models  # noqa: F401  (registers every table on Base.metadata)
from taskdesk.api.api import api_router
from taskdesk.core.config import settings
from taskdesk.core.exceptions import register_exception_handlers
from taskdesk.core.rate_limit import limiter
from taskdesk.core.security import get_password_hash
from taskdesk.db.base import Base
from taskdesk.db.session import async_session_factory, engine
from taskdesk.models.user import User

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def _seed_first_admin() -> None:
    """Create FIRST_ADMIN_EMAIL with a ready password, if configured and absent."""
    if not (settings.FIRST_ADMIN_EMAIL and settings.FIRST_ADMIN_PASSWORD):
        return
    email = settings.FIRST_ADMIN_EMAIL.strip().lower()
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none() is not None:
            return
        session.add(
            User(
                email=email,
                first_name="Admin",
                last_name="User",
                mobile_number="+1234567890",
                role="admin",
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                is_first_login=False,
            )
        )
        await session.commit()
    logger.info("Default admin created: %s (password: <redacted>)", email)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await _seed_first_admin()

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Task management API with invite / OTP onboarding",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.limiter = limiter

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_PREFIX)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("taskdesk.main:app", host=settings.HOST, port=settings.PORT)
