"""FastAPI application factory for Creatorgate."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from creatorgate.common.config import get_settings
from creatorgate.common.exceptions import CreatorgateError
from creatorgate.common.logging import setup_logging
from creatorgate.common.schemas import ErrorResponse, HealthResponse


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from creatorgate.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CreatorgateError)
    async def creatorgate_error_handler(request: Request, exc: CreatorgateError):
        redirect_url = None
        if exc.redirect == "sign-in":
            redirect_url = settings.sign_in_url
        elif exc.redirect == "upgrade":
            redirect_url = settings.upgrade_url
        body = ErrorResponse(
            error=exc.message,
            code=exc.code,
            detail=redirect_url or "",
            redirect=exc.redirect,
        )
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health():
        from creatorgate.deps import get_db
        if await get_db().ping():
            return HealthResponse(version=settings.api_version)
        return HealthResponse(
            status="degraded", database="unavailable", version=settings.api_version,
        )

    # Mount routers
    from creatorgate.entitlements.router import router as entitlements_router
    from creatorgate.usage.router import router as usage_router
    from creatorgate.subscriptions.router import router as subscriptions_router
    from creatorgate.generation.router import router as generation_router
    from creatorgate.billing.router import router as billing_router

    prefix = settings.api_prefix
    app.include_router(entitlements_router, prefix=prefix, tags=["entitlements"])
    app.include_router(usage_router, prefix=prefix, tags=["usage"])
    app.include_router(subscriptions_router, prefix=prefix, tags=["subscriptions"])
    app.include_router(generation_router, prefix=prefix, tags=["generation"])
    app.include_router(billing_router, prefix=prefix)

    return app
