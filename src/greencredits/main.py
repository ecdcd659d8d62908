"""FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import admin, booths, health, submissions, waste_types
from .config import settings


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        root_path="",
    )
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(booths.router, prefix=settings.api_prefix)
    app.include_router(waste_types.router, prefix=settings.api_prefix)
    app.include_router(submissions.router, prefix=settings.api_prefix)
    app.include_router(admin.router, prefix=settings.api_prefix)
    logging.info(f"{settings.app_name} routes mounted under {settings.api_prefix}")
    return app


app = create_app()
