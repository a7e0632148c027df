"""
FastAPI application factory for the Tactica API.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tactica.api.sessions import DEFAULT_MAX_SESSIONS, SessionManager
from tactica.api.routers import battles, experiments, games

# Load .env from the project root first, then CWD
_project_root = Path(__file__).resolve().parents[3]  # src/tactica/api/app.py → project root
load_dotenv(_project_root / ".env")
load_dotenv(Path.cwd() / ".env")


def create_app(max_sessions: int | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(level=os.environ.get("TACTICA_LOG_LEVEL", "INFO").upper())

    application = FastAPI(
        title="Tactica API",
        description="REST API for the Tactica auto-battler simulation core",
        version="0.1.0",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if max_sessions is None:
        max_sessions = int(os.environ.get("TACTICA_MAX_SESSIONS", DEFAULT_MAX_SESSIONS))
    application.state.session_manager = SessionManager(max_sessions=max_sessions)

    application.include_router(battles.router, prefix="/api/battles", tags=["battles"])
    application.include_router(games.router, prefix="/api/games", tags=["games"])
    application.include_router(experiments.router, prefix="/api/experiments", tags=["experiments"])

    @application.get("/api/health")
    def health_check():
        return {"status": "ok"}

    return application


app = create_app()
