"""
Team Backend - Main Application Entry Point

Serves the teams API:
- team creation, update and deletion
- team membership and member permissions
- team conversation listing and removal
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from team_backend import __version__
from team_backend.api.v1.teams import router as teams_router
from team_backend.core.config import get_settings
from team_backend.core.errors import ErrorCode, error_responses
from team_backend.core.logging_config import setup_logging
from team_backend.core.middleware import RequestCorrelationMiddleware
from team_backend.core.postgresql_client import close_postgresql, get_postgresql_client
from team_backend.services.connection_client import ConnectionClient
from team_backend.services.push_client import PushClient
from team_backend.services.team_service import TeamService
from team_backend.services.team_store import PostgreSQLTeamStore

# Configure logging
setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management"""
    logger.info("Starting Team Backend...")

    pg_client = await get_postgresql_client()
    store = PostgreSQLTeamStore(pg_client)
    await store.create_tables()

    app.state.team_service = TeamService(
        store=store,
        connections=ConnectionClient(),
        pushes=PushClient()
    )
    logger.info("Team service initialized")

    yield

    logger.info("Shutting down Team Backend...")
    await close_postgresql()


app = FastAPI(
    title="Team Backend",
    description="Teams, team members and team conversations",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestCorrelationMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters are reported as invalid-payload"""
    error_info = error_responses[ErrorCode.INVALID_PAYLOAD]
    logger.info(f"Invalid payload on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=error_info["status_code"],
        content={
            "detail": {
                "code": ErrorCode.INVALID_PAYLOAD.value,
                "message": error_info["description"],
                "details": {"errors": jsonable_encoder(exc.errors())},
            }
        },
    )


@app.get("/i/status")
async def health_check():
    """Liveness probe"""
    return {"status": "healthy", "version": __version__}


app.include_router(teams_router)


if __name__ == "__main__":
    uvicorn.run(
        "team_backend.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
