# railclub/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from railclub.config import CORS_ALLOWED_ORIGINS
from railclub.database import engine
from railclub.errors import RailclubError
from railclub.logging_config import configure_logging
from railclub.routes import (
    addresses,
    applications,
    appointments,
    club_users,
    clubs,
    consists,
    email_queue,
    invite_tokens,
    issues,
    notices,
    scheduled_sessions,
    tower_reports,
    towers,
    users,
)
from railclub.routes.auth import router as auth_router
from railclub.routes.envelope import status_for_error

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Railclub Server", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(clubs.router)
app.include_router(invite_tokens.router)
app.include_router(club_users.router)
app.include_router(users.router)
app.include_router(addresses.router)
app.include_router(consists.router)
app.include_router(towers.router)
app.include_router(issues.router)
app.include_router(tower_reports.router)
app.include_router(tower_reports.club_router)
app.include_router(scheduled_sessions.router)
app.include_router(appointments.router)
app.include_router(appointments.club_router)
app.include_router(notices.router)
app.include_router(applications.router)
app.include_router(email_queue.router)


@app.exception_handler(RailclubError)
async def railclub_error_handler(request: Request, exc: RailclubError) -> JSONResponse:
    code = status_for_error(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(parts) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/db-ping")
def db_ping() -> dict:
    with engine.connect() as conn:
        result = conn.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "select_1": result}
