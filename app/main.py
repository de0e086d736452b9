from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from app.api.router import api_router
from lottery_repo import LotteryRepo

logger = logging.getLogger(__name__)

app = FastAPI(title="Draft Lottery Server")


@app.on_event("startup")
def _startup_init_db() -> None:
    # 1) resolve db path (required, no default)
    # 2) apply schema once per process
    db_path = config.get_db_path()
    with LotteryRepo(db_path) as repo:
        repo.init_db()
    app.state.db_path = db_path
    logger.info("lottery server ready db=%s", db_path)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _auth_guard_middleware(request: Request, call_next):
    """Optional shared-token guard.

    If LOTTERY_API_TOKEN is configured, require it on state-changing API calls.
    Admin-vs-observer checks still happen per lottery via X-Actor-Id.
    """
    required_token = config.get_api_token()
    if not required_token:
        return await call_next(request)

    path = request.url.path or ""
    method = (request.method or "GET").upper()
    if method not in {"POST", "PATCH"} or not path.startswith("/api/"):
        return await call_next(request)

    provided = (request.headers.get("X-Admin-Token") or "").strip()
    if provided != required_token:
        return JSONResponse(status_code=401, content={"detail": "Unauthorized: invalid X-Admin-Token"})

    return await call_next(request)


app.include_router(api_router)
