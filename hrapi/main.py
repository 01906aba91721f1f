from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hrapi.routes.admin import router as admin_router
from hrapi.routes.assignments import router as assignments_router
from hrapi.routes.departments import router as departments_router
from hrapi.routes.employees import router as employees_router
from hrapi.routes.reports import router as reports_router
from hrapi.routes.servers import router as servers_router
from hrapi.routes.sites import router as sites_router
from hrapi.services.config import get_settings
from hrapi.services.database import init_db
from hrapi.services.errors import HRError, StoreError
from hrapi.services.llm import LLMError, llm_enabled

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("hrapi")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="HR Staffing API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://127.0.0.1:3000", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(employees_router)
app.include_router(departments_router)
app.include_router(sites_router)
app.include_router(assignments_router)
app.include_router(servers_router)
app.include_router(reports_router)
app.include_router(admin_router)


@app.exception_handler(HRError)
async def hr_error_handler(request: Request, exc: HRError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"message": "database error"})
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})


@app.exception_handler(sqlite3.Error)
async def sqlite_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    return await hr_error_handler(request, StoreError(str(exc)))


@app.exception_handler(LLMError)
async def llm_error_handler(request: Request, exc: LLMError) -> JSONResponse:
    logger.warning("AI call failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"message": "ai error", "detail": str(exc)})


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {
        "status": "ok",
        "real_llm_enabled": "true" if llm_enabled() else "false",
    }
