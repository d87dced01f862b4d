"""FastAPI application: wiring, middleware, meta endpoints and lifespan."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.common.clock import Clock, system_clock
from app.common.errors import CourseTrackerError
from app.common.schemas import ComponentStatus, ErrorResponse, HealthCheckResponse
from app.core.config import Settings, get_settings
from app.DB.supabase import Store
from app.features.analytics.endpoints import router as analytics_router
from app.features.assignments.endpoints import router as assignments_router
from app.features.courses.endpoints import router as courses_router
from app.features.grades.endpoints import router as grades_router
from app.features.notifications.endpoints import router as notifications_router
from app.features.submissions.endpoints import router as submissions_router
from app.features.users.endpoints import auth_router, router as users_router
from app.jobs.notification_sweep import start_notification_sweeper
from app.jobs.store_health import start_store_health_monitor

logger = logging.getLogger("app")


def _start_jobs(app: FastAPI, settings: Settings) -> List[asyncio.Task]:
    store: Store = app.state.store
    return [
        asyncio.create_task(start_store_health_monitor(store, settings.health_log_interval_sec)),
        asyncio.create_task(
            start_notification_sweeper(store, app.state.clock, settings.notification_sweep_interval_sec)
        ),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    owns_store = app.state.store is None
    if owns_store:
        app.state.store = Store.from_settings(settings)
    await app.state.store.open()

    tasks: List[asyncio.Task] = []
    if app.state.start_jobs:
        tasks = _start_jobs(app, settings)
    logger.info("app.startup version=%s jobs=%d", settings.app_version, len(tasks))
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if owns_store:
            await app.state.store.close()
        logger.info("app.shutdown")


async def course_tracker_error_handler(request: Request, exc: CourseTrackerError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    log = logger.warning if exc.status_code >= 500 else logger.info
    log(
        "request.error code=%s status=%s request_id=%s path=%s",
        exc.error_code,
        exc.status_code,
        request_id,
        request.url.path,
    )
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details or None,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


def create_app(
    *,
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    clock: Optional[Clock] = None,
    start_jobs: Optional[bool] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.clock = clock or system_clock
    app.state.start_jobs = settings.background_jobs_enabled if start_jobs is None else start_jobs
    app.state.started_at = datetime.now(timezone.utc)

    # ------------------------
    # CORS Setup
    # ------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------
    # Custom Middlewares
    # ------------------------
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        incoming = request.headers.get("X-Request-Id") or request.headers.get("X-Request-ID")
        req_id = incoming or str(uuid.uuid4())
        request.state.request_id = req_id
        request_logger = logging.getLogger("request")
        request_logger.info(
            "request.start", extra={"request_id": req_id, "path": request.url.path, "method": request.method}
        )
        t0 = perf_counter()
        response = await call_next(request)
        response.headers["X-Request-Id"] = req_id
        request_logger.info(
            "request.end",
            extra={
                "request_id": req_id,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": int((perf_counter() - t0) * 1000),
            },
        )
        return response

    app.add_exception_handler(CourseTrackerError, course_tracker_error_handler)

    # ------------------------
    # Routers
    # ------------------------
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(assignments_router)
    app.include_router(submissions_router)
    app.include_router(grades_router)
    app.include_router(analytics_router)
    app.include_router(notifications_router)

    # ------------------------
    # Meta endpoints
    # ------------------------
    @app.get("/", tags=["meta"], summary="API Root")
    async def root():
        return {
            "name": settings.app_name,
            "status": "ok",
            "docs": "/docs",
            "health": "/healthz",
        }

    @app.get("/healthz", tags=["meta"], summary="Liveness / readiness probe", response_model=HealthCheckResponse)
    async def healthz(request: Request) -> HealthCheckResponse:
        now = datetime.now(timezone.utc)
        current: Optional[Store] = request.app.state.store
        store_status = ComponentStatus(status="closed")
        if current is not None and current.is_open:
            try:
                store_status = ComponentStatus(status="ok", latency_ms=await current.ping())
            except CourseTrackerError as exc:
                store_status = ComponentStatus(status=f"error:{exc.error_code}")
            except Exception as exc:  # noqa: BLE001 - health must report, not raise
                store_status = ComponentStatus(status=f"error:{type(exc).__name__}")

        return HealthCheckResponse(
            status="ok" if store_status.status == "ok" else "degraded",
            time_utc=now,
            uptime_seconds=round((now - request.app.state.started_at).total_seconds(), 2),
            version=settings.app_version,
            environment="debug" if settings.debug else "prod",
            components={"store": store_status},
        )

    return app


app = create_app()
