from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scamcheck import __version__
from scamcheck.config import settings
from scamcheck.contracts.payloads import (
    DisputeSubmission,
    ReportSubmission,
    VerificationUpdate,
    dispute_to_dict,
    report_to_dict,
)
from scamcheck.domain.categories import (
    CALL_TYPE_LABELS,
    CATEGORY_LABELS,
    FREQUENCY_LABELS,
    as_options,
)
from scamcheck.infra.repositories import RepositoryError, build_repository
from scamcheck.services.report_service import ReportService
from scamcheck.services.stats_service import StatsService

logger = logging.getLogger(__name__)

MAX_LOG_LINE = 80

router = APIRouter(prefix="/api")


def get_service(request: Request) -> ReportService:
    return request.app.state.report_service


def get_stats(request: Request) -> StatsService:
    return request.app.state.stats_service


@router.get("/lookup/{phone_number}")
def lookup(phone_number: str, service: ReportService = Depends(get_service)) -> dict[str, Any]:
    report = service.lookup(phone_number)
    if report is None:
        return {"found": False}
    return {"found": True, "report": report_to_dict(report)}


@router.post("/reports")
def submit_report(payload: ReportSubmission, service: ReportService = Depends(get_service)) -> JSONResponse:
    report, created = service.submit_report(payload)
    if created:
        return JSONResponse(status_code=201, content={"report": report_to_dict(report)})
    return JSONResponse(
        status_code=200,
        content={"report": report_to_dict(report), "message": "Report count updated"},
    )


@router.get("/reports/recent")
def recent_reports(
    limit: int = Query(default=settings.recent_reports_limit, ge=0),
    service: ReportService = Depends(get_service),
) -> dict[str, Any]:
    return {"reports": [report_to_dict(r) for r in service.recent(limit)]}


@router.get("/reports")
def list_reports(
    search: str | None = None,
    category: str | None = None,
    service: ReportService = Depends(get_service),
) -> dict[str, Any]:
    return {"reports": [report_to_dict(r) for r in service.search(search, category)]}


@router.patch("/reports/{report_id}/verify")
def verify_report(
    report_id: str,
    payload: VerificationUpdate,
    service: ReportService = Depends(get_service),
) -> JSONResponse:
    report = service.set_verified(report_id, payload.is_verified)
    if report is None:
        return JSONResponse(status_code=404, content={"message": "Report not found"})
    return JSONResponse(status_code=200, content={"report": report_to_dict(report)})


@router.get("/reports/{report_id}/disputes")
def report_disputes(report_id: str, service: ReportService = Depends(get_service)) -> dict[str, Any]:
    return {"disputes": [dispute_to_dict(d) for d in service.disputes_for(report_id)]}


@router.post("/disputes", status_code=201)
def open_dispute(payload: DisputeSubmission, service: ReportService = Depends(get_service)) -> dict[str, Any]:
    return {"dispute": dispute_to_dict(service.open_dispute(payload))}


@router.get("/stats")
def stats(stats_service: StatsService = Depends(get_stats)) -> dict[str, int]:
    return stats_service.describe()


@router.get("/categories")
def categories() -> dict[str, Any]:
    return {
        "categories": as_options(CATEGORY_LABELS),
        "callTypes": as_options(CALL_TYPE_LABELS),
        "frequencies": as_options(FREQUENCY_LABELS),
    }


def _validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    errors = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        if loc and loc[0] in {"body", "query", "path"}:
            loc = loc[1:]
        errors.append({"path": loc, "message": str(err.get("msg", "")), "code": str(err.get("type", ""))})
    return errors


def _register_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": "Invalid data", "errors": _validation_errors(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": str(exc)})

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"message": "Store operation failed"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


def _log_api_request(method: str, path: str, status_code: int, start: float) -> None:
    if not path.startswith("/api"):
        return
    duration_ms = int((time.perf_counter() - start) * 1000)
    line = f"{method} {path} {status_code} in {duration_ms}ms"
    if len(line) > MAX_LOG_LINE:
        line = line[: MAX_LOG_LINE - 1] + "…"
    logger.info(line)


def _register_request_log(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # Uncaught errors are turned into a 500 further out; log that status here.
            _log_api_request(request.method, request.url.path, 500, start)
            raise
        _log_api_request(request.method, request.url.path, response.status_code, start)
        return response


def create_app(service: ReportService | None = None) -> FastAPI:
    if service is None:
        repo, persistent, note = build_repository(settings)
        if note:
            logger.warning(note)
        service = ReportService(repo, persistent=persistent)

    app = FastAPI(title="Scam Call Lookup API", version=__version__)
    app.state.report_service = service
    app.state.stats_service = StatsService(service.repo)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_request_log(app)
    _register_handlers(app)
    app.include_router(router)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "persistence": "supabase" if service.persistent else "memory",
        }

    return app


app = create_app()
