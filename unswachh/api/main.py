"""
Unswachh - REST API

FastAPI application for submitting, moderating and voting on
cleanliness reports.

Run with: uvicorn unswachh.api.main:app --reload
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, Header, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from unswachh import __version__
from unswachh.core.config import Settings, get_settings
from unswachh.core.exceptions import DuplicateNearby, ReportNotFound, UnswachhError
from unswachh.core.logging import setup_logging
from unswachh.crowdsource.geolocation import DevicePosition, GeoVerifier
from unswachh.crowdsource.moderation import ModerationEngine, PasswordAdminGate
from unswachh.crowdsource.regions import group_by_region
from unswachh.crowdsource.report_store import (
    InMemoryReportStore,
    Report,
    ReportStatus,
    ReportStore,
)
from unswachh.crowdsource.submission import ReportDraft, ReportSubmissionPipeline
from unswachh.crowdsource.votes import InMemoryVoteBook, JsonVoteBook, VoteChoice, VoteLedger
from unswachh.ingestion.geocoding_client import create_geocoder
from unswachh.ingestion.image_pipeline import create_image_pipeline

if TYPE_CHECKING:
    from unswachh.database import DatabaseConnection

logger = logging.getLogger(__name__)


# ============================================================================
# Services
# ============================================================================

@dataclass
class Services:
    """Core components shared by all requests."""
    store: ReportStore
    pipeline: ReportSubmissionPipeline
    moderation: ModerationEngine
    votes: VoteLedger
    db: Optional["DatabaseConnection"] = None


def build_services(settings: Settings) -> Services:
    """Wire the core components from settings."""
    if settings.database_url:
        from unswachh.database import SqlReportStore, init_db

        db = init_db(settings.database_url)
        store: ReportStore = SqlReportStore(db, share_base_url=settings.public_base_url)
    else:
        db = None
        store = InMemoryReportStore(share_base_url=settings.public_base_url)

    book = JsonVoteBook(settings.vote_book_path) if settings.vote_book_path else InMemoryVoteBook()

    return Services(
        store=store,
        pipeline=ReportSubmissionPipeline(
            store=store,
            images=create_image_pipeline(settings),
            geocoder=create_geocoder(settings),
        ),
        moderation=ModerationEngine(store, PasswordAdminGate(settings.admin_password)),
        votes=VoteLedger(store, book),
        db=db,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services(get_settings())
    return _services


# FastAPI app
app = FastAPI(
    title="Unswachh",
    description="Report, moderate and vote on civic cleanliness issues",
    version=__version__,
    docs_url=None if get_settings().is_production else "/docs",
    redoc_url=None if get_settings().is_production else "/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


setup_logging()


@app.exception_handler(UnswachhError)
async def domain_error_handler(request: Request, exc: UnswachhError):
    content = {"error": type(exc).__name__, "detail": exc.message}
    if isinstance(exc, DuplicateNearby):
        content["existing_id"] = exc.existing_id
        content["distance_m"] = round(exc.distance_m, 1) if exc.distance_m is not None else None
    return JSONResponse(status_code=exc.status_code, content=content)


# ============================================================================
# Pydantic Models
# ============================================================================

class ReportResponse(BaseModel):
    """Single report."""
    id: str
    title: str
    description: Optional[str] = None
    image_url: str
    location_name: str
    latitude: float
    longitude: float
    status: str
    vote_count: int
    created_at: Optional[str] = None
    share_url: Optional[str] = None
    directions_url: Optional[str] = None


class ReportListResponse(BaseModel):
    """Approved reports shown on the public map."""
    count: int
    reports: List[ReportResponse]
    user_votes: Dict[str, str] = Field(default_factory=dict)


class VoteRequest(BaseModel):
    choice: VoteChoice


class VoteResponse(BaseModel):
    delta: int
    choice: str
    no_op: bool
    vote_count: Optional[int] = None
    message: str


class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    token: str


class ModerationQueueResponse(BaseModel):
    in_review: List[ReportResponse]
    approved: List[ReportResponse]


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    database: Optional[str] = None


def _to_response(report: Report) -> ReportResponse:
    return ReportResponse(**report.to_dict())


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(services: Services = Depends(get_services)):
    database = None
    if services.db is not None:
        database = "ok" if services.db.check_connection() else "unavailable"

    return HealthResponse(
        status="healthy" if database != "unavailable" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=database,
    )


@app.post("/api/v1/stats/views", tags=["System"])
async def record_view(services: Services = Depends(get_services)):
    """Count one visit to the public map."""
    return {"views": await services.store.increment_views()}


# ============================================================================
# Report Routes
# ============================================================================

@app.post("/api/v1/reports", response_model=ReportResponse, status_code=201, tags=["Reports"])
async def submit_report(
    title: str = Form(""),
    description: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    accuracy: Optional[float] = Form(None),
    geolocation_error: Optional[int] = Form(None, description="Browser PositionError code"),
    geolocation_supported: bool = Form(True),
    image: Optional[UploadFile] = File(None),
    services: Services = Depends(get_services),
):
    """
    Submit a new report for review.

    The location must be the device fix from the browser geolocation API;
    the report becomes public once an admin approves it.
    """
    coordinates = None
    no_fix = latitude is None and longitude is None and geolocation_error is None
    if geolocation_supported and no_fix:
        logger.info("Submission without device location")
    else:
        position = DevicePosition(
            latitude=latitude,
            longitude=longitude,
            accuracy_m=accuracy,
            error_code=geolocation_error,
            supported=geolocation_supported,
        )
        coordinates = await GeoVerifier(position).verify()

    image_data = await image.read() if image is not None else None

    report = await services.pipeline.submit(ReportDraft(
        title=title,
        description=description,
        image=image_data,
        coordinates=coordinates,
    ))
    return _to_response(report)


@app.get("/api/v1/reports", response_model=ReportListResponse, tags=["Reports"])
async def list_reports(
    x_voter_id: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """Approved reports, with the caller's votes when a voter id is sent."""
    reports = await services.store.list(ReportStatus.APPROVED)
    user_votes = {}
    if x_voter_id:
        user_votes = {k: v.value for k, v in services.votes.choices_for(x_voter_id).items()}

    return ReportListResponse(
        count=len(reports),
        reports=[_to_response(r) for r in reports],
        user_votes=user_votes,
    )


@app.get("/api/v1/reports/regions", tags=["Reports"])
async def list_regions(services: Services = Depends(get_services)):
    """Approved reports grouped by state-level region."""
    reports = await services.store.list(ReportStatus.APPROVED)
    return {
        region: [r.to_dict() for r in grouped]
        for region, grouped in group_by_region(reports).items()
    }


@app.get("/api/v1/reports/stream", tags=["Reports"])
async def stream_reports(services: Services = Depends(get_services)):
    """Server-sent events carrying the full approved set after every change."""

    async def events():
        async with services.store.watch(ReportStatus.APPROVED) as feed:
            async for snapshot in feed:
                payload = json.dumps([r.to_dict() for r in snapshot])
                yield f"event: reports\ndata: {payload}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


@app.get("/api/v1/reports/{report_id}", response_model=ReportResponse, tags=["Reports"])
async def get_report(report_id: str, services: Services = Depends(get_services)):
    report = await services.store.get(report_id)
    if report is None or report.status != ReportStatus.APPROVED:
        raise ReportNotFound(report_id)
    return _to_response(report)


@app.post("/api/v1/reports/{report_id}/vote", response_model=VoteResponse, tags=["Reports"])
async def vote(
    report_id: str,
    request: VoteRequest,
    x_voter_id: str = Header(...),
    services: Services = Depends(get_services),
):
    """Up- or downvote an approved report."""
    effect = await services.votes.cast_vote(x_voter_id, report_id, request.choice)

    if effect.no_op:
        message = f"You've already {effect.new_choice.value}voted this issue!"
    else:
        message = "Upvoted!" if effect.new_choice == VoteChoice.UP else "Downvoted!"

    return VoteResponse(message=message, **effect.to_dict())


# ============================================================================
# Admin Routes
# ============================================================================

@app.post("/api/v1/admin/login", response_model=LoginResponse, tags=["Admin"])
async def admin_login(request: LoginRequest, services: Services = Depends(get_services)):
    session = await services.moderation.login(request.password)
    return LoginResponse(token=session.token)


@app.post("/api/v1/admin/logout", status_code=204, tags=["Admin"])
async def admin_logout(
    x_admin_token: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    session = services.moderation.session_for(x_admin_token)
    services.moderation.logout(session)


@app.get("/api/v1/admin/reports", response_model=ModerationQueueResponse, tags=["Admin"])
async def admin_reports(
    x_admin_token: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    """All reports split into in-review and approved."""
    session = services.moderation.session_for(x_admin_token)
    queue = await services.moderation.queue(session)
    return ModerationQueueResponse(
        in_review=[_to_response(r) for r in queue.in_review],
        approved=[_to_response(r) for r in queue.approved],
    )


@app.post("/api/v1/admin/reports/{report_id}/approve", response_model=ReportResponse, tags=["Admin"])
async def admin_approve(
    report_id: str,
    x_admin_token: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    session = services.moderation.session_for(x_admin_token)
    return _to_response(await services.moderation.approve(session, report_id))


@app.delete("/api/v1/admin/reports/{report_id}", status_code=204, tags=["Admin"])
async def admin_delete(
    report_id: str,
    x_admin_token: Optional[str] = Header(None),
    services: Services = Depends(get_services),
):
    session = services.moderation.session_for(x_admin_token)
    await services.moderation.remove(session, report_id)
