import dataclasses
import logging
from datetime import datetime, timezone

from fastapi import BackgroundTasks, FastAPI, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from querylinker_core.config import settings
from querylinker_core.db import Base, engine
from querylinker_core.errors import (
    AccountConflict,
    AuthenticationFailed,
    ConfigurationMissing,
    EmbeddingProviderError,
    InvalidSearchRequest,
)
from querylinker_core.logging_utils import setup_logging
from querylinker_core.models import IncidentLink, Solution, User
from querylinker_core.schemas import (
    EnhancedSearchRequest,
    EnhancedSearchResponse,
    IncidentLinkOut,
    LinkRequest,
    LinkResponse,
    SolutionIngestRequest,
    SolutionIngestResult,
    Suggestion,
    SyncStatusResponse,
    SyncTriggerRequest,
    SyncTriggerResponse,
    SystemInfo,
)
from querylinker_api import auth, crud, mail
from querylinker_api.dependencies import get_db, get_embedder, get_optional_user, get_orchestrator, get_sync_service
from querylinker_services.embeddings.embedder import Embedder
from querylinker_services.search.connectors import HttpConnector
from querylinker_services.search.orchestrator import SearchOrchestrator
from querylinker_services.search.solution_store import upsert_solution
from querylinker_services.search.sync import SolutionSyncService
from querylinker_services.search.systems import SYSTEMS, icon_for, normalize_system

logger = logging.getLogger(__name__)

EMBEDDING_RETRY_AFTER_SECONDS = 30

app = FastAPI(title="QueryLinker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(mail.router)


def _error(status_code: int, message: str, headers: dict | None = None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(422, "Invalid request body", errors=jsonable_encoder(exc.errors()))


@app.exception_handler(InvalidSearchRequest)
def invalid_search_handler(request: Request, exc: InvalidSearchRequest):
    return _error(400, str(exc))


@app.exception_handler(AuthenticationFailed)
def authentication_failed_handler(request: Request, exc: AuthenticationFailed):
    return _error(401, str(exc))


@app.exception_handler(AccountConflict)
def account_conflict_handler(request: Request, exc: AccountConflict):
    return _error(409, str(exc))


@app.exception_handler(ConfigurationMissing)
def configuration_missing_handler(request: Request, exc: ConfigurationMissing):
    logger.error("Configuration missing: %s", exc)
    return _error(503, str(exc))


@app.exception_handler(EmbeddingProviderError)
def embedding_provider_handler(request: Request, exc: EmbeddingProviderError):
    headers = {"Retry-After": str(EMBEDDING_RETRY_AFTER_SECONDS)} if exc.retryable else None
    return _error(503, str(exc), headers=headers)


@app.on_event("startup")
def startup():
    setup_logging()
    Base.metadata.create_all(bind=engine)
    logger.info(
        "QueryLinker API started (embeddings=%s, email=%s, oauth=%s)",
        settings.EMBEDDING_PROVIDER, settings.EMAIL_PROVIDER, settings.OAUTH_PROVIDER,
    )


@app.get("/health")
def health():
    return {
        "status": "ok",
        "embedding_provider": settings.EMBEDDING_PROVIDER,
        "email_provider": settings.EMAIL_PROVIDER,
        "oauth_provider": settings.OAUTH_PROVIDER,
    }


@app.post("/api/querylinker/enhanced-search", response_model=EnhancedSearchResponse)
def enhanced_search(payload: EnhancedSearchRequest, orchestrator: SearchOrchestrator = Depends(get_orchestrator)):
    request = orchestrator.build_request(
        payload.query, payload.systems, max_results=payload.max_results, use_semantic=payload.use_semantic,
    )
    outcome = orchestrator.search(request)
    if outcome.failed_systems:
        logger.info("Search for %r skipped failed systems: %s", request.query, outcome.failed_systems)

    return EnhancedSearchResponse(
        suggestions=[Suggestion(**dataclasses.asdict(r), icon=icon_for(r.system)) for r in outcome.results],
        total_found=outcome.total_found,
        search_keywords=outcome.search_keywords,
        search_time_ms=outcome.search_time_ms,
        source=outcome.source,
    )


@app.get("/api/querylinker/systems", response_model=list[SystemInfo])
def list_systems(orchestrator: SearchOrchestrator = Depends(get_orchestrator), db: Session = Depends(get_db)):
    """Known systems; connected means a live connector is configured or solutions are synced."""
    synced = dict(db.execute(
        select(Solution.system, func.count(Solution.id))
        .where(Solution.sync_status == "active")
        .group_by(Solution.system)
    ).all())
    out = []
    for key, info in SYSTEMS.items():
        adapter = orchestrator.adapters.get(key)
        out.append(SystemInfo(
            key=key,
            name=info.name,
            icon=info.icon,
            features=list(info.features),
            connected=isinstance(adapter, HttpConnector) or synced.get(key, 0) > 0,
        ))
    return out


@app.post("/api/querylinker/solutions", response_model=SolutionIngestResult)
def ingest_solution(payload: SolutionIngestRequest, db: Session = Depends(get_db),
                    embedder: Embedder = Depends(get_embedder)):
    system = normalize_system(payload.system)
    if system not in SYSTEMS:
        raise HTTPException(400, f"Unknown system '{payload.system}'")
    if not payload.external_id.strip() or not payload.content.strip():
        raise HTTPException(400, "external_id and content are required")

    sol, num_chunks, unchanged = upsert_solution(
        db, embedder,
        system=system,
        external_id=payload.external_id.strip(),
        title=payload.title,
        content=payload.content,
        url=payload.url,
        author=payload.author,
        tags=payload.tags,
    )
    return SolutionIngestResult(
        solution_id=sol.id, system=system, external_id=sol.external_id,
        num_chunks=num_chunks, unchanged=unchanged,
    )


def _link_out(row: IncidentLink) -> IncidentLinkOut:
    return IncidentLinkOut(
        link_id=f"LNK-{row.id}",
        incident_number=row.incident_number,
        suggestion_id=row.suggestion_id,
        system=row.system,
        title=row.title,
        link=row.link,
        user_id=row.user_id,
        created_at=row.created_at,
    )


@app.post("/api/querylinker/link", response_model=LinkResponse)
def link_to_incident(payload: LinkRequest, db: Session = Depends(get_db),
                     user: User | None = Depends(get_optional_user)):
    """Attach a suggestion to an incident; signed-in callers are recorded as the linker."""
    incident = payload.incident_number.strip()
    suggestion_id = payload.suggestion_id.strip()
    if not incident or not suggestion_id:
        raise HTTPException(400, "incident_number and suggestion_id are required")
    system = normalize_system(payload.system)
    if system not in SYSTEMS:
        raise HTTPException(400, f"Unknown system '{payload.system}'")

    title = payload.title.strip() or suggestion_id
    row, created = crud.link_to_incident(
        db, incident_number=incident, suggestion_id=suggestion_id, system=system,
        title=title, link=payload.link, user_id=user.id if user else None,
    )
    if created:
        logger.info("Linked %s/%s to incident %s", system, suggestion_id, incident)
        message = f"Successfully linked {title} to incident {incident}"
    else:
        message = f"{title} is already linked to incident {incident}"
    return LinkResponse(status="success", message=message, link_id=f"LNK-{row.id}")


@app.get("/api/querylinker/incidents/{incident_number}/links", response_model=list[IncidentLinkOut])
def incident_links(incident_number: str, db: Session = Depends(get_db)):
    return [_link_out(row) for row in crud.list_incident_links(db, incident_number.strip())]


@app.get("/api/querylinker/sync-status", response_model=SyncStatusResponse)
def sync_status(db: Session = Depends(get_db), sync: SolutionSyncService = Depends(get_sync_service)):
    return SyncStatusResponse(
        systems=sync.status(db),
        last_updated=datetime.now(timezone.utc),
    )


@app.post("/api/querylinker/trigger-sync", response_model=SyncTriggerResponse)
def trigger_sync(background_tasks: BackgroundTasks, payload: SyncTriggerRequest | None = None,
                 sync: SolutionSyncService = Depends(get_sync_service)):
    """Start a sync of one system (or every system with a live connector) after responding."""
    system = None
    if payload is not None and payload.system:
        system = normalize_system(payload.system)
        if system not in SYSTEMS:
            raise HTTPException(400, f"Unknown system '{payload.system}'")
    targets = sync.resolve(system)
    background_tasks.add_task(sync.sync_systems, targets)
    label = system or "all systems"
    logger.info("Sync triggered for %s", label)
    return SyncTriggerResponse(success=True, message=f"Sync triggered for {label}", systems=targets)
