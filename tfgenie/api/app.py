"""FastAPI application for the TF Genie document workflow.

Exposes the dashboard actions as REST endpoints: sessions, uploads, OCR,
validation, template comparison and cataloging, review and final storage.
All endpoints share one :class:`WorkflowService` obtained through
:func:`get_service`.
"""

from typing import Annotated

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tfgenie.database.connection import create_db_engine
from tfgenie.database.records import MasterRecordWriter
from tfgenie.extraction.template_comparator import TOTAL_TEMPLATES
from tfgenie.utils.config import load_config
from tfgenie.utils.logger import get_logger
from tfgenie.workflow.errors import (
    ApprovalNotFoundError,
    DocumentNotFoundError,
    DocumentNotReadyError,
    InvalidTransitionError,
    MetadataValidationError,
    SessionLockedError,
    SessionNotFoundError,
    TemplateSelectionError,
)
from tfgenie.workflow.models import Document
from tfgenie.workflow.service import WorkflowService
from tfgenie.workflow.steps import WORKFLOW_STEPS, progress_percent, step_states

from .schemas import (
    ApprovalResolveRequest,
    ApprovalResponse,
    CompleteRequest,
    DashboardResponse,
    DocumentResponse,
    HealthResponse,
    MasterRecordResponse,
    NewTypeRequest,
    ProgressResponse,
    SelectTemplateRequest,
    SessionCreateRequest,
    SessionDetailResponse,
    SessionResponse,
    TemplateMatchResponse,
    TemplatesResponse,
    ValidateRequest,
    WorkflowStepResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"

_config = load_config()

app = FastAPI(
    title="TF Genie API",
    description="Trade-finance document processing workflow",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_service: WorkflowService | None = None


def get_service() -> WorkflowService:
    """Return the shared workflow service, creating it on first use."""
    global _service
    if _service is None:
        writer = None
        if _config.workflow.store_master_records:
            writer = MasterRecordWriter(create_db_engine(_config.database))
        _service = WorkflowService(_config.workflow, record_writer=writer)
    return _service


Service = Annotated[WorkflowService, Depends(get_service)]


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(SessionNotFoundError)
@app.exception_handler(DocumentNotFoundError)
@app.exception_handler(ApprovalNotFoundError)
async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return _error(404, exc)


@app.exception_handler(InvalidTransitionError)
@app.exception_handler(SessionLockedError)
@app.exception_handler(DocumentNotReadyError)
@app.exception_handler(TemplateSelectionError)
async def _conflict(request: Request, exc: Exception) -> JSONResponse:
    return _error(409, exc)


@app.exception_handler(MetadataValidationError)
async def _invalid_metadata(
    request: Request, exc: MetadataValidationError
) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.errors})


def _document_response(document: Document) -> DocumentResponse:
    return DocumentResponse.model_validate(document)


def _session_detail(service: WorkflowService, session_id: str) -> SessionDetailResponse:
    session = service.store.get_session(session_id)
    control = service.document_control(session_id)
    return SessionDetailResponse(
        session=SessionResponse.model_validate(session),
        documents=[
            _document_response(d) for d in service.store.documents_for(session_id)
        ],
        current_step=service.current_step(session_id),
        can_edit=control.can_edit,
        is_frozen=control.is_frozen,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(service: Service) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        sessions=len(service.store.list_sessions()),
    )


@app.get("/workflow/steps", response_model=list[WorkflowStepResponse])
async def list_steps() -> list[WorkflowStepResponse]:
    """List the eight workflow steps."""
    return [WorkflowStepResponse.model_validate(s) for s in WORKFLOW_STEPS]


@app.get("/dashboard", response_model=DashboardResponse)
async def dashboard(service: Service) -> DashboardResponse:
    """Return session counters and the most recent sessions."""
    stats = service.dashboard_stats()
    return DashboardResponse(
        total_sessions=stats.total_sessions,
        completed=stats.completed,
        in_progress=stats.in_progress,
        pending_review=stats.pending_review,
        recent_sessions=[
            SessionResponse.model_validate(s) for s in stats.recent_sessions
        ],
    )


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest, service: Service
) -> SessionResponse:
    """Validate session metadata and open a new session."""
    session = service.create_session(
        body.cif_number, body.lc_number, body.lifecycle, body.created_by
    )
    return SessionResponse.model_validate(session)


@app.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(service: Service) -> list[SessionResponse]:
    return [SessionResponse.model_validate(s) for s in service.store.list_sessions()]


@app.get("/sessions/{session_id}", response_model=SessionDetailResponse)
async def get_session(session_id: str, service: Service) -> SessionDetailResponse:
    return _session_detail(service, session_id)


@app.get("/sessions/{session_id}/progress", response_model=ProgressResponse)
async def session_progress(session_id: str, service: Service) -> ProgressResponse:
    """Return the inferred current step and the per-step display status."""
    current = service.current_step(session_id)
    return ProgressResponse(
        session_id=session_id,
        current_step=current,
        progress_percent=progress_percent(current),
        steps=[WorkflowStepResponse.model_validate(s) for s in step_states(current)],
    )


@app.post(
    "/sessions/{session_id}/documents",
    response_model=list[DocumentResponse],
    status_code=201,
)
async def upload_documents(
    session_id: str,
    files: Annotated[list[UploadFile], File(...)],
    service: Service,
) -> list[DocumentResponse]:
    """Upload one or more documents to a session.

    Args:
        session_id: Target session.
        files: Uploaded files; only their name, type and size are kept.

    Returns:
        The registered documents.
    """
    documents = []
    for file in files:
        content = await file.read()
        documents.append(
            service.upload_document(
                session_id,
                file.filename or "document",
                file.content_type or "application/octet-stream",
                len(content),
            )
        )
    return [_document_response(d) for d in documents]


@app.post("/documents/{document_id}/ocr", response_model=DocumentResponse)
async def run_ocr(document_id: str, service: Service) -> DocumentResponse:
    """Run OCR on a document; a failure leaves it in ``error``."""
    await service.run_ocr(document_id)
    return _document_response(service.store.get_document(document_id))


@app.post("/documents/{document_id}/validate", response_model=DocumentResponse)
async def validate_document(
    document_id: str, body: ValidateRequest, service: Service
) -> DocumentResponse:
    """Approve or reject the OCR result of a document."""
    return _document_response(service.validate_document(document_id, body.approved))


@app.post("/documents/{document_id}/reprocess", response_model=DocumentResponse)
async def reprocess_document(document_id: str, service: Service) -> DocumentResponse:
    await service.reprocess(document_id)
    return _document_response(service.store.get_document(document_id))


@app.post("/documents/{document_id}/compare", response_model=DocumentResponse)
async def compare_document(document_id: str, service: Service) -> DocumentResponse:
    """Compare a validated document against the template catalog."""
    await service.compare_document(document_id)
    return _document_response(service.store.get_document(document_id))


@app.post("/documents/{document_id}/select", response_model=DocumentResponse)
async def select_template(
    document_id: str, body: SelectTemplateRequest, service: Service
) -> DocumentResponse:
    return _document_response(service.select_template(document_id, body.template_id))


@app.post("/documents/{document_id}/catalog", response_model=DocumentResponse)
async def catalog_document(document_id: str, service: Service) -> DocumentResponse:
    """Catalog a document under its selected template and extract its fields."""
    service.catalog_document(document_id)
    return _document_response(service.store.get_document(document_id))


@app.post(
    "/documents/{document_id}/new-type-requests",
    response_model=ApprovalResponse,
    status_code=201,
)
async def request_new_type(
    document_id: str, body: NewTypeRequest, service: Service
) -> ApprovalResponse:
    """Ask an administrator to add a new document type to the catalog."""
    request = service.request_new_document_type(
        document_id, body.document_type, body.requested_by
    )
    return ApprovalResponse.model_validate(request)


@app.post("/approvals/{request_id}", response_model=ApprovalResponse)
async def resolve_approval(
    request_id: str, body: ApprovalResolveRequest, service: Service
) -> ApprovalResponse:
    request = service.resolve_approval(
        request_id, body.approved, body.admin, body.notes
    )
    return ApprovalResponse.model_validate(request)


@app.post("/sessions/{session_id}/freeze", response_model=SessionDetailResponse)
async def freeze_session(session_id: str, service: Service) -> SessionDetailResponse:
    """Freeze a session; its documents become read-only."""
    service.freeze_session(session_id)
    return _session_detail(service, session_id)


@app.post("/sessions/{session_id}/complete", response_model=MasterRecordResponse)
async def complete_session(
    session_id: str, service: Service, body: CompleteRequest | None = None
) -> MasterRecordResponse:
    """Complete a session and store its master record."""
    record = service.complete_session(session_id, body.created_by if body else None)
    return MasterRecordResponse.model_validate(record)


@app.get("/templates", response_model=TemplatesResponse)
async def list_templates(service: Service) -> TemplatesResponse:
    """List the catalog templates that documents can match."""
    return TemplatesResponse(
        total_templates=TOTAL_TEMPLATES,
        templates=[
            TemplateMatchResponse.model_validate(t)
            for t in service.comparator.list_templates()
        ],
    )
