"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from tfgenie.extraction.template_comparator import confidence_band
from tfgenie.workflow.models import (
    ApprovalStatus,
    DocumentStatus,
    SessionStatus,
    StepStatus,
    TemplateType,
)


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class HealthResponse(BaseModel):
    """Response schema for the health check."""

    status: str
    version: str
    sessions: int


class SessionCreateRequest(BaseModel):
    """Metadata entered in the session box."""

    cif_number: str
    lc_number: str
    lifecycle: str
    created_by: str | None = None


class SessionResponse(_FromDomain):
    """A processing session."""

    session_id: str
    cif_number: str
    lc_number: str
    lifecycle: str
    status: SessionStatus
    created_at: datetime
    created_by: str


class WorkflowStepResponse(_FromDomain):
    """One workflow step with its display status."""

    id: int
    name: str
    status: StepStatus
    description: str


class ProgressResponse(BaseModel):
    """Current position of a session in the workflow."""

    session_id: str
    current_step: int
    progress_percent: float
    steps: list[WorkflowStepResponse]


class FieldPositionResponse(_FromDomain):
    x: int
    y: int
    width: int
    height: int


class FieldExtractionResponse(_FromDomain):
    """A key/value field extracted from a cataloged document."""

    field_id: str
    field_name: str
    field_value: str
    confidence: float
    position: FieldPositionResponse
    is_validated: bool
    is_edited: bool
    data_type: str


class OCRResultResponse(_FromDomain):
    """Result of one OCR pass."""

    extracted_text: str
    confidence: float
    document_type: str
    structured_data: dict[str, Any]
    iteration_number: int


class TemplateMatchResponse(_FromDomain):
    """A catalog template and how well it matched."""

    id: str
    name: str
    type: TemplateType
    confidence: float
    matched_fields: int
    total_fields: int
    category: str

    @computed_field
    @property
    def band(self) -> str:
        return confidence_band(self.confidence)


class ComparisonResponse(_FromDomain):
    """Outcome of a template comparison."""

    document_id: str
    master_matches: list[TemplateMatchResponse]
    sub_matches: list[TemplateMatchResponse]
    best_match: TemplateMatchResponse | None
    is_new_document: bool
    total_templates_checked: int


class DocumentResponse(_FromDomain):
    """An uploaded document and its derived data."""

    id: str
    session_id: str
    file_name: str
    file_type: str
    file_size: int
    status: DocumentStatus
    iteration: int
    ocr_result: OCRResultResponse | None = None
    comparison: ComparisonResponse | None = None
    selected_template_id: str | None = None
    cataloged_template_id: str | None = None
    extracted_fields: list[FieldExtractionResponse] = Field(default_factory=list)
    uploaded_at: datetime


class SessionDetailResponse(BaseModel):
    """A session with its documents, progress and edit rights."""

    session: SessionResponse
    documents: list[DocumentResponse]
    current_step: int
    can_edit: bool
    is_frozen: bool


class ValidateRequest(BaseModel):
    """User verdict on an OCR result."""

    approved: bool


class SelectTemplateRequest(BaseModel):
    template_id: str


class NewTypeRequest(BaseModel):
    """Request for a document type missing from the catalog."""

    document_type: str
    requested_by: str | None = None


class ApprovalResolveRequest(BaseModel):
    """Administrator decision on a new-document-type request."""

    approved: bool
    admin: str
    notes: str | None = None


class ApprovalResponse(_FromDomain):
    id: str
    document_id: str
    document_type: str
    requested_by: str
    requested_at: datetime
    status: ApprovalStatus
    admin_notes: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None


class CompleteRequest(BaseModel):
    created_by: str | None = None


class MasterRecordResponse(_FromDomain):
    """Final storage record of a completed session."""

    id: str
    session_id: str
    cif_number: str
    lc_number: str
    lifecycle: str
    total_documents: int
    processed_at: datetime
    created_by: str


class DashboardResponse(BaseModel):
    """Counters for the dashboard landing page."""

    total_sessions: int
    completed: int
    in_progress: int
    pending_review: int
    recent_sessions: list[SessionResponse]


class TemplatesResponse(BaseModel):
    """Response schema listing the template catalog."""

    total_templates: int
    templates: list[TemplateMatchResponse]
