"""Domain entities of the trade-finance document workflow.

Sessions own documents; documents carry the OCR result, the template
comparison and the fields extracted once a template is cataloged.
Status values are closed enums so that the transition tables in
:mod:`tfgenie.workflow.steps` can be exhaustive.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class SessionStatus(StrEnum):
    """Lifecycle of a processing session."""

    CREATED = "created"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    REVIEWING = "reviewing"
    FROZEN = "frozen"
    COMPLETED = "completed"


class DocumentStatus(StrEnum):
    """Lifecycle of a single uploaded document."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    VALIDATED = "validated"
    ERROR = "error"


class StepStatus(StrEnum):
    """Display status of a workflow step."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"


class TemplateType(StrEnum):
    """Level of a catalog template."""

    MASTER = "master"
    SUB = "sub"


class ApprovalStatus(StrEnum):
    """State of a new-document-type approval request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class WorkflowStep:
    """One of the eight fixed workflow steps."""

    id: int
    name: str
    status: StepStatus
    description: str


@dataclass
class SessionMetadata:
    """Metadata captured when a session is initialized."""

    cif_number: str
    lc_number: str
    lifecycle: str
    session_id: str


@dataclass
class OCRResult:
    """Output of one OCR pass over a document."""

    extracted_text: str
    confidence: float
    document_type: str
    structured_data: dict[str, Any]
    iteration_number: int


@dataclass
class TemplateMatch:
    """A catalog template that matched a document."""

    id: str
    name: str
    type: TemplateType
    confidence: float
    matched_fields: int
    total_fields: int
    category: str


@dataclass
class DocumentComparison:
    """Result of comparing a document against the template catalog."""

    document_id: str
    master_matches: list[TemplateMatch]
    sub_matches: list[TemplateMatch]
    best_match: TemplateMatch | None
    is_new_document: bool
    total_templates_checked: int

    @property
    def all_matches(self) -> list[TemplateMatch]:
        """Master matches followed by sub-document matches."""
        return [*self.master_matches, *self.sub_matches]


@dataclass
class FieldPosition:
    """Location of an extracted field on the page."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class FieldExtraction:
    """A key/value field extracted from a cataloged document."""

    field_id: str
    field_name: str
    field_value: str
    confidence: float
    position: FieldPosition
    is_validated: bool = False
    is_edited: bool = False
    data_type: str = "text"


@dataclass
class DocumentControl:
    """Edit rights on the documents of a session."""

    can_edit: bool
    can_replace: bool
    can_delete: bool
    can_revert: bool
    is_frozen: bool


@dataclass
class ApprovalRequest:
    """Request for an administrator to approve a new document type."""

    id: str
    document_id: str
    document_type: str
    requested_by: str
    requested_at: datetime
    status: ApprovalStatus = ApprovalStatus.PENDING
    admin_notes: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None


@dataclass
class MasterRecord:
    """Final storage record written when a session completes."""

    id: str
    session_id: str
    cif_number: str
    lc_number: str
    lifecycle: str
    total_documents: int
    processed_at: datetime
    created_by: str


@dataclass
class Session:
    """A document processing session for one LC of one customer."""

    session_id: str
    cif_number: str
    lc_number: str
    lifecycle: str
    status: SessionStatus = SessionStatus.CREATED
    created_at: datetime = field(default_factory=datetime.now)
    created_by: str = ""

    @property
    def is_locked(self) -> bool:
        """Whether documents of this session can no longer change."""
        return self.status in (SessionStatus.FROZEN, SessionStatus.COMPLETED)


@dataclass
class Document:
    """An uploaded document and everything derived from it."""

    id: str
    session_id: str
    file_name: str
    file_type: str
    file_size: int
    status: DocumentStatus = DocumentStatus.UPLOADED
    extracted_fields: list[FieldExtraction] = field(default_factory=list)
    iteration: int = 1
    ocr_result: OCRResult | None = None
    comparison: DocumentComparison | None = None
    selected_template_id: str | None = None
    cataloged_template_id: str | None = None
    uploaded_at: datetime = field(default_factory=datetime.now)
