"""Workflow service driving a session through the eight steps.

Each public method corresponds to one user action of the dashboard:
creating a session, uploading, running OCR, approving or rejecting,
reprocessing, comparing, cataloging, requesting a new document type,
freezing and completing. The current step is always re-inferred from the
store afterwards instead of being tracked separately.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from tfgenie.extraction.field_extractor import FieldExtractor
from tfgenie.extraction.template_comparator import TemplateComparator
from tfgenie.ocr.mock_engine import MockOCREngine
from tfgenie.utils.config import WorkflowConfig
from tfgenie.utils.logger import get_logger
from tfgenie.validation.metadata import (
    generate_session_id,
    normalize_reference,
    validate_session_metadata,
)

from .errors import (
    DocumentNotReadyError,
    InvalidTransitionError,
    MetadataValidationError,
    TemplateSelectionError,
)
from .models import (
    ApprovalRequest,
    ApprovalStatus,
    Document,
    DocumentComparison,
    DocumentControl,
    DocumentStatus,
    FieldExtraction,
    MasterRecord,
    OCRResult,
    Session,
    SessionStatus,
)
from .steps import (
    check_document_transition,
    check_session_transition,
    infer_current_step,
)
from .store import WorkflowStore

logger = get_logger(__name__)

RecordWriter = Callable[[MasterRecord, list[Document]], None]

_IN_PROGRESS = (
    SessionStatus.UPLOADING,
    SessionStatus.PROCESSING,
    SessionStatus.REVIEWING,
)


@dataclass
class DashboardStats:
    """Session counters shown on the dashboard landing page."""

    total_sessions: int
    completed: int
    in_progress: int
    pending_review: int
    recent_sessions: list[Session] = field(default_factory=list)


class WorkflowService:
    """Coordinates the store, the OCR engine and the template comparator.

    Args:
        config: Workflow timings and defaults.
        store: State store; a fresh one is created when omitted.
        ocr_engine: OCR stand-in; built from ``config`` when omitted.
        comparator: Template comparator; built from ``config`` when omitted.
        record_writer: Called with the master record and the documents
            when a session completes.
    """

    def __init__(
        self,
        config: WorkflowConfig | None = None,
        store: WorkflowStore | None = None,
        ocr_engine: MockOCREngine | None = None,
        comparator: TemplateComparator | None = None,
        record_writer: RecordWriter | None = None,
    ) -> None:
        self.config = config or WorkflowConfig()
        self.store = store or WorkflowStore()
        self.ocr_engine = ocr_engine or MockOCREngine(self.config.ocr_delay_seconds)
        self.comparator = comparator or TemplateComparator(
            templates_path=Path(self.config.templates_path),
            delay_seconds=self.config.compare_delay_seconds,
        )
        self.field_extractor = FieldExtractor()
        self.record_writer = record_writer
        self.master_records: list[MasterRecord] = []

    # Step 1-2: session initialization

    def create_session(
        self,
        cif_number: str,
        lc_number: str,
        lifecycle: str,
        created_by: str | None = None,
    ) -> Session:
        """Validate the metadata and open a new session.

        Raises:
            MetadataValidationError: If any field is invalid.
        """
        errors = validate_session_metadata(cif_number, lc_number, lifecycle)
        if errors:
            raise MetadataValidationError(errors)

        session = Session(
            session_id=generate_session_id(),
            cif_number=normalize_reference(cif_number),
            lc_number=normalize_reference(lc_number),
            lifecycle=lifecycle,
            created_by=created_by or self.config.default_user,
        )
        self.store.add_session(session)
        logger.info(
            "Created session %s (CIF %s, LC %s)",
            session.session_id,
            session.cif_number,
            session.lc_number,
        )
        return session

    # Step 3: upload

    def upload_document(
        self, session_id: str, file_name: str, file_type: str, file_size: int
    ) -> Document:
        """Register an uploaded file with a session."""
        self.store.require_unlocked(session_id)
        self.store.set_session_status(session_id, SessionStatus.UPLOADING)
        document = Document(
            id=str(uuid.uuid4()),
            session_id=session_id,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
        )
        self.store.add_document(document)
        logger.info("Uploaded %s (%d bytes) to %s", file_name, file_size, session_id)
        return document

    # Step 4: OCR

    async def run_ocr(self, document_id: str) -> OCRResult | None:
        """Run OCR on a document.

        A failure is logged and leaves the document in ``error`` without a
        result, with the session back in its previous status. It is not
        retried.

        Returns:
            The OCR result, or ``None`` if processing failed.
        """
        document = self.store.get_document(document_id)
        session = self.store.require_unlocked(document.session_id)
        previous = session.status
        check_session_transition(previous, SessionStatus.PROCESSING)
        self.store.set_document_status(document_id, DocumentStatus.PROCESSING)
        self.store.set_session_status(document.session_id, SessionStatus.PROCESSING)

        try:
            result = await self.ocr_engine.process(
                document.file_name, document.iteration
            )
        except Exception as exc:
            logger.error("OCR processing failed for %s: %s", document.file_name, exc)
            self.store.set_document_status(document_id, DocumentStatus.ERROR)
            self.store.set_session_status(document.session_id, previous)
            return None

        self.store.set_document_status(document_id, DocumentStatus.PROCESSED)
        document.ocr_result = result
        return result

    async def reprocess(self, document_id: str) -> OCRResult | None:
        """Run another OCR iteration on a processed or rejected document."""
        document = self.store.get_document(document_id)
        self.store.require_unlocked(document.session_id)
        check_document_transition(document.status, DocumentStatus.PROCESSING)
        document.iteration += 1
        logger.info(
            "Reprocessing %s (iteration %d)", document.file_name, document.iteration
        )
        return await self.run_ocr(document_id)

    # Step 5: user validation

    def validate_document(self, document_id: str, approved: bool) -> Document:
        """Approve or reject the OCR result of a document.

        Approval validates the document and moves the session to review;
        rejection marks the document as ``error`` so it can be reprocessed.
        """
        document = self.store.get_document(document_id)
        if approved:
            session = self.store.get_session(document.session_id)
            check_session_transition(session.status, SessionStatus.REVIEWING)
            self.store.set_document_status(document_id, DocumentStatus.VALIDATED)
            self.store.set_session_status(document.session_id, SessionStatus.REVIEWING)
        else:
            self.store.set_document_status(document_id, DocumentStatus.ERROR)
            logger.info("OCR result of %s rejected", document.file_name)
        return document

    # Step 6: catalog & compare

    async def compare_document(self, document_id: str) -> DocumentComparison | None:
        """Compare a validated document against the template catalog.

        Returns:
            The comparison, or ``None`` if it failed.
        """
        document = self._validated_document(document_id)
        try:
            comparison = await self.comparator.compare(document)
        except Exception as exc:
            logger.error("Error comparing document %s: %s", document.file_name, exc)
            return None
        document.comparison = comparison
        return comparison

    def select_template(self, document_id: str, template_id: str) -> Document:
        """Select one of the document's template matches for cataloging."""
        document = self._validated_document(document_id)
        if document.comparison is None:
            raise TemplateSelectionError(
                f"Document {document_id} has not been compared yet"
            )
        if template_id not in {m.id for m in document.comparison.all_matches}:
            raise TemplateSelectionError(
                f"Template {template_id} did not match document {document_id}"
            )
        document.selected_template_id = template_id
        return document

    def catalog_document(self, document_id: str) -> list[FieldExtraction]:
        """Catalog a document under its selected template and extract fields."""
        document = self._validated_document(document_id)
        if document.selected_template_id is None or document.comparison is None:
            raise TemplateSelectionError(f"No template selected for {document_id}")

        template = next(
            m
            for m in document.comparison.all_matches
            if m.id == document.selected_template_id
        )
        text = document.ocr_result.extracted_text if document.ocr_result else ""
        document.extracted_fields = self.field_extractor.extract(
            text, document.id, template.confidence
        )
        document.cataloged_template_id = template.id
        logger.info("Document %s cataloged as %s", document.file_name, template.name)
        return document.extracted_fields

    def request_new_document_type(
        self, document_id: str, document_type: str, requested_by: str | None = None
    ) -> ApprovalRequest:
        """Ask an administrator to approve a new document type.

        Only documents whose comparison found no template qualify.
        """
        document = self._validated_document(document_id)
        if not document_type.strip():
            raise TemplateSelectionError("A document type name is required")
        if document.comparison is None or not document.comparison.is_new_document:
            raise TemplateSelectionError(
                f"Document {document_id} matches existing templates"
            )

        request = ApprovalRequest(
            id=str(uuid.uuid4()),
            document_id=document_id,
            document_type=document_type.strip(),
            requested_by=requested_by or self.config.default_user,
            requested_at=datetime.now(),
        )
        self.store.add_approval(request)
        logger.info(
            "New document type '%s' requested for %s",
            request.document_type,
            document_id,
        )
        return request

    def resolve_approval(
        self,
        request_id: str,
        approved: bool,
        admin: str,
        notes: str | None = None,
    ) -> ApprovalRequest:
        """Approve or reject a pending new-document-type request."""
        request = self.store.get_approval(request_id)
        target = ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED
        if request.status != ApprovalStatus.PENDING:
            raise InvalidTransitionError(
                "approval request", request.status.value, target.value
            )
        request.status = target
        request.admin_notes = notes
        request.approved_by = admin
        request.approved_at = datetime.now()
        logger.info("Approval request %s %s by %s", request_id, target.value, admin)
        return request

    # Step 7: review & control

    def freeze_session(self, session_id: str) -> Session:
        """Freeze a session so its documents become read-only.

        Raises:
            DocumentNotReadyError: If OCR is still running on a document.
        """
        busy = [
            d.file_name
            for d in self.store.documents_for(session_id)
            if d.status == DocumentStatus.PROCESSING
        ]
        if busy:
            raise DocumentNotReadyError(
                f"Cannot freeze {session_id} while OCR is running on {busy[0]}"
            )
        return self.store.set_session_status(session_id, SessionStatus.FROZEN)

    def document_control(self, session_id: str) -> DocumentControl:
        """Edit rights on the documents of a session."""
        locked = self.store.get_session(session_id).is_locked
        return DocumentControl(
            can_edit=not locked,
            can_replace=not locked,
            can_delete=not locked,
            can_revert=not locked,
            is_frozen=locked,
        )

    # Step 8: final storage

    def complete_session(
        self, session_id: str, created_by: str | None = None
    ) -> MasterRecord:
        """Complete a session and store its master record."""
        session = self.store.get_session(session_id)
        check_session_transition(session.status, SessionStatus.COMPLETED)
        documents = self.store.documents_for(session_id)

        record = MasterRecord(
            id=str(uuid.uuid4()),
            session_id=session_id,
            cif_number=session.cif_number,
            lc_number=session.lc_number,
            lifecycle=session.lifecycle,
            total_documents=len(documents),
            processed_at=datetime.now(),
            created_by=created_by or session.created_by,
        )
        if self.record_writer is not None:
            self.record_writer(record, documents)

        self.store.set_session_status(session_id, SessionStatus.COMPLETED)
        self.master_records.append(record)
        logger.info("Session %s stored as master record %s", session_id, record.id)
        return record

    # Read side

    def current_step(self, session_id: str) -> int:
        """Re-infer the active step of a session from its documents."""
        session = self.store.get_session(session_id)
        step = infer_current_step(session.status, self.store.documents_for(session_id))
        return step if step is not None else 0

    def dashboard_stats(self, recent: int = 5) -> DashboardStats:
        sessions = self.store.list_sessions()
        return DashboardStats(
            total_sessions=len(sessions),
            completed=sum(s.status == SessionStatus.COMPLETED for s in sessions),
            in_progress=sum(s.status in _IN_PROGRESS for s in sessions),
            pending_review=sum(s.status == SessionStatus.REVIEWING for s in sessions),
            recent_sessions=sessions[:recent],
        )

    def _validated_document(self, document_id: str) -> Document:
        document = self.store.get_document(document_id)
        self.store.require_unlocked(document.session_id)
        if document.status != DocumentStatus.VALIDATED:
            raise DocumentNotReadyError(
                f"Document {document_id} is {document.status.value}, not validated"
            )
        return document
