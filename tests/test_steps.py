"""Tests for the workflow step model and the transition tables."""

import pytest

from tfgenie.workflow.errors import InvalidTransitionError
from tfgenie.workflow.models import (
    Document,
    DocumentStatus,
    FieldExtraction,
    FieldPosition,
    SessionStatus,
    StepStatus,
)
from tfgenie.workflow.steps import (
    DOCUMENT_TRANSITIONS,
    SESSION_TRANSITIONS,
    WORKFLOW_STEPS,
    check_document_transition,
    check_session_transition,
    infer_current_step,
    progress_percent,
    step_states,
)


def _make_document(
    status: DocumentStatus = DocumentStatus.UPLOADED, with_fields: bool = False
) -> Document:
    """Create a document in the given status for testing."""
    document = Document(
        id="doc-1",
        session_id="TF_1_abc",
        file_name="lc_draft.pdf",
        file_type="application/pdf",
        file_size=1024,
        status=status,
    )
    if with_fields:
        document.extracted_fields = [
            FieldExtraction(
                field_id="doc-1_field_1",
                field_name="LC Number",
                field_value="LC12345678",
                confidence=0.92,
                position=FieldPosition(40, 40, 160, 16),
            )
        ]
    return document


class TestWorkflowSteps:
    """Tests for the fixed step list."""

    def test_eight_steps_in_order(self) -> None:
        assert [s.id for s in WORKFLOW_STEPS] == list(range(1, 9))
        assert WORKFLOW_STEPS[0].name == "Session Init"
        assert WORKFLOW_STEPS[3].name == "OCR Process"
        assert WORKFLOW_STEPS[7].description == "Final storage"

    def test_step_states(self) -> None:
        states = step_states(4)
        assert [s.status for s in states[:4]] == [StepStatus.COMPLETED] * 4
        assert states[4].status == StepStatus.ACTIVE
        assert all(s.status == StepStatus.PENDING for s in states[5:])

    def test_step_states_error(self) -> None:
        assert step_states(3, failed=True)[3].status == StepStatus.ERROR

    def test_progress_percent(self) -> None:
        assert progress_percent(0) == 0
        assert progress_percent(7) == 100
        assert progress_percent(2) == pytest.approx(200 / 7)


class TestInferCurrentStep:
    """Tests for the precedence decision table."""

    def test_no_session(self) -> None:
        assert infer_current_step(None, []) is None

    def test_session_without_documents(self) -> None:
        assert infer_current_step(SessionStatus.CREATED, []) == 2

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (DocumentStatus.UPLOADED, 3),
            (DocumentStatus.PROCESSING, 3),
            (DocumentStatus.ERROR, 3),
            (DocumentStatus.PROCESSED, 4),
            (DocumentStatus.VALIDATED, 5),
        ],
    )
    def test_single_document(self, status: DocumentStatus, expected: int) -> None:
        documents = [_make_document(status)]
        assert infer_current_step(SessionStatus.UPLOADING, documents) == expected

    def test_extracted_fields_move_to_review(self) -> None:
        document = _make_document(DocumentStatus.VALIDATED, with_fields=True)
        assert infer_current_step(SessionStatus.REVIEWING, [document]) == 6

    def test_completed_wins(self) -> None:
        assert infer_current_step(SessionStatus.COMPLETED, []) == 7

    def test_most_advanced_document_wins(self) -> None:
        documents = [
            _make_document(DocumentStatus.UPLOADED),
            _make_document(DocumentStatus.VALIDATED),
        ]
        assert infer_current_step(SessionStatus.REVIEWING, documents) == 5


class TestTransitions:
    """Tests for the session and document transition tables."""

    def test_tables_are_exhaustive(self) -> None:
        assert set(SESSION_TRANSITIONS) == set(SessionStatus)
        assert set(DOCUMENT_TRANSITIONS) == set(DocumentStatus)

    def test_document_cannot_skip_processing(self) -> None:
        with pytest.raises(InvalidTransitionError):
            check_document_transition(DocumentStatus.UPLOADED, DocumentStatus.VALIDATED)

    def test_document_allowed_path(self) -> None:
        check_document_transition(DocumentStatus.UPLOADED, DocumentStatus.PROCESSING)
        check_document_transition(DocumentStatus.PROCESSING, DocumentStatus.PROCESSED)
        check_document_transition(DocumentStatus.PROCESSED, DocumentStatus.VALIDATED)

    def test_error_can_be_reprocessed(self) -> None:
        check_document_transition(DocumentStatus.ERROR, DocumentStatus.PROCESSING)

    def test_validated_is_final(self) -> None:
        with pytest.raises(InvalidTransitionError):
            check_document_transition(
                DocumentStatus.VALIDATED, DocumentStatus.PROCESSING
            )

    def test_session_same_status_allowed(self) -> None:
        check_session_transition(SessionStatus.PROCESSING, SessionStatus.PROCESSING)

    def test_session_cannot_complete_from_created(self) -> None:
        with pytest.raises(InvalidTransitionError) as excinfo:
            check_session_transition(SessionStatus.CREATED, SessionStatus.COMPLETED)
        assert excinfo.value.current == "created"
        assert excinfo.value.target == "completed"

    def test_completed_is_final(self) -> None:
        for status in SessionStatus:
            if status != SessionStatus.COMPLETED:
                with pytest.raises(InvalidTransitionError):
                    check_session_transition(SessionStatus.COMPLETED, status)

    def test_frozen_only_completes(self) -> None:
        check_session_transition(SessionStatus.FROZEN, SessionStatus.COMPLETED)
        with pytest.raises(InvalidTransitionError):
            check_session_transition(SessionStatus.FROZEN, SessionStatus.UPLOADING)
