"""Workflow step model and status transition tables.

The eight-step workflow is linear. The current step is never stored; it is
re-inferred from the session status and the documents whenever something
changes, using a fixed precedence decision table.
"""

from collections.abc import Iterable

from tfgenie.utils.logger import get_logger

from .errors import InvalidTransitionError
from .models import (
    Document,
    DocumentStatus,
    SessionStatus,
    StepStatus,
    WorkflowStep,
)

logger = get_logger(__name__)

# (name, description) for steps 1..8; the list index is the step index.
_STEP_DEFINITIONS: list[tuple[str, str]] = [
    ("Session Init", "User onboarding"),
    ("Session Box", "Metadata setup"),
    ("Upload", "Document upload"),
    ("OCR Process", "OCR & recognition"),
    ("Validation", "User validation"),
    ("Catalog", "Template matching"),
    ("Review", "Document control"),
    ("Storage", "Final storage"),
]

STEP_SESSION_INIT = 0
STEP_UPLOAD = 2
STEP_OCR = 3
STEP_VALIDATION = 4
STEP_CATALOG = 5
STEP_REVIEW = 6
STEP_STORAGE = 7

WORKFLOW_STEPS: tuple[WorkflowStep, ...] = tuple(
    WorkflowStep(id=i + 1, name=name, status=StepStatus.PENDING, description=desc)
    for i, (name, desc) in enumerate(_STEP_DEFINITIONS)
)

SESSION_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.CREATED: frozenset(
        {SessionStatus.UPLOADING, SessionStatus.FROZEN}
    ),
    SessionStatus.UPLOADING: frozenset(
        {SessionStatus.PROCESSING, SessionStatus.REVIEWING, SessionStatus.FROZEN}
    ),
    SessionStatus.PROCESSING: frozenset(
        {SessionStatus.UPLOADING, SessionStatus.REVIEWING, SessionStatus.FROZEN}
    ),
    SessionStatus.REVIEWING: frozenset(
        {
            SessionStatus.UPLOADING,
            SessionStatus.PROCESSING,
            SessionStatus.FROZEN,
            SessionStatus.COMPLETED,
        }
    ),
    SessionStatus.FROZEN: frozenset({SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
}

DOCUMENT_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset(
        {DocumentStatus.PROCESSING, DocumentStatus.ERROR}
    ),
    DocumentStatus.PROCESSING: frozenset(
        {DocumentStatus.PROCESSED, DocumentStatus.ERROR}
    ),
    DocumentStatus.PROCESSED: frozenset(
        {DocumentStatus.PROCESSING, DocumentStatus.VALIDATED, DocumentStatus.ERROR}
    ),
    DocumentStatus.VALIDATED: frozenset(),
    DocumentStatus.ERROR: frozenset({DocumentStatus.PROCESSING}),
}


def check_session_transition(current: SessionStatus, target: SessionStatus) -> None:
    """Raise if ``current -> target`` is not an allowed session transition.

    Staying in the same status is always allowed.
    """
    if current == target:
        return
    if target not in SESSION_TRANSITIONS[current]:
        raise InvalidTransitionError("session", current.value, target.value)


def check_document_transition(
    current: DocumentStatus, target: DocumentStatus
) -> None:
    """Raise if ``current -> target`` is not an allowed document transition."""
    if target not in DOCUMENT_TRANSITIONS[current]:
        raise InvalidTransitionError("document", current.value, target.value)


def infer_current_step(
    session_status: SessionStatus | None, documents: Iterable[Document]
) -> int | None:
    """Infer the active step index from the session and its documents.

    Checks run in fixed precedence order: a completed session wins, then
    any extracted fields, any validated document, any processed (or
    validated) document, any document at all, and finally nothing.

    Args:
        session_status: Status of the current session, ``None`` when there
            is no session yet.
        documents: Documents of the session.

    Returns:
        One of the step indices 2..7, or ``None`` without a session.
    """
    if session_status is None:
        return None

    docs = list(documents)
    has_documents = len(docs) > 0
    has_processed = any(
        d.status in (DocumentStatus.PROCESSED, DocumentStatus.VALIDATED) for d in docs
    )
    has_validated = any(d.status == DocumentStatus.VALIDATED for d in docs)
    has_extracted_fields = any(len(d.extracted_fields) > 0 for d in docs)

    if session_status == SessionStatus.COMPLETED:
        return STEP_STORAGE
    if has_extracted_fields:
        return STEP_REVIEW
    if has_validated:
        return STEP_CATALOG
    if has_processed:
        return STEP_VALIDATION
    if has_documents:
        return STEP_OCR
    return STEP_UPLOAD


def step_states(current_step: int, failed: bool = False) -> list[WorkflowStep]:
    """Return the eight steps with display statuses for ``current_step``.

    Steps before the current one are completed, the current one is active
    (or ``error`` when ``failed``), later ones are pending.
    """
    steps: list[WorkflowStep] = []
    for index, template in enumerate(WORKFLOW_STEPS):
        if index < current_step:
            status = StepStatus.COMPLETED
        elif index == current_step:
            status = StepStatus.ERROR if failed else StepStatus.ACTIVE
        else:
            status = StepStatus.PENDING
        steps.append(
            WorkflowStep(
                id=template.id,
                name=template.name,
                status=status,
                description=template.description,
            )
        )
    return steps


def progress_percent(current_step: int) -> float:
    """Fraction of the workflow line that is filled, in percent."""
    last = len(WORKFLOW_STEPS) - 1
    bounded = max(0, min(current_step, last))
    return bounded / last * 100
