"""In-memory store of sessions, documents and approval requests.

The store is the single owner of workflow state. Status changes go
through :meth:`WorkflowStore.set_session_status` and
:meth:`WorkflowStore.set_document_status`, which enforce the transition
tables.
"""

from tfgenie.utils.logger import get_logger

from .errors import (
    ApprovalNotFoundError,
    DocumentNotFoundError,
    SessionLockedError,
    SessionNotFoundError,
)
from .models import (
    ApprovalRequest,
    Document,
    DocumentStatus,
    Session,
    SessionStatus,
)
from .steps import check_document_transition, check_session_transition

logger = get_logger(__name__)


class WorkflowStore:
    """Keyed storage for workflow entities."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._documents: dict[str, Document] = {}
        self._approvals: dict[str, ApprovalRequest] = {}

    # Sessions

    def add_session(self, session: Session) -> Session:
        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Session not found: {session_id}") from None

    def list_sessions(self) -> list[Session]:
        """All sessions, most recently created first."""
        return sorted(
            self._sessions.values(), key=lambda s: s.created_at, reverse=True
        )

    def set_session_status(self, session_id: str, status: SessionStatus) -> Session:
        session = self.get_session(session_id)
        check_session_transition(session.status, status)
        if session.status != status:
            logger.info(
                "Session %s: %s -> %s", session_id, session.status.value, status.value
            )
            session.status = status
        return session

    # Documents

    def add_document(self, document: Document) -> Document:
        self.require_unlocked(document.session_id)
        self._documents[document.id] = document
        return document

    def get_document(self, document_id: str) -> Document:
        try:
            return self._documents[document_id]
        except KeyError:
            raise DocumentNotFoundError(f"Document not found: {document_id}") from None

    def documents_for(self, session_id: str) -> list[Document]:
        """Documents of a session in upload order."""
        self.get_session(session_id)
        return [d for d in self._documents.values() if d.session_id == session_id]

    def set_document_status(
        self, document_id: str, status: DocumentStatus
    ) -> Document:
        document = self.get_document(document_id)
        self.require_unlocked(document.session_id)
        check_document_transition(document.status, status)
        logger.debug(
            "Document %s: %s -> %s", document_id, document.status.value, status.value
        )
        document.status = status
        return document

    def require_unlocked(self, session_id: str) -> Session:
        """Return the session, raising if its documents are read-only."""
        session = self.get_session(session_id)
        if session.is_locked:
            raise SessionLockedError(
                f"Session {session_id} is {session.status.value}; "
                "documents are read-only"
            )
        return session

    # Approval requests

    def add_approval(self, request: ApprovalRequest) -> ApprovalRequest:
        self._approvals[request.id] = request
        return request

    def get_approval(self, request_id: str) -> ApprovalRequest:
        try:
            return self._approvals[request_id]
        except KeyError:
            raise ApprovalNotFoundError(
                f"Approval request not found: {request_id}"
            ) from None

    def list_approvals(self) -> list[ApprovalRequest]:
        return list(self._approvals.values())
