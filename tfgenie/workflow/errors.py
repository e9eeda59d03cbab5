"""Exceptions raised by the workflow service."""


class WorkflowError(Exception):
    """Base class for workflow failures."""


class SessionNotFoundError(WorkflowError):
    """No session exists with the requested id."""


class DocumentNotFoundError(WorkflowError):
    """No document exists with the requested id."""


class ApprovalNotFoundError(WorkflowError):
    """No approval request exists with the requested id."""


class InvalidTransitionError(WorkflowError):
    """A status change is not listed in the transition table."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target


class SessionLockedError(WorkflowError):
    """The session is frozen or completed and its documents are read-only."""


class TemplateSelectionError(WorkflowError):
    """Cataloging was requested without a valid template selection."""


class MetadataValidationError(WorkflowError):
    """Session metadata failed validation.

    Args:
        errors: Field name to error message mapping.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


class DocumentNotReadyError(WorkflowError):
    """The document has not reached the status an operation requires."""
