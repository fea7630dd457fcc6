from __future__ import annotations

from typing import Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""

    code: str = "DOMAIN_ERROR"


class NotFoundError(DomainError):
    """Raised when a template, document or member does not exist."""

    code: str = "NOT_FOUND"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code: str = "FORBIDDEN"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    ``errors`` carries the field-level list when the failure comes from the
    schema validator, so callers can render every problem at once.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Sequence = ()):
        super().__init__(message)
        self.errors = list(errors)


class SchemaDefinitionError(DomainError):
    """Raised when a form schema itself is malformed (authoring defect)."""

    code: str = "SCHEMA_DEFINITION_ERROR"


class DuplicateTemplateError(DomainError):
    code: str = "DUPLICATE_TEMPLATE"


class TemplateInUseError(DomainError):
    code: str = "TEMPLATE_IN_USE"


# -------- State transition errors --------
class InvalidStateError(DomainError):
    """Raised when the document status does not allow the operation."""

    code: str = "INVALID_STATE"


class StageNotActiveError(DomainError):
    code: str = "STAGE_NOT_ACTIVE"


class NotAParticipantError(DomainError):
    code: str = "NOT_A_PARTICIPANT"


class AlreadyDecidedError(DomainError):
    code: str = "ALREADY_DECIDED"


class RecallNotAllowedError(DomainError):
    code: str = "RECALL_NOT_ALLOWED"


class ConcurrentModificationError(DomainError):
    """Raised when a document changed between read and write.

    Retryable: the caller should reload the document and try again.
    """

    code: str = "CONCURRENT_MODIFICATION"
    retryable: bool = True
