"""Convenience exports for API schemas.

Re-exports the pydantic models used across the backend so consumers can import from one module.
"""

from .form import (
    AnswerSubmission,
    FormCreateRequest,
    FormListItem,
    FormResource,
    QuestionCreate,
    QuestionResource,
    ResponseResource,
    ResponseSubmissionRequest,
    ResponseSubmittedResponse,
)
from .pipeline import (
    ConnectedRespondent,
    ConnectionListResponse,
    ConnectionResource,
    ProcessFormRequest,
    ProcessFormResponse,
    ProcessingReport,
    ProcessingStage,
    RespondentOutcome,
    RespondentStatus,
)

__all__ = [
    "AnswerSubmission",
    "FormCreateRequest",
    "FormListItem",
    "FormResource",
    "QuestionCreate",
    "QuestionResource",
    "ResponseResource",
    "ResponseSubmissionRequest",
    "ResponseSubmittedResponse",
    "ConnectedRespondent",
    "ConnectionListResponse",
    "ConnectionResource",
    "ProcessFormRequest",
    "ProcessFormResponse",
    "ProcessingReport",
    "ProcessingStage",
    "RespondentOutcome",
    "RespondentStatus",
]
