"""Pydantic schemas for form building, publishing, and response submission.

Classes:
    QuestionCreate, FormCreateRequest: Payloads for building a form.
    QuestionResource, FormResource: Form representations returned to clients.
    FormListItem: Dashboard row for an owner's forms, with its response count.
    AnswerSubmission, ResponseSubmissionRequest, ResponseSubmittedResponse: Respondent submission flow.
    ResponseResource: Respondent row including pipeline progress fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuestionCreate(BaseModel):
    text: str = Field(min_length=1, max_length=4000)
    time_limit: Optional[int] = Field(default=None, ge=1, le=86400)


class FormCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(default="", max_length=8000)
    user_id: Optional[str] = None
    questions: list[QuestionCreate] = Field(default_factory=list, max_length=200)


class QuestionResource(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    position: int
    time_limit: Optional[int] = None


class FormResource(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[str] = None
    title: str
    description: str
    is_published: bool
    is_accepting_responses: bool
    connections_generated: bool
    created_at: datetime
    updated_at: datetime
    questions: list[QuestionResource] = Field(default_factory=list)


class FormListItem(BaseModel):
    id: UUID
    user_id: Optional[str] = None
    title: str
    description: str
    is_published: bool
    is_accepting_responses: bool
    connections_generated: bool
    created_at: datetime
    response_count: int = 0


class AnswerSubmission(BaseModel):
    question_id: UUID
    text: str = Field(default="", max_length=20000)
    time_spent: int = Field(default=0, ge=0)


class ResponseSubmissionRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    user_id: Optional[str] = None
    answers: list[AnswerSubmission] = Field(default_factory=list)

    @field_validator("answers")
    @classmethod
    def _unique_questions(cls, value: list[AnswerSubmission]) -> list[AnswerSubmission]:
        question_ids = [answer.question_id for answer in value]
        if len(question_ids) != len(set(question_ids)):
            raise ValueError("Each question may be answered at most once")
        return value


class ResponseSubmittedResponse(BaseModel):
    response_id: UUID
    answer_count: int


class ResponseResource(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_id: UUID
    respondent_name: str
    respondent_email: str
    summary: Optional[str] = None
    embedding_id: Optional[str] = None
    processing_stage: Optional[str] = None
    processing_error: Optional[str] = None
    created_at: datetime
