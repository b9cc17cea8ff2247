"""Schemas describing response-processing and connection results.

Classes:
    RespondentStatus, ProcessingStage: Enumerations used to report per-respondent progress.
    RespondentOutcome: What happened to one respondent during a processing pass.
    ProcessingReport: Aggregate outcome for a form processing pass.
    ProcessFormRequest: Options for the combined stop/process/generate workflow.
    ConnectedRespondent, ConnectionResource, ConnectionListResponse: Persisted connection payloads.
    ProcessFormResponse: Combined report plus generated connections.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ProcessingStage(str, Enum):
    SUMMARY = "summary"
    EMBEDDING = "embedding"
    RANKING = "ranking"


class RespondentStatus(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


class RespondentOutcome(BaseModel):
    response_id: UUID
    respondent_name: str
    status: RespondentStatus
    stage: Optional[ProcessingStage] = None
    error: Optional[str] = None
    embedding_id: Optional[str] = None


class ProcessingReport(BaseModel):
    form_id: UUID
    total: int
    summarized: int = 0
    embedded: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: list[RespondentOutcome] = Field(default_factory=list)


class ProcessFormRequest(BaseModel):
    generate_connections: bool = True


class ConnectedRespondent(BaseModel):
    response_id: UUID
    respondent_name: Optional[str] = None
    respondent_email: Optional[str] = None
    summary: Optional[str] = None


class ConnectionResource(BaseModel):
    id: UUID
    form_id: UUID
    generation: int
    similarity_score: float
    response1: ConnectedRespondent
    response2: ConnectedRespondent


class ConnectionListResponse(BaseModel):
    form_id: UUID
    generation: Optional[int] = None
    connections: list[ConnectionResource] = Field(default_factory=list)


class ProcessFormResponse(BaseModel):
    report: ProcessingReport
    connections: Optional[ConnectionListResponse] = None
