"""Response ORM model.

Classes:
    Response: One respondent's submission to a form plus its pipeline progress.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel

from app.utils.dates import utc_now


class Response(SQLModel, table=True):
    """Respondent submission.

    Attributes:
        summary: Synthesized profile paragraph; null until the synthesizer succeeds.
        embedding_id: Key of the vector-index record; null until the summary is embedded.
        processing_stage: Stage of the most recent failure, cleared on success.
        processing_error: Message of the most recent failure, cleared on success.
    """

    __tablename__ = "responses"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    form_id: UUID = Field(foreign_key="forms.id", index=True)
    user_id: Optional[str] = Field(default=None)
    respondent_name: str
    respondent_email: str
    summary: Optional[str] = Field(default=None, sa_column=Column(Text))
    embedding_id: Optional[str] = Field(default=None, index=True)
    processing_stage: Optional[str] = Field(default=None)
    processing_error: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
