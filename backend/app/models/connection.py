"""Connection ORM model.

Classes:
    Connection: Ranked similarity between two respondents of the same form.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, Index, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.utils.dates import utc_now


class Connection(SQLModel, table=True):
    """Persisted pairing produced by one ranking run.

    Attributes:
        form_id: Form both respondents answered.
        response1_id: First respondent in retrieval order.
        response2_id: Second respondent in retrieval order.
        similarity_score: Cosine similarity of the two profile embeddings.
        generation: Ranking run this row belongs to; each regeneration appends a new generation.
    """

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint(
            "form_id",
            "generation",
            "response1_id",
            "response2_id",
            name="uq_connections_form_generation_pair",
        ),
        Index("ix_connections_form_generation", "form_id", "generation"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    form_id: UUID = Field(foreign_key="forms.id")
    response1_id: UUID = Field(foreign_key="responses.id")
    response2_id: UUID = Field(foreign_key="responses.id")
    similarity_score: float
    generation: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False, index=True))
