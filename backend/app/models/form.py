"""Form ORM model.

Classes:
    Form: A published questionnaire plus the lifecycle flags driving the matching workflow.

Functions:
    set_updated_at(_, __, target): SQLAlchemy event hook that maintains the `updated_at` timestamp.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, Text, event
from sqlmodel import Field, SQLModel

from app.utils.dates import utc_now


class Form(SQLModel, table=True):
    __tablename__ = "forms"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)
    title: str
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    is_published: bool = Field(default=False)
    is_accepting_responses: bool = Field(default=True)
    connections_generated: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


@event.listens_for(Form, "before_update", propagate=True)
def set_updated_at(_, __, target):
    target.updated_at = utc_now()
