"""Tests for ORM model defaults."""

from uuid import uuid4

import pytest

from app.models import Answer, Connection, Form, Question, Response


def test_timestamp_defaults_are_timezone_aware():
    form_id, response_id = uuid4(), uuid4()
    rows = [
        Form(title="Book club"),
        Question(form_id=form_id, text="Favourite novel?", position=0),
        Response(form_id=form_id, respondent_name="Eve", respondent_email="eve@example.com"),
        Answer(response_id=response_id, question_id=uuid4(), text="Middlemarch"),
        Connection(form_id=form_id, response1_id=response_id, response2_id=uuid4(), similarity_score=0.5),
    ]
    for row in rows:
        assert row.created_at.tzinfo is not None
    assert rows[0].updated_at.tzinfo is not None


@pytest.mark.asyncio
async def test_form_update_refreshes_updated_at(session):
    form = Form(title="Book club")
    session.add(form)
    await session.commit()
    first = form.updated_at

    form.is_published = True
    session.add(form)
    await session.commit()

    assert form.updated_at.tzinfo is not None
    assert form.updated_at.replace(tzinfo=None) >= first.replace(tzinfo=None)
