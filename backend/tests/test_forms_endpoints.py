"""HTTP-level tests for form, submission, and connection endpoints."""

from uuid import uuid4

import pytest


async def _create_published_form(client) -> dict:
    created = await client.post(
        "/forms",
        json={
            "title": "Hackathon teams",
            "description": "Find teammates with overlapping interests",
            "questions": [
                {"text": "What would you like to build?"},
                {"text": "Which tools do you enjoy?", "time_limit": 90},
            ],
        },
    )
    assert created.status_code == 201
    form = created.json()
    published = await client.post(f"/forms/{form['id']}/publish")
    assert published.status_code == 200
    return published.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_form_orders_questions(client):
    form = await _create_published_form(client)
    assert form["is_published"] is True
    assert form["is_accepting_responses"] is True
    assert form["connections_generated"] is False
    assert [question["position"] for question in form["questions"]] == [0, 1]
    assert form["questions"][1]["time_limit"] == 90


@pytest.mark.asyncio
async def test_submission_requires_published_form(client):
    created = await client.post("/forms", json={"title": "Draft", "questions": [{"text": "Hi?"}]})
    form = created.json()
    response = await client.post(
        f"/forms/{form['id']}/responses",
        json={"name": "Ira", "email": "ira@example.com", "answers": []},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_submission_rejects_foreign_questions(client):
    form = await _create_published_form(client)
    response = await client.post(
        f"/forms/{form['id']}/responses",
        json={"name": "Ira", "email": "ira@example.com", "answers": [{"question_id": str(uuid4()), "text": "x"}]},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_form_is_404(client):
    assert (await client.get(f"/forms/{uuid4()}")).status_code == 404
    assert (await client.get(f"/forms/{uuid4()}/connections")).status_code == 404
    assert (await client.post(f"/forms/{uuid4()}/process")).status_code == 404


@pytest.mark.asyncio
async def test_stopped_form_refuses_submissions(client):
    form = await _create_published_form(client)
    stopped = await client.post(f"/forms/{form['id']}/stop")
    assert stopped.status_code == 200
    assert stopped.json()["is_accepting_responses"] is False

    response = await client.post(
        f"/forms/{form['id']}/responses",
        json={"name": "Late", "email": "late@example.com", "answers": []},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_full_workflow_over_http(client):
    form = await _create_published_form(client)
    first_question, second_question = (question["id"] for question in form["questions"])
    submissions = {
        "Noor": ("A weather dashboard", "Python and maps"),
        "Omar": ("A weather dashboard", "Python and maps"),
        "Pia": ("A music sequencer", None),
    }
    for name, (first, second) in submissions.items():
        answers = [{"question_id": first_question, "text": first, "time_spent": 30}]
        if second is not None:
            answers.append({"question_id": second_question, "text": second, "time_spent": 45})
        submitted = await client.post(
            f"/forms/{form['id']}/responses",
            json={"name": name, "email": f"{name.lower()}@example.com", "answers": answers},
        )
        assert submitted.status_code == 201
        assert submitted.json()["answer_count"] == len(answers)

    processed = await client.post(f"/forms/{form['id']}/process", json={"generate_connections": True})
    assert processed.status_code == 200
    body = processed.json()
    assert body["report"]["embedded"] == 3
    assert body["report"]["failed"] == 0
    assert len(body["connections"]["connections"]) == 3

    listed = await client.get(f"/forms/{form['id']}/connections")
    assert listed.status_code == 200
    connections = listed.json()["connections"]
    scores = [connection["similarity_score"] for connection in connections]
    assert scores == sorted(scores, reverse=True)
    top_names = {connections[0]["response1"]["respondent_name"], connections[0]["response2"]["respondent_name"]}
    assert top_names == {"Noor", "Omar"}

    responses = await client.get(f"/forms/{form['id']}/responses")
    assert responses.status_code == 200
    assert all(row["summary"] and row["embedding_id"] for row in responses.json())

    regenerated = await client.post(f"/forms/{form['id']}/connections")
    assert regenerated.status_code == 200
    assert regenerated.json()["generation"] == 2


@pytest.mark.asyncio
async def test_process_without_generation(client):
    form = await _create_published_form(client)
    processed = await client.post(f"/forms/{form['id']}/process", json={"generate_connections": False})
    assert processed.status_code == 200
    body = processed.json()
    assert body["connections"] is None
    assert body["report"]["total"] == 0


@pytest.mark.asyncio
async def test_list_forms_by_owner(client):
    for title in ("Alpha", "Beta"):
        created = await client.post("/forms", json={"title": title, "user_id": "owner-9", "questions": [{"text": "Hi?"}]})
        assert created.status_code == 201
    await client.post("/forms", json={"title": "Other", "user_id": "owner-10"})

    listed = await client.get("/forms", params={"user_id": "owner-9"})

    assert listed.status_code == 200
    assert sorted(item["title"] for item in listed.json()) == ["Alpha", "Beta"]
    assert all(item["response_count"] == 0 for item in listed.json())
    assert (await client.get("/forms")).status_code == 422


@pytest.mark.asyncio
async def test_delete_form_endpoint(client, pipeline):
    form = await _create_published_form(client)
    first_question = form["questions"][0]["id"]
    for name in ("Quinn", "Rae"):
        await client.post(
            f"/forms/{form['id']}/responses",
            json={"name": name, "email": f"{name.lower()}@example.com", "answers": [{"question_id": first_question, "text": "Robots"}]},
        )
    await client.post(f"/forms/{form['id']}/process")
    assert len(await pipeline.store.retrieve_all(form["id"])) == 2

    deleted = await client.delete(f"/forms/{form['id']}")

    assert deleted.status_code == 204
    assert (await client.get(f"/forms/{form['id']}")).status_code == 404
    assert await pipeline.store.retrieve_all(form["id"]) == []
    assert (await client.delete(f"/forms/{form['id']}")).status_code == 404
