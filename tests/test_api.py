import asyncio

import pytest
from fastapi.testclient import TestClient

from feedback_assistant.api import create_app
from feedback_assistant.config import FeedbackCategory
from feedback_assistant.services import Services


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


def _start(client):
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def test_conversation_over_http(client, store, completion):
    store.save_questions(FeedbackCategory.LEADERSHIP, ["Q1?", "Q2?"])
    completion.responses.append("Summary.")
    session_id = _start(client)

    details = client.put(
        f"/sessions/{session_id}/details",
        json={"name": "Ada Lovelace", "email": "ada@example.com"},
    )
    opened = client.post(
        f"/sessions/{session_id}/category", json={"category": "Leadership"}
    )
    client.post(f"/sessions/{session_id}/messages", json={"text": "Great"})
    finished = client.post(f"/sessions/{session_id}/messages", json={"text": "More"})

    assert details.json()["errors"] == []
    assert opened.json()["messages"] == ["Q1?"]
    body = finished.json()
    assert body["session"]["status"] == "complete"
    assert body["summary"] == "Summary."
    assert body["record_id"]
    assert body["notices"][-1]["level"] == "success"

    feedbacks = client.get("/admin/feedbacks").json()
    assert [item["id"] for item in feedbacks] == [body["record_id"]]


def test_unknown_session_is_404(client):
    assert client.get("/sessions/missing").status_code == 404


def test_invalid_category_is_422(client):
    session_id = _start(client)

    response = client.post(
        f"/sessions/{session_id}/category", json={"category": "Marketing"}
    )

    assert response.status_code == 422


def test_admin_config_and_question_generation(client, completion):
    assert client.get("/admin/config").json()["core_values"].startswith("Integrity")
    client.put(
        "/admin/config",
        json={"core_values": "Trust", "quality_subsets": "Speed"},
    )
    completion.responses.append('["Is delivery on time?"]')

    response = client.post(
        "/admin/questions", json={"category": "Delivery", "count": 1}
    )

    assert response.json() == {
        "category": "Delivery",
        "questions": ["Is delivery on time?"],
        "strategy": "structured",
        "saved": True,
    }
    assert "Trust" in completion.prompts[0]


def test_question_count_is_validated(client):
    response = client.post(
        "/admin/questions", json={"category": "Delivery", "count": 11}
    )

    assert response.status_code == 422


def test_admin_routes_report_store_outage(client, fake_redis):
    fake_redis.fail = True

    assert client.get("/admin/feedbacks").status_code == 503


def test_regenerate_summary_for_unknown_feedback(client):
    assert client.post("/admin/feedbacks/fb-missing/summary").status_code == 404


def test_submitted_session_is_discarded(client, store, completion):
    store.save_questions(FeedbackCategory.DELIVERY, ["Only question?"])
    completion.responses.append("Summary.")
    session_id = _start(client)
    client.post(f"/sessions/{session_id}/category", json={"category": "Delivery"})

    finished = client.post(
        f"/sessions/{session_id}/messages", json={"text": "On time"}
    )

    assert finished.json()["record_id"]
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_failed_submission_keeps_session_for_retry(client, store, fake_redis):
    store.save_questions(FeedbackCategory.DELIVERY, ["Only question?"])
    session_id = _start(client)
    client.post(f"/sessions/{session_id}/category", json={"category": "Delivery"})
    fake_redis.fail = True

    failed = client.post(f"/sessions/{session_id}/messages", json={"text": "Late"})
    fake_redis.fail = False

    assert failed.json()["submission_failed"] is True
    assert client.get(f"/sessions/{session_id}").status_code == 200
    retried = client.post(f"/sessions/{session_id}/retry")
    assert retried.json()["record_id"]
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_question_count_defaults_to_configured_value(store, completion):
    services = Services.create(store, completion, question_count=2)
    client = TestClient(create_app(services))
    completion.responses.append('["Q1?", "Q2?", "Q3?"]')

    response = client.post("/admin/questions", json={"category": "Delivery"})

    assert response.json()["questions"] == ["Q1?", "Q2?"]
    assert "Generate 2 specific questions" in completion.prompts[0]


def test_admin_store_routes_run_off_the_event_loop(client, services, monkeypatch):
    on_loop = []
    list_feedbacks = services.admin.list_feedbacks

    def recording(limit=None):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            on_loop.append(False)
        else:
            on_loop.append(True)
        return list_feedbacks(limit)

    monkeypatch.setattr(services.admin, "list_feedbacks", recording)

    assert client.get("/admin/feedbacks").status_code == 200
    assert on_loop == [False]
