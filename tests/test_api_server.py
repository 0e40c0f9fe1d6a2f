from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from cbt_app.core.test_manager import TestManager
from cbt_app.server.api_server import create_api_app

QUESTIONS = [
    {"id": f"q{n}", "text": f"Question {n}", "options": ["A", "B", "C", "D"], "correct_option_index": n - 1}
    for n in range(1, 5)
]


@pytest.fixture
def client(clock) -> TestClient:
    return TestClient(create_api_app(TestManager(clock=clock)))


@pytest.fixture
def test_id(client) -> str:
    response = client.post("/tests", json={"title": "Biology", "creator_id": "teacher"})
    assert response.status_code == 201
    test_id = response.json()["id"]
    response = client.post(f"/tests/{test_id}/questions", json={"questions": QUESTIONS})
    assert response.status_code == 201
    assert response.json()["question_count"] == 4
    return test_id


def start(client, test_id, who) -> dict:
    response = client.post(f"/tests/{test_id}/attempts", json={"participant_identity": who})
    assert response.status_code == 201
    return response.json()


def test_take_and_submit(client, test_id):
    attempt = start(client, test_id, "ann")
    assert attempt["status"] == "in_progress"
    assert all("correct_option_index" not in q for q in attempt["questions"])

    for question_id, index in [("q1", 0), ("q2", 1), ("q3", 0), ("q4", 3), ("q3", 2)]:
        response = client.post(
            f"/attempts/{attempt['id']}/answers",
            json={"question_id": question_id, "selected_option_index": index},
        )
        assert response.status_code == 201

    response = client.post(f"/attempts/{attempt['id']}/submit", json={"time_remaining_seconds": 300})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["result"]["correct_count"] == 4
    assert body["result"]["percentage"] == 100
    assert body["result"]["message"] == "Excellent work!"
    assert body["time_taken_seconds"] == 600
    assert body["time_efficiency"] == 67
    assert body["questions"][0]["correct_option_index"] == 0

    again = client.post(f"/attempts/{attempt['id']}/submit")
    assert again.status_code == 409


def test_invalid_answer_index(client, test_id):
    attempt = start(client, test_id, "ann")

    response = client.post(
        f"/attempts/{attempt['id']}/answers", json={"question_id": "q1", "selected_option_index": 9}
    )

    assert response.status_code == 422


def test_unknown_question_answer_is_not_recorded(client, test_id):
    attempt = start(client, test_id, "ann")

    response = client.post(
        f"/attempts/{attempt['id']}/answers", json={"question_id": "zz", "selected_option_index": 0}
    )

    assert response.status_code == 201
    assert response.json()["recorded"] is False


def test_leaderboard_and_disqualification(client, test_id):
    ann = start(client, test_id, "ann")
    client.post(f"/attempts/{ann['id']}/answers", json={"question_id": "q1", "selected_option_index": 0})
    client.post(f"/attempts/{ann['id']}/submit")
    bob = start(client, test_id, "bob")
    for question_id, index in [("q1", 0), ("q2", 1)]:
        client.post(f"/attempts/{bob['id']}/answers", json={"question_id": question_id, "selected_option_index": index})
    client.post(f"/attempts/{bob['id']}/submit")

    board = client.get(f"/tests/{test_id}/leaderboard").json()
    assert board["participants"] == 2
    assert [e["participant_identity"] for e in board["entries"]] == ["bob", "ann"]
    assert board["entries"][0]["medal"] == "gold"
    assert board["entries"][0]["rank_change"] == "new"

    forbidden = client.post(f"/attempts/{bob['id']}/disqualify", json={"requested_by": "ann"})
    assert forbidden.status_code == 403
    response = client.post(f"/attempts/{bob['id']}/disqualify", json={"requested_by": "teacher"})
    assert response.json() == {"id": bob["id"], "disqualified": True}

    board = client.get(f"/tests/{test_id}/leaderboard").json()
    assert [e["participant_identity"] for e in board["entries"]] == ["ann", "bob"]
    assert [e["rank_change"] for e in board["entries"]] == ["up", "down"]

    summary = client.get(f"/tests/{test_id}/summary").json()
    assert summary == {"submissions": 2, "average_score": 1.0, "disqualified": 1}


def test_disqualify_in_progress_conflicts(client, test_id):
    attempt = start(client, test_id, "ann")

    response = client.post(f"/attempts/{attempt['id']}/disqualify", json={"requested_by": "teacher"})

    assert response.status_code == 409


def test_empty_test_cannot_be_scored(client):
    test_id = client.post("/tests", json={"title": "Empty", "creator_id": "teacher"}).json()["id"]

    response = client.post(f"/tests/{test_id}/attempts", json={"participant_identity": "ann"})

    assert response.status_code == 422
    assert "cannot be scored" in response.json()["detail"]


def test_retake_gate(client):
    test_id = client.post(
        "/tests", json={"title": "Once", "creator_id": "teacher", "allow_retakes": False}
    ).json()["id"]
    client.post(f"/tests/{test_id}/questions", json={"questions": QUESTIONS})
    attempt = start(client, test_id, "ann")
    client.post(f"/attempts/{attempt['id']}/submit")

    assert client.get(f"/tests/{test_id}/retake", params={"participant_identity": "ann"}).json()["can_retake"] is False
    response = client.post(f"/tests/{test_id}/attempts", json={"participant_identity": "ann"})
    assert response.status_code == 409


def test_text_import(client, test_id):
    response = client.post(
        f"/tests/{test_id}/questions",
        json={"text": "Q: Capital of France?\nA: Paris\nB: Rome\nCORRECT: A\nEXPLANATION: Paris."},
    )

    assert response.status_code == 201
    assert response.json()["added"][0]["explanation"] == "Paris."
    assert response.json()["question_count"] == 5


def test_bad_question_is_rejected(client, test_id):
    response = client.post(
        f"/tests/{test_id}/questions",
        json={"questions": [{"text": "Broken", "options": ["a", "b"], "correct_option_index": 5}]},
    )

    assert response.status_code == 422


def test_missing_resources(client):
    assert client.get("/attempts/nope").status_code == 404
    assert client.get("/tests/nope/leaderboard").status_code == 404


def test_private_results(client):
    test_id = client.post(
        "/tests",
        json={"title": "Private", "creator_id": "teacher", "results_visibility": "creator_only"},
    ).json()["id"]

    assert client.get(f"/tests/{test_id}/leaderboard").status_code == 403
    assert client.get(f"/tests/{test_id}/leaderboard", params={"viewer_id": "teacher"}).status_code == 200


def test_mixed_batch_with_bad_text_adds_nothing(client, test_id):
    response = client.post(
        f"/tests/{test_id}/questions",
        json={
            "questions": [{"text": "Fine", "options": ["a", "b"], "correct_option_index": 0}],
            "text": "Q: Missing answer\nA: yes\nB: no\n",
        },
    )

    assert response.status_code == 422
    assert len(start(client, test_id, "ann")["questions"]) == 4


def test_second_start_while_in_progress_conflicts(client, test_id):
    start(client, test_id, "ann")

    response = client.post(f"/tests/{test_id}/attempts", json={"participant_identity": "ann"})

    assert response.status_code == 409
