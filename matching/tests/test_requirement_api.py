"""
End-to-end tests for the requirement routes: create -> background dispatch ->
tutor listing -> tutor response.
"""

import pytest

REQUIREMENT = {
    "category": "academic",
    "subject": "mathematics",
    "location": "mumbai",
    "preferred_teaching_mode": "online",
    "budget_range": "1000-2000",
    "urgency": "this_week",
}


@pytest.fixture
def people(seed_tutor, seed_student):
    seed_tutor("tutor-a", full_name="Asha", rating=4.8)
    seed_tutor("tutor-b", verified=False)
    seed_tutor("tutor-c", subjects=["chemistry"])
    seed_student("student-1", full_name="Ravi")
    seed_student("student-2")


def _create(client, auth_headers, body=REQUIREMENT, student="student-1"):
    response = client.post("/requirements", json=body, headers=auth_headers(student))
    assert response.status_code == 201, response.text
    return response.json()


def test_create_runs_background_dispatch(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    assert requirement["budget_min"] == 1000
    assert requirement["budget_max"] == 2000

    # The dispatch job ran after the response and closed the requirement
    fetched = client.get(f"/requirements/{requirement['id']}", headers=auth_headers("student-1")).json()
    assert fetched["status"] == "closed"

    inbox = client.get("/notifications", headers=auth_headers("tutor-a", "tutor")).json()
    assert inbox["unread"] == 1
    note = inbox["items"][0]
    assert note["type"] == "new_requirement"
    assert note["title"] == "New Requirement Available!"
    assert note["payload"] == {
        "kind": "new_requirement",
        "requirement_id": requirement["id"],
        "student_id": "student-1",
        "subject": "mathematics",
        "location": "mumbai",
        "budget": "1000-2000",
        "urgency": "this_week",
    }

    for other in ("tutor-b", "tutor-c"):
        assert client.get("/notifications", headers=auth_headers(other, "tutor")).json()["items"] == []


def test_open_ended_budget_round_trips(client, auth_headers, people):
    requirement = _create(client, auth_headers, {**REQUIREMENT, "budget_range": "1500+"})
    assert requirement["budget_max"] is None

    note = client.get("/notifications", headers=auth_headers("tutor-a", "tutor")).json()["items"][0]
    assert note["payload"]["budget"] == "1500+"


def test_dispatch_of_closed_requirement_is_skipped(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    report = client.post(f"/requirements/{requirement['id']}/dispatch", headers=auth_headers("student-1")).json()

    assert report == {
        "requirementId": requirement["id"],
        "status": "skipped",
        "matchedCount": 0,
        "dispatchedCount": 0,
        "failedCount": 0,
    }
    assert len(client.get("/notifications", headers=auth_headers("tutor-a", "tutor")).json()["items"]) == 1


def test_preview_matches_has_no_side_effects(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    preview = client.get(f"/requirements/{requirement['id']}/matches", headers=auth_headers("student-1"))

    assert preview.status_code == 200
    assert [t["user_id"] for t in preview.json()] == ["tutor-a"]
    assert len(client.get("/requirements/matched", headers=auth_headers("tutor-a", "tutor")).json()) == 1


def test_tutor_sees_matched_requirements(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    listing = client.get("/requirements/matched", headers=auth_headers("tutor-a", "tutor")).json()

    assert len(listing) == 1
    assert listing[0]["requirement"]["id"] == requirement["id"]
    assert listing[0]["match_status"] == "pending"
    assert listing[0]["has_responded"] is False
    assert client.get("/requirements/matched", headers=auth_headers("tutor-c", "tutor")).json() == []


def test_tutor_accepts_requirement(client, auth_headers, people):
    requirement = _create(client, auth_headers)
    path = f"/requirements/{requirement['id']}/respond"

    response = client.post(
        path,
        json={"status": "accepted", "message": "I can start Monday.", "proposed_rate": 1500},
        headers=auth_headers("tutor-a", "tutor"),
    )

    assert response.status_code == 200, response.text
    assert response.json()["status"] == "accepted"

    listing = client.get("/requirements/matched", headers=auth_headers("tutor-a", "tutor")).json()
    assert listing[0]["has_responded"] is True

    # Intro message opens the conversation
    conversation = client.get("/messages/tutor-a", headers=auth_headers("student-1")).json()
    assert [m["content"] for m in conversation] == ["I can start Monday."]

    inbox = client.get("/notifications", headers=auth_headers("student-1")).json()
    by_type = {n["type"]: n for n in inbox["items"]}
    assert set(by_type) == {"message", "interest"}
    assert by_type["interest"]["title"] == "Tutor Response to Your Requirement"
    assert by_type["interest"]["payload"]["proposed_rate"] == 1500
    assert by_type["message"]["message"] == "You have a new message from Asha."


def test_tutor_declines_without_intro_message(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    client.post(
        f"/requirements/{requirement['id']}/respond",
        json={"status": "declined"},
        headers=auth_headers("tutor-a", "tutor"),
    )

    assert client.get("/messages/tutor-a", headers=auth_headers("student-1")).json() == []
    inbox = client.get("/notifications", headers=auth_headers("student-1")).json()["items"]
    assert [n["type"] for n in inbox] == ["interest"]
    assert "declined" in inbox[0]["message"]


def test_default_intro_message(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    client.post(
        f"/requirements/{requirement['id']}/respond",
        json={"status": "accepted"},
        headers=auth_headers("tutor-a", "tutor"),
    )

    conversation = client.get("/messages/student-1", headers=auth_headers("tutor-a", "tutor")).json()
    assert conversation[0]["content"].startswith("Hi! I'm interested in your mathematics requirement.")


# =============================================================================
# ERRORS & PERMISSIONS
# =============================================================================

def test_unmatched_tutor_cannot_respond(client, auth_headers, people):
    requirement = _create(client, auth_headers)

    response = client.post(
        f"/requirements/{requirement['id']}/respond",
        json={"status": "accepted"},
        headers=auth_headers("tutor-c", "tutor"),
    )
    assert response.status_code == 403


def test_tutor_responds_only_once(client, auth_headers, people):
    requirement = _create(client, auth_headers)
    path = f"/requirements/{requirement['id']}/respond"
    headers = auth_headers("tutor-a", "tutor")

    assert client.post(path, json={"status": "accepted"}, headers=headers).status_code == 200
    again = client.post(path, json={"status": "accepted"}, headers=headers)
    flip = client.post(path, json={"status": "declined"}, headers=headers)

    assert again.status_code == 400
    assert flip.status_code == 400
    listing = client.get("/requirements/matched", headers=headers).json()
    assert listing[0]["match_status"] == "accepted"
    assert len(client.get("/messages/tutor-a", headers=auth_headers("student-1")).json()) == 1
    inbox = client.get("/notifications", headers=auth_headers("student-1")).json()["items"]
    assert sorted(n["type"] for n in inbox) == ["interest", "message"]


def test_failed_intro_leaves_match_pending(client, auth_headers, people):
    # student-9 has no profile, so the intro message cannot be delivered
    requirement = _create(client, auth_headers, student="student-9")
    path = f"/requirements/{requirement['id']}/respond"
    headers = auth_headers("tutor-a", "tutor")

    response = client.post(path, json={"status": "accepted"}, headers=headers)

    assert response.status_code == 404
    listing = client.get("/requirements/matched", headers=headers).json()
    assert listing[0]["match_status"] == "pending"
    assert listing[0]["has_responded"] is False
    assert client.get("/notifications", headers=auth_headers("student-9")).json()["items"] == []

    assert client.post(path, json={"status": "declined"}, headers=headers).status_code == 200


def test_intro_store_failure_reverts_match(client, auth_headers, people, monkeypatch):
    import services
    from utils.errors import TransientStoreError

    async def broken_send(*args, **kwargs):
        raise TransientStoreError("database unavailable")

    monkeypatch.setattr(services.messaging_service, "send_message", broken_send)
    requirement = _create(client, auth_headers)
    headers = auth_headers("tutor-a", "tutor")

    response = client.post(f"/requirements/{requirement['id']}/respond", json={"status": "accepted"}, headers=headers)

    assert response.status_code == 503
    listing = client.get("/requirements/matched", headers=headers).json()
    assert listing[0]["match_status"] == "pending"
    assert client.get("/notifications", headers=auth_headers("student-1")).json()["items"] == []


def test_other_student_cannot_read_or_close(client, auth_headers, people):
    requirement = _create(client, auth_headers)
    headers = auth_headers("student-2")

    assert client.get(f"/requirements/{requirement['id']}", headers=headers).status_code == 403
    assert client.post(f"/requirements/{requirement['id']}/close", headers=headers).status_code == 403
    assert client.post(f"/requirements/{requirement['id']}/dispatch", headers=headers).status_code == 403


def test_tutor_cannot_post_requirement(client, auth_headers, people):
    response = client.post("/requirements", json=REQUIREMENT, headers=auth_headers("tutor-a", "tutor"))
    assert response.status_code == 403


def test_missing_token(client):
    assert client.post("/requirements", json=REQUIREMENT).status_code == 401
    assert client.get("/requirements/matched", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_malformed_budget_is_rejected_before_any_write(client, auth_headers, people):
    response = client.post("/requirements", json={**REQUIREMENT, "budget_range": "lots"}, headers=auth_headers("student-1"))

    assert response.status_code == 400
    assert "budget" in response.json()["detail"].lower()
    assert client.get("/notifications", headers=auth_headers("tutor-a", "tutor")).json()["items"] == []


def test_unknown_requirement(client, auth_headers):
    assert client.get("/requirements/missing", headers=auth_headers("student-1")).status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
