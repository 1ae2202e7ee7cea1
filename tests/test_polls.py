import uuid

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from pollguard.extensions import db
from pollguard.models.audit_log import AuditLog
from pollguard.models.polls import Poll
from pollguard.signals import polls_changed


def _poll_ids(resp):
    return [p["id"] for p in resp.get_json()["polls"]]


def test_owner_lifecycle_end_to_end(client, alice, bob):
    resp = client.post(
        "/api/polls/",
        json={"question": "Coffee or tea?", "options": ["Coffee", "Tea"]},
        headers=alice.headers,
    )
    assert resp.status_code == 201
    poll = resp.get_json()["poll"]
    assert poll["question"] == "Coffee or tea?"
    assert poll["options"] == ["Coffee", "Tea"]
    assert poll["user_id"] == str(alice.id)

    assert poll["id"] in _poll_ids(client.get("/api/polls/", headers=alice.headers))

    resp = client.get(f"/api/polls/{poll['id']}/edit", headers=bob.headers)
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "NOT_FOUND"

    resp = client.delete(f"/api/polls/{poll['id']}", headers=bob.headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "DELETE_FAILED"

    resp = client.delete(f"/api/polls/{poll['id']}", headers=alice.headers)
    assert resp.status_code == 200

    assert poll["id"] not in _poll_ids(client.get("/api/polls/", headers=alice.headers))


def test_edit_lookup_is_identical_for_missing_and_foreign_polls(client, alice, bob, create_poll):
    poll = create_poll(alice)

    foreign = client.get(f"/api/polls/{poll['id']}/edit", headers=bob.headers)
    missing = client.get(f"/api/polls/{uuid.uuid4()}/edit", headers=bob.headers)
    malformed = client.get("/api/polls/not-a-uuid/edit", headers=bob.headers)

    bodies = []
    for resp in (foreign, missing, malformed):
        assert resp.status_code == 404
        error = resp.get_json()["error"]
        bodies.append((error["code"], error["message"]))
    assert len(set(bodies)) == 1


def test_owner_can_load_poll_for_edit(client, alice, create_poll):
    poll = create_poll(alice)
    resp = client.get(f"/api/polls/{poll['id']}/edit", headers=alice.headers)
    assert resp.status_code == 200
    assert resp.get_json()["poll"]["id"] == poll["id"]


def test_edit_requires_authentication(client, alice, create_poll):
    poll = create_poll(alice)
    resp = client.get(f"/api/polls/{poll['id']}/edit")
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "UNAUTHENTICATED"


def test_public_read_needs_no_session(client, alice, create_poll):
    poll = create_poll(alice)
    resp = client.get(f"/api/polls/{poll['id']}")
    assert resp.status_code == 200
    assert resp.get_json()["poll"]["question"] == "Coffee or tea?"


@pytest.mark.parametrize("poll_id", ["not-a-uuid", str(uuid.uuid4())])
def test_public_read_of_missing_or_malformed_id(client, poll_id):
    resp = client.get(f"/api/polls/{poll_id}")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == {"code": "NOT_FOUND", "message": "Poll not found.", "details": None}


def test_create_requires_authentication(client):
    resp = client.post("/api/polls/", json={"question": "Coffee or tea?", "options": ["Coffee", "Tea"]})
    assert resp.status_code == 401
    assert resp.get_json()["error"]["message"] == "You must be logged in to create a poll."


def test_create_reports_every_validation_error(client, alice):
    resp = client.post("/api/polls/", json={"question": "q" * 501, "options": ["only"]}, headers=alice.headers)
    assert resp.status_code == 400
    error = resp.get_json()["error"]
    assert error["code"] == "VALIDATION_FAILED"
    assert error["details"] == [
        "Question must be less than 500 characters.",
        "At least two options are required.",
    ]


def test_create_rejects_wrong_payload_types(client, alice):
    resp = client.post("/api/polls/", json={"question": 12, "options": "Coffee"}, headers=alice.headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "VALIDATION_FAILED"


def test_create_sanitizes_and_drops_empty_options(client, alice):
    resp = client.post(
        "/api/polls/",
        json={"question": "  <b>Coffee</b> or tea?  ", "options": [" <i>Coffee</i> ", "", "Tea"]},
        headers=alice.headers,
    )
    assert resp.status_code == 201
    poll = resp.get_json()["poll"]
    assert poll["question"] == "bCoffee/b or tea?"
    assert poll["options"] == ["iCoffee/i", "Tea"]


def test_options_made_only_of_brackets_do_not_count(client, alice):
    resp = client.post("/api/polls/", json={"question": "Pick", "options": ["<>", "Tea"]}, headers=alice.headers)
    assert resp.status_code == 400
    assert "At least two non-empty options are required." in resp.get_json()["error"]["details"]


def test_listing_only_shows_own_polls(client, alice, bob, create_poll):
    first = create_poll(alice, question="First?")
    second = create_poll(alice, question="Second?")
    create_poll(bob, question="Bob's?")

    ids = _poll_ids(client.get("/api/polls/", headers=alice.headers))
    assert set(ids) == {first["id"], second["id"]}


def test_listing_requires_authentication(client):
    resp = client.get("/api/polls/")
    assert resp.status_code == 401


def test_owner_updates_poll(client, alice, create_poll):
    poll = create_poll(alice)
    resp = client.put(
        f"/api/polls/{poll['id']}",
        json={"question": "Tea or juice?", "options": ["Tea", "Juice", "Water"]},
        headers=alice.headers,
    )
    assert resp.status_code == 200
    updated = resp.get_json()["poll"]
    assert updated["question"] == "Tea or juice?"
    assert updated["options"] == ["Tea", "Juice", "Water"]
    assert updated["user_id"] == str(alice.id)


def test_non_owner_update_fails_and_leaves_poll_untouched(client, alice, bob, create_poll):
    poll = create_poll(alice)
    resp = client.put(
        f"/api/polls/{poll['id']}",
        json={"question": "Hijacked?", "options": ["Yes", "No"]},
        headers=bob.headers,
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "UPDATE_FAILED"

    current = client.get(f"/api/polls/{poll['id']}").get_json()["poll"]
    assert current["question"] == "Coffee or tea?"


def test_update_validates_before_touching_the_store(client, alice, create_poll):
    poll = create_poll(alice)
    resp = client.put(f"/api/polls/{poll['id']}", json={"question": "", "options": ["a"]}, headers=alice.headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "VALIDATION_FAILED"


def test_update_and_delete_require_authentication(client, alice, create_poll):
    poll = create_poll(alice)
    assert client.put(f"/api/polls/{poll['id']}", json={"question": "Q?", "options": ["a", "b"]}).status_code == 401
    assert client.delete(f"/api/polls/{poll['id']}").status_code == 401


def test_mutations_emit_listing_invalidation(app, client, alice):
    events = []

    def receiver(sender, **kwargs):
        events.append((kwargs["action"], kwargs["path"]))

    with polls_changed.connected_to(receiver, app):
        poll = client.post(
            "/api/polls/", json={"question": "Q?", "options": ["a", "b"]}, headers=alice.headers
        ).get_json()["poll"]
        client.put(f"/api/polls/{poll['id']}", json={"question": "Q2?", "options": ["a", "b"]}, headers=alice.headers)
        client.post(f"/api/polls/{poll['id']}/vote", json={"option_index": 0})
        client.delete(f"/api/polls/{poll['id']}", headers=alice.headers)

    assert events == [
        ("created", "/polls"),
        ("updated", "/polls"),
        ("voted", "/polls"),
        ("deleted", "/polls"),
    ]


def test_failed_mutation_emits_nothing(app, client, alice, bob, create_poll):
    poll = create_poll(alice)
    events = []

    with polls_changed.connected_to(lambda sender, **kw: events.append(kw), app):
        client.delete(f"/api/polls/{poll['id']}", headers=bob.headers)

    assert events == []


def test_mutations_are_audited(app, client, alice, create_poll):
    poll = create_poll(alice)
    client.delete(f"/api/polls/{poll['id']}", headers=alice.headers)

    with app.app_context():
        actions = [row.action for row in AuditLog.query.order_by(AuditLog.created_at).all()]
    assert "POLL_CREATED" in actions
    assert "POLL_DELETED" in actions


def test_store_timeout_is_reported_without_details(client, alice, monkeypatch):
    def failing_commit(self):
        raise OperationalError("INSERT INTO polls", {}, Exception("canceling statement due to statement timeout"))

    monkeypatch.setattr(type(db.session), "commit", failing_commit)

    resp = client.post("/api/polls/", json={"question": "Q?", "options": ["a", "b"]}, headers=alice.headers)
    assert resp.status_code == 503
    body = resp.get_data(as_text=True)
    assert "STORE_UNAVAILABLE" in body
    assert "statement timeout" not in body


def test_store_error_on_update_is_a_generic_update_failure(app, client, alice, create_poll, monkeypatch):
    poll = create_poll(alice)

    def failing_commit(self):
        raise SQLAlchemyError("constraint trouble")

    monkeypatch.setattr(type(db.session), "commit", failing_commit)

    resp = client.put(f"/api/polls/{poll['id']}", json={"question": "Q?", "options": ["a", "b"]}, headers=alice.headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "UPDATE_FAILED"
    monkeypatch.undo()

    with app.app_context():
        assert db.session.get(Poll, uuid.UUID(poll["id"])).question == "Coffee or tea?"
