def test_send_request_creates_pending_row(client, register):
    john = register("john")
    jane = register("jane")

    r = client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])
    assert r.status_code == 200, r.text

    r = client.get("/api/Buddy/Pending", headers=jane["headers"])
    assert r.status_code == 200
    pending = r.json()
    assert len(pending) == 1
    assert pending[0]["requester_id"] == john["id"]
    assert pending[0]["requester_name"] == "john"
    assert pending[0]["status"] == "Pending"

    r = client.get("/api/Buddy/GetSend", headers=john["headers"])
    assert [row["addressee_id"] for row in r.json()] == [jane["id"]]


def test_cannot_add_self(client, register):
    john = register("john")
    r = client.post(f"/api/Buddy/Send/{john['id']}", headers=john["headers"])
    assert r.status_code == 400
    assert r.json()["detail"]["error"]["code"] == "VALIDATION_ERROR"


def test_unknown_addressee_is_404(client, register):
    john = register("john")
    r = client.post("/api/Buddy/Send/9999", headers=john["headers"])
    assert r.status_code == 404
    assert r.json()["detail"]["error"]["code"] == "USER_NOT_FOUND"


def test_reverse_request_while_pending_fails(client, register):
    john = register("john")
    jane = register("jane")
    client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])

    r = client.post(f"/api/Buddy/Send/{john['id']}", headers=jane["headers"])
    assert r.status_code == 400
    assert "pending" in r.json()["detail"]["error"]["message"]


def test_accept_is_symmetric(client, register, buddies):
    john = register("john")
    jane = register("jane")
    buddies(john, jane)

    for user, other in ((john, jane), (jane, john)):
        r = client.get("/api/Buddy/List", headers=user["headers"])
        assert r.status_code == 200
        rows = r.json()
        assert len(rows) == 1
        assert {rows[0]["requester_id"], rows[0]["addressee_id"]} == {john["id"], jane["id"]}
        assert rows[0]["status"] == "Accepted"

    r = client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])
    assert r.status_code == 400


def test_respond_requires_exact_direction(client, register):
    john = register("john")
    jane = register("jane")
    client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])

    # john cannot answer his own request
    r = client.patch(
        "/api/Buddy/Respond",
        json={"requester_id": jane["id"], "status": "Accepted"},
        headers=john["headers"],
    )
    assert r.status_code == 404


def test_respond_with_pending_is_rejected(client, register):
    john = register("john")
    jane = register("jane")
    client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])

    r = client.patch(
        "/api/Buddy/Respond",
        json={"requester_id": john["id"], "status": "Pending"},
        headers=jane["headers"],
    )
    assert r.status_code == 400


def test_respond_twice_fails(client, register, buddies):
    john = register("john")
    jane = register("jane")
    buddies(john, jane)

    r = client.patch(
        "/api/Buddy/Respond",
        json={"requester_id": john["id"], "status": "Rejected"},
        headers=jane["headers"],
    )
    assert r.status_code == 400


def test_rejected_request_can_be_sent_again(client, register):
    john = register("john")
    jane = register("jane")
    client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])
    r = client.patch(
        "/api/Buddy/Respond",
        json={"requester_id": john["id"], "status": "Rejected"},
        headers=jane["headers"],
    )
    assert r.status_code == 200

    # Still shown to the sender, not to the addressee
    assert client.get("/api/Buddy/GetSend", headers=john["headers"]).json()[0]["status"] == "Rejected"
    assert client.get("/api/Buddy/Pending", headers=jane["headers"]).json() == []

    # jane re-requests: the earlier john -> jane row is reopened
    r = client.post(f"/api/Buddy/Send/{john['id']}", headers=jane["headers"])
    assert r.status_code == 200
    pending = client.get("/api/Buddy/Pending", headers=jane["headers"]).json()
    assert len(pending) == 1
    assert pending[0]["requester_id"] == john["id"]


def test_block_hides_buddy_and_prevents_new_requests(client, register, buddies):
    john = register("john")
    jane = register("jane")
    buddies(john, jane)

    r = client.patch(f"/api/Buddy/Block/{jane['id']}", headers=john["headers"])
    assert r.status_code == 200, r.text

    assert client.get("/api/Buddy/List", headers=john["headers"]).json() == []
    assert client.get("/api/Buddy/List", headers=jane["headers"]).json() == []

    for sender, target in ((john, jane), (jane, john)):
        r = client.post(f"/api/Buddy/Send/{target['id']}", headers=sender["headers"])
        assert r.status_code == 400


def test_delete_buddy(client, register, buddies):
    john = register("john")
    jane = register("jane")
    buddies(john, jane)

    r = client.delete(f"/api/Buddy/Delete/{john['id']}", headers=jane["headers"])
    assert r.status_code == 200
    assert client.get("/api/Buddy/List", headers=john["headers"]).json() == []

    r = client.delete(f"/api/Buddy/Delete/{john['id']}", headers=jane["headers"])
    assert r.status_code == 404

    # No relation left, a fresh request works
    r = client.post(f"/api/Buddy/Send/{john['id']}", headers=jane["headers"])
    assert r.status_code == 200


def test_remove_pending_request_is_not_found(client, register):
    john = register("john")
    jane = register("jane")
    client.post(f"/api/Buddy/Send/{jane['id']}", headers=john["headers"])

    r = client.delete(f"/api/Buddy/Delete/{jane['id']}", headers=john["headers"])
    assert r.status_code == 404


def test_requires_bearer_token(client):
    r = client.get("/api/Buddy/List")
    assert r.status_code == 401
    assert r.json()["detail"]["error"]["code"] == "UNAUTHORIZED"
