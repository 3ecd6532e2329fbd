from datetime import datetime, timedelta, timezone


def _journey_with_member(client, register, buddies):
    owner = register("owner")
    member = register("member")
    outsider = register("outsider")
    buddies(owner, member)

    r = client.post(
        "/api/Journey/AddJourney",
        json={
            "start_place_id": 1,
            "end_place_id": 2,
            "start_at": (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat(),
        },
        headers=owner["headers"],
    )
    journey_id = r.json()["id"]
    client.post(f"/api/Journey/SendJoinRequest/{journey_id}", headers=member["headers"])
    return owner, member, outsider, journey_id


def test_members_exchange_messages_in_order(client, register, buddies):
    owner, member, _, journey_id = _journey_with_member(client, register, buddies)
    client.post(
        f"/api/Journey/RespondToJoinRequest/{journey_id}",
        json={"requester_id": member["id"], "status": "Accepted"},
        headers=owner["headers"],
    )

    r = client.post(f"/api/Chat/journey/{journey_id}", json={"content": "Meet at the station?"}, headers=owner["headers"])
    assert r.status_code == 200, r.text
    sent = r.json()
    assert sent["sender_id"] == owner["id"]
    assert sent["sender_name"] == "owner"
    assert sent["journey_id"] == journey_id

    client.post(f"/api/Chat/journey/{journey_id}", json={"content": "Sure"}, headers=member["headers"])

    r = client.get(f"/api/Chat/journey/{journey_id}", headers=member["headers"])
    assert r.status_code == 200
    assert [m["content"] for m in r.json()] == ["Meet at the station?", "Sure"]


def test_pending_member_cannot_chat(client, register, buddies):
    _, member, _, journey_id = _journey_with_member(client, register, buddies)

    r = client.post(f"/api/Chat/journey/{journey_id}", json={"content": "hi"}, headers=member["headers"])
    assert r.status_code == 403
    r = client.get(f"/api/Chat/journey/{journey_id}", headers=member["headers"])
    assert r.status_code == 403


def test_outsider_and_missing_journey(client, register, buddies):
    owner, _, outsider, journey_id = _journey_with_member(client, register, buddies)

    r = client.get(f"/api/Chat/journey/{journey_id}", headers=outsider["headers"])
    assert r.status_code == 403
    r = client.get("/api/Chat/journey/31337", headers=owner["headers"])
    assert r.status_code == 404


def test_blank_message_rejected(client, register, buddies):
    owner, _, _, journey_id = _journey_with_member(client, register, buddies)

    r = client.post(f"/api/Chat/journey/{journey_id}", json={"content": "   "}, headers=owner["headers"])
    assert r.status_code == 400
    assert r.json()["detail"]["error"]["code"] == "VALIDATION_ERROR"
