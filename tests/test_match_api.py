import pytest


@pytest.fixture
async def admin_token(register):
    return (await register("Admin", "admin@example.com"))["token"]


@pytest.fixture
async def upload(client, admin_token, auth_headers):
    async def _upload(data: str) -> dict:
        response = await client.post("/admin/pairs/upload", json={"data": data}, headers=auth_headers(admin_token))
        assert response.status_code == 200, response.text
        return response.json()

    return _upload


async def test_full_match_flow(client, register, upload, auth_headers):
    await upload("7,Rudolph\n")
    headers = auth_headers((await register("Dana", "dana@example.com"))["token"])

    state = await client.get("/match/me", headers=headers)
    assert state.json() == {"state": "unmatched", "match": None}

    offer = (await client.get("/match/offer", headers=headers)).json()
    assert offer["number"] == "7"
    assert "name" not in offer

    revealed = await client.post(
        "/match/reveal", json={"pair_id": offer["pair_id"], "offer_token": offer["offer_token"]}, headers=headers
    )
    assert revealed.status_code == 200
    body = revealed.json()
    assert body["status"] == "created"
    assert (body["match"]["number"], body["match"]["name"]) == ("7", "Rudolph")
    assert body["match"]["user"] == "Dana"
    assert body["match"]["message"] is None

    state = (await client.get("/match/me", headers=headers)).json()
    assert state["state"] == "matched"
    assert state["match"]["name"] == "Rudolph"

    again = await client.get("/match/offer", headers=headers)
    assert again.status_code == 409
    assert again.json()["detail"] == "already_matched"

    sent = await client.post("/match/message", json={"text": "Merry Christmas!"}, headers=headers)
    assert sent.status_code == 200
    assert sent.json()["match"]["message"] == "Merry Christmas!"

    second = await client.post("/match/message", json={"text": "Another"}, headers=headers)
    assert second.status_code == 409
    assert second.json()["detail"] == "message_already_sent"


async def test_reveal_requires_the_offered_token(client, register, upload, auth_headers):
    await upload("1,Ann\n2,Bob\n")
    headers = auth_headers((await register("Dana", "dana@example.com"))["token"])
    offer = (await client.get("/match/offer", headers=headers)).json()

    other_pair = 1 if offer["pair_id"] == 2 else 2
    forged = await client.post(
        "/match/reveal", json={"pair_id": other_pair, "offer_token": offer["offer_token"]}, headers=headers
    )

    assert forged.status_code == 403


async def test_offer_token_is_bound_to_the_user(client, register, upload, auth_headers):
    await upload("1,Ann\n2,Bob\n")
    dana = auth_headers((await register("Dana", "dana@example.com"))["token"])
    eve = auth_headers((await register("Eve", "eve@example.com"))["token"])
    offer = (await client.get("/match/offer", headers=dana)).json()

    stolen = await client.post(
        "/match/reveal", json={"pair_id": offer["pair_id"], "offer_token": offer["offer_token"]}, headers=eve
    )

    assert stolen.status_code == 403


async def test_exhausted_when_all_pairs_matched(client, register, upload, auth_headers):
    await upload("1,Only\n")
    first = auth_headers((await register("First", "first@example.com"))["token"])
    offer = (await client.get("/match/offer", headers=first)).json()
    await client.post(
        "/match/reveal", json={"pair_id": offer["pair_id"], "offer_token": offer["offer_token"]}, headers=first
    )

    late = auth_headers((await register("Late", "late@example.com"))["token"])
    state = await client.get("/match/me", headers=late)
    offer = await client.get("/match/offer", headers=late)

    assert state.json()["state"] == "exhausted"
    assert offer.status_code == 404
    assert offer.json()["detail"] == "no_pairs_available"


async def test_message_without_match(client, register, auth_headers):
    headers = auth_headers((await register("Dana", "dana@example.com"))["token"])

    response = await client.post("/match/message", json={"text": "hello"}, headers=headers)

    assert response.status_code == 404
    assert (await client.get("/match/me", headers=headers)).json()["match"] is None


async def test_empty_message_is_rejected(client, register, upload, auth_headers):
    await upload("1,Ann\n")
    headers = auth_headers((await register("Dana", "dana@example.com"))["token"])
    offer = (await client.get("/match/offer", headers=headers)).json()
    await client.post(
        "/match/reveal", json={"pair_id": offer["pair_id"], "offer_token": offer["offer_token"]}, headers=headers
    )

    response = await client.post("/match/message", json={"text": "   "}, headers=headers)

    assert response.status_code == 400
