import pytest


@pytest.fixture
async def admin(register, auth_headers):
    return auth_headers((await register("Admin", "admin@example.com"))["token"])


@pytest.fixture
async def member(register, auth_headers, admin):
    return auth_headers((await register("Member", "member@example.com"))["token"])


async def reveal_any(client, headers) -> dict:
    offer = (await client.get("/match/offer", headers=headers)).json()
    response = await client.post(
        "/match/reveal", json={"pair_id": offer["pair_id"], "offer_token": offer["offer_token"]}, headers=headers
    )
    return response.json()["match"]


async def test_admin_routes_reject_non_admins(client, member):
    assert (await client.get("/admin/pairs")).status_code == 401
    assert (await client.get("/admin/pairs", headers=member)).status_code == 403
    assert (await client.get("/admin/matches/export", headers=member)).status_code == 403
    assert (await client.post("/admin/pairs/upload", json={"data": "1,A"}, headers=member)).status_code == 403


async def test_upload_reports_skips(client, admin):
    first = await client.post("/admin/pairs/upload", json={"data": "1,Ann\n2,Bob\nbad\n"}, headers=admin)
    second = await client.post("/admin/pairs/upload", json={"data": "2,Bob again\n3,Cy\n"}, headers=admin)

    assert first.json() == {"created": 2, "skipped": 1, "errors": [{"line": 3, "reason": "missing number or name"}]}
    assert second.json()["created"] == 1
    assert second.json()["errors"] == [{"line": 1, "reason": "duplicate number 2"}]


async def test_upload_rejects_empty_payload(client, admin):
    response = await client.post("/admin/pairs/upload", json={"data": "  "}, headers=admin)

    assert response.status_code == 400
    assert response.json()["detail"] == "Please provide CSV data to upload"


async def test_list_pairs_flags_matched(client, admin, member):
    await client.post("/admin/pairs/upload", json={"data": "1,Ann\n2,Bob\n"}, headers=admin)
    match = await reveal_any(client, member)

    pairs = (await client.get("/admin/pairs", headers=admin)).json()

    assert {p["number"]: p["matched"] for p in pairs} == {
        "1": match["number"] == "1",
        "2": match["number"] == "2",
    }


async def test_edit_pair(client, admin):
    await client.post("/admin/pairs/upload", json={"data": "1,Ann\n2,Bob\n"}, headers=admin)
    pairs = (await client.get("/admin/pairs", headers=admin)).json()
    ann = next(p for p in pairs if p["number"] == "1")

    edited = await client.patch(f"/admin/pairs/{ann['id']}", json={"number": "10", "name": "Anne"}, headers=admin)
    clash = await client.patch(f"/admin/pairs/{ann['id']}", json={"number": "2", "name": "Anne"}, headers=admin)
    blank = await client.patch(f"/admin/pairs/{ann['id']}", json={"number": " ", "name": "Anne"}, headers=admin)
    missing = await client.patch("/admin/pairs/9999", json={"number": "5", "name": "X"}, headers=admin)

    assert edited.status_code == 200
    assert edited.json() == {"id": ann["id"], "number": "10", "name": "Anne"}
    assert clash.status_code == 409
    assert blank.status_code == 400
    assert missing.status_code == 404


async def test_delete_pair_keeps_match_copy(client, admin, member):
    await client.post("/admin/pairs/upload", json={"data": "1,Ann\n"}, headers=admin)
    match = await reveal_any(client, member)

    deleted = await client.delete(f"/admin/pairs/{match['pair_id']}", headers=admin)
    again = await client.delete(f"/admin/pairs/{match['pair_id']}", headers=admin)
    matches = (await client.get("/admin/matches", headers=admin)).json()

    assert deleted.status_code == 200
    assert again.status_code == 404
    assert len(matches) == 1
    assert matches[0]["pair_id"] is None
    assert (matches[0]["number"], matches[0]["name"]) == ("1", "Ann")


async def test_export_matches_csv(client, admin, member):
    await client.post("/admin/pairs/upload", json={"data": "1,Ann\n"}, headers=admin)
    await reveal_any(client, member)
    await client.post("/match/message", json={"text": 'Say "cheese", please'}, headers=member)

    response = await client.get("/admin/matches/export", headers=admin)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].startswith('attachment; filename="matches-')
    lines = response.text.splitlines()
    assert lines[0] == '"User","Email","Number","Name","Message","Timestamp"'
    assert lines[1].startswith('"Member","member@example.com","1","Ann","Say ""cheese"", please","')
