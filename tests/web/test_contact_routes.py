"""Tests for contact, tag and status routes."""


class TestContacts:
    def test_create_and_get(self, client, auth_headers):
        res = client.post(
            "/api/contacts",
            json={
                "name": "Ana",
                "remark": "Annie",
                "tags": ["college"],
                "important_dates": [
                    {"name": "birthday", "value": "1990-08-01", "calendar_type": "lunar"}
                ],
            },
            headers=auth_headers,
        )
        assert res.status_code == 201
        contact = res.json()
        assert contact["display_name"] == "Annie"
        assert contact["origin"] == "manual"
        assert contact["important_dates"][0]["calendar_type"] == "lunar"

        fetched = client.get(f"/api/contacts/{contact['id']}", headers=auth_headers).json()
        assert fetched["name"] == "Ana"
        # contact tags join the person-tag vocabulary
        assert client.get("/api/tags/person", headers=auth_headers).json() == ["college"]

    def test_duplicate_name(self, client, auth_headers):
        client.post("/api/contacts", json={"name": "Ana"}, headers=auth_headers)
        res = client.post("/api/contacts", json={"name": "Ana"}, headers=auth_headers)
        assert res.status_code == 409

    def test_search(self, client, auth_headers):
        client.post("/api/contacts", json={"name": "Ana"}, headers=auth_headers)
        client.post("/api/contacts", json={"name": "Bo", "remark": "Ana's brother"}, headers=auth_headers)
        client.post("/api/contacts", json={"name": "Cy"}, headers=auth_headers)

        res = client.get("/api/contacts/search", params={"q": "Ana"}, headers=auth_headers)
        assert sorted(c["name"] for c in res.json()) == ["Ana", "Bo"]

    def test_update(self, client, auth_headers):
        cid = client.post("/api/contacts", json={"name": "Ana"}, headers=auth_headers).json()["id"]
        res = client.patch(f"/api/contacts/{cid}", json={"remark": "Annie"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["remark"] == "Annie"
        assert client.patch("/api/contacts/nope", json={"remark": "x"}, headers=auth_headers).status_code == 404

    def test_delete_unlinks_records(self, client, auth_headers):
        ana = client.post("/api/contacts", json={"name": "Ana"}, headers=auth_headers).json()
        records = client.post(
            "/api/captures/text", json={"text": "lunch"}, headers=auth_headers
        ).json()["records"]
        ana_record = next(r for r in records if r["mentioned_people"] == ["Ana"])
        assert ana_record["linked_contact_id"] == ana["id"]

        assert client.delete(f"/api/contacts/{ana['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/contacts/{ana['id']}", headers=auth_headers).status_code == 404

        rec = client.get(f"/api/records/{ana_record['id']}", headers=auth_headers).json()
        assert rec["linked_contact_id"] is None
        assert rec["unarchived_people"] == ["Ana"]

    def test_owner_isolation(self, client, auth_headers, auth_headers_b):
        cid = client.post("/api/contacts", json={"name": "Ana"}, headers=auth_headers).json()["id"]
        assert client.get(f"/api/contacts/{cid}", headers=auth_headers_b).status_code == 404
        assert client.get("/api/contacts", headers=auth_headers_b).json() == []


class TestTags:
    def test_event_vocabulary_constrains_capture(self, client, provider, auth_headers):
        assert client.post("/api/tags/event", json={"name": "Lunch"}, headers=auth_headers).status_code == 201
        provider.replies["tags"] = "lunch, hiking"

        records = client.post(
            "/api/captures/text", json={"text": "lunch"}, headers=auth_headers
        ).json()["records"]
        assert all(r["tags"] == ["Lunch"] for r in records)

    def test_add_and_remove(self, client, auth_headers):
        first = client.post("/api/tags/event", json={"name": "lunch"}, headers=auth_headers).json()
        again = client.post("/api/tags/event", json={"name": "lunch"}, headers=auth_headers).json()
        assert first["created"] and not again["created"]

        assert client.delete("/api/tags/event/lunch", headers=auth_headers).status_code == 204
        assert client.get("/api/tags/event", headers=auth_headers).json() == []
        assert client.delete("/api/tags/event/lunch", headers=auth_headers).status_code == 404

    def test_unknown_kind(self, client, auth_headers):
        assert client.get("/api/tags/place", headers=auth_headers).status_code == 422


class TestStatus:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_status(self, client, monkeypatch):
        for key in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GOOGLE_API_KEY", "STEPFUN_API_KEY"):
            monkeypatch.delenv(key, raising=False)
        data = client.get("/api/status").json()
        assert data == {"llm_configured": False, "transcription_configured": True}
