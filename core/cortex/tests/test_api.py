"""
API tests for the /api/ai routes.

The orchestrator dependency is overridden with one built over temporary
stores and a scripted gateway; identity comes from the X-User-Id header.
"""

import pytest
from fastapi.testclient import TestClient

from cortex.api.orchestrator_store import get_orchestrator
from cortex.main import app
from cortex.tests.helpers import OWNER, make_note

HEADERS = {"X-User-Id": OWNER}


@pytest.fixture
def client(orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _send(client, message="Explain X", **extra):
    return client.post("/api/ai/chat", json={"message": message, **extra}, headers=HEADERS)


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/ai/chats"),
            ("post", "/api/ai/chats"),
            ("get", "/api/ai/chats/abc"),
            ("get", "/api/ai/context"),
        ],
    )
    def test_missing_user_header(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401

    def test_chat_requires_user(self, client):
        response = client.post("/api/ai/chat", json={"message": "hi"})
        assert response.status_code == 401


class TestChat:

    def test_send_message(self, client):
        response = _send(client)

        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "Sure, here you go."
        assert data["context"] == []
        assert data["chatId"]

    def test_send_with_context_items(self, client, workspace):
        note = make_note(workspace, "Plan", "Step one")

        response = _send(client, "Read", contextItems=[{"id": note.id, "type": "note"}])

        [block] = response.json()["context"]
        assert block == {"id": note.id, "type": "note", "title": "Note: Plan", "body": "Step one"}

    def test_empty_message(self, client):
        assert _send(client, "  ").status_code == 400

    def test_unknown_chat(self, client):
        assert _send(client, chatId="missing").status_code == 404

    def test_generation_failure(self, client, gateway, conversations):
        gateway.fail = True

        response = _send(client)

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["message"] == "Failed to generate AI response"
        _, messages = conversations.get_conversation(OWNER, detail["chatId"])
        assert [m.content for m in messages] == ["Explain X"]


class TestChats:

    def test_list_uses_camel_case(self, client):
        chat_id = _send(client).json()["chatId"]

        response = client.get("/api/ai/chats", headers=HEADERS)

        assert response.status_code == 200
        [chat] = response.json()["chats"]
        assert chat["id"] == chat_id
        assert chat["title"] == "Explain X"
        assert chat["messageCount"] == 2
        assert "createdAt" in chat and "updatedAt" in chat
        assert chat["contextItems"] == []

    def test_list_pagination(self, client):
        ids = {_send(client, f"Question {i}").json()["chatId"] for i in range(5)}

        first = client.get("/api/ai/chats", headers=HEADERS).json()["chats"]
        rest = client.get(
            "/api/ai/chats", params={"offset": 3, "limit": 50}, headers=HEADERS
        ).json()["chats"]

        assert len(first) == 3
        assert {c["id"] for c in first + rest} == ids

    def test_create_and_fetch_draft(self, client):
        created = client.post("/api/ai/chats", json={"title": "Ideas"}, headers=HEADERS)
        chat_id = created.json()["chat"]["id"]

        detail = client.get(f"/api/ai/chats/{chat_id}", headers=HEADERS).json()
        listing = client.get("/api/ai/chats", headers=HEADERS).json()

        assert detail["chat"]["title"] == "Ideas"
        assert detail["messages"] == []
        assert listing["chats"] == []

    def test_detail_messages(self, client):
        chat_id = _send(client).json()["chatId"]

        messages = client.get(f"/api/ai/chats/{chat_id}", headers=HEADERS).json()["messages"]

        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "Explain X"),
            ("assistant", "Sure, here you go."),
        ]

    def test_missing_chat(self, client):
        assert client.get("/api/ai/chats/missing", headers=HEADERS).status_code == 404

    def test_rename(self, client):
        chat_id = client.post("/api/ai/chats", headers=HEADERS).json()["chat"]["id"]

        ok = client.patch(f"/api/ai/chats/{chat_id}", json={"title": "Trip"}, headers=HEADERS)
        blank = client.patch(f"/api/ai/chats/{chat_id}", json={"title": ""}, headers=HEADERS)
        missing = client.patch("/api/ai/chats/missing", json={"title": "x"}, headers=HEADERS)

        assert ok.json() == {"success": True, "message": None}
        assert blank.status_code == 400
        assert missing.status_code == 404

    def test_delete(self, client):
        chat_id = _send(client).json()["chatId"]

        assert client.delete(f"/api/ai/chats/{chat_id}", headers=HEADERS).status_code == 200
        assert client.delete(f"/api/ai/chats/{chat_id}", headers=HEADERS).status_code == 404
        assert client.get(f"/api/ai/chats/{chat_id}", headers=HEADERS).status_code == 404


class TestContextItems:

    def test_add_remove(self, client):
        chat_id = client.post("/api/ai/chats", headers=HEADERS).json()["chat"]["id"]
        path = f"/api/ai/chats/{chat_id}/context"
        item = {"itemId": "n1", "type": "note"}

        assert client.post(path, json=item, headers=HEADERS).status_code == 200
        assert client.post(path, json=item, headers=HEADERS).status_code == 200

        detail = client.get(f"/api/ai/chats/{chat_id}", headers=HEADERS).json()
        assert detail["chat"]["contextItems"] == [{"id": "n1", "type": "note"}]

        assert client.delete(path, params=item, headers=HEADERS).status_code == 200
        assert client.delete(path, params=item, headers=HEADERS).status_code == 404

    def test_missing_fields(self, client):
        chat_id = client.post("/api/ai/chats", headers=HEADERS).json()["chat"]["id"]

        response = client.post(
            f"/api/ai/chats/{chat_id}/context", json={"type": "note"}, headers=HEADERS
        )

        assert response.status_code == 400

    def test_search(self, client, workspace):
        note = make_note(workspace, "Budget 2025", "Numbers")

        response = client.get("/api/ai/context", params={"q": "budget"}, headers=HEADERS)

        assert response.json()["items"] == [
            {"id": note.id, "type": "note", "title": "Budget 2025", "subtitle": "Numbers"}
        ]
