import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from auth import create_token
from lifecycle import create_listing
from routers.chats import manager
from conftest import auth_header, listing_data


@pytest.fixture(name="listing")
def listing_fixture(session, provider):
    return create_listing(session, provider, listing_data())


def test_claim_opens_chat_with_system_message(client, provider, claimant, listing):
    client.post(f"/api/listings/{listing.id}/claim", headers=auth_header(claimant))

    for user in (claimant, provider):
        chat = client.get(f"/api/chats/{listing.id}", headers=auth_header(user)).json()
        assert chat["listingId"] == listing.id
        assert chat["participants"] == [provider.id, claimant.id]
        assert chat["messages"][0]["sender"] == "system"
        assert chat["messages"][0]["senderName"] == "System"
        assert chat["messages"][0]["text"] == 'Chat started for "Vegetable biryani"'


def test_no_chat_yet(client, claimant, listing):
    chat = client.get(f"/api/chats/{listing.id}", headers=auth_header(claimant)).json()
    assert chat["messages"] == []
    assert chat["id"] is None


def test_first_message_opens_chat(client, provider, claimant, listing):
    res = client.post(
        f"/api/chats/{listing.id}/message",
        json={"text": "Is this still available?"},
        headers=auth_header(claimant),
    )

    assert res.status_code == 200
    chat = res.json()
    assert chat["participants"] == [provider.id, claimant.id]
    assert [m["text"] for m in chat["messages"]] == ["Is this still available?"]
    assert chat["messages"][0]["sender"] == claimant.id
    assert chat["messages"][0]["senderName"] == "Ravi"


def test_provider_replies_in_existing_chat(client, provider, claimant, listing):
    client.post(f"/api/listings/{listing.id}/claim", headers=auth_header(claimant))
    client.post(f"/api/chats/{listing.id}/message", json={"text": "Coming at 6"}, headers=auth_header(claimant))

    res = client.post(f"/api/chats/{listing.id}/message", json={"text": "See you"}, headers=auth_header(provider))

    texts = [m["text"] for m in res.json()["messages"]]
    assert texts == ['Chat started for "Vegetable biryani"', "Coming at 6", "See you"]


def test_provider_cannot_start_chat(client, provider, listing):
    res = client.post(f"/api/chats/{listing.id}/message", json={"text": "hello?"}, headers=auth_header(provider))
    assert res.status_code == 404


def test_message_validation(client, claimant, listing):
    blank = client.post(f"/api/chats/{listing.id}/message", json={"text": "   "}, headers=auth_header(claimant))
    missing = client.post("/api/chats/999/message", json={"text": "hi"}, headers=auth_header(claimant))
    assert blank.status_code == 422
    assert missing.status_code == 404


def test_my_chats(client, provider, claimant, make_user, listing):
    other = make_user("Meera")
    client.post(f"/api/listings/{listing.id}/claim", headers=auth_header(claimant))
    client.post(f"/api/chats/{listing.id}/message", json={"text": "Any more left?"}, headers=auth_header(other))

    chats = client.get("/api/chats/my", headers=auth_header(provider)).json()
    mine = client.get("/api/chats/my", headers=auth_header(claimant)).json()

    assert len(chats) == 2
    assert {c["claimant"]["name"] for c in chats} == {"Ravi", "Meera"}
    assert len(mine) == 1
    assert mine[0]["listing"]["title"] == "Vegetable biryani"
    assert mine[0]["provider"]["name"] == "Asha"
    assert mine[0]["lastMessage"] == 'Chat started for "Vegetable biryani"'


def test_websocket_broadcasts_stored_message(client: TestClient, provider, claimant, listing):
    chat_id = client.post(f"/api/listings/{listing.id}/claim", headers=auth_header(claimant)).json()["chatId"]

    with client.websocket_connect(f"/ws/chats/{chat_id}?token={create_token(claimant)}") as ws:
        ws.send_json({"text": "On my way"})
        msg = ws.receive_json()

        ws.send_json({"text": ""})
        error = ws.receive_json()

    assert msg["text"] == "On my way"
    assert msg["sender"] == claimant.id
    assert msg["senderName"] == "Ravi"
    assert error == {"error": "Message text is required"}

    stored = client.get(f"/api/chats/{listing.id}", headers=auth_header(provider)).json()
    assert stored["messages"][-1]["text"] == "On my way"


def test_websocket_rejects_outsiders(client, claimant, make_user, listing):
    chat_id = client.post(f"/api/listings/{listing.id}/claim", headers=auth_header(claimant)).json()["chatId"]
    outsider = make_user("Meera")

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/chats/{chat_id}?token={create_token(outsider)}") as ws:
            ws.receive_json()

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/chats/{chat_id}?token=garbage") as ws:
            ws.receive_json()


def test_websocket_answers_malformed_frames_and_leaves_room_on_close(client, claimant, listing):
    chat_id = client.post(f"/api/listings/{listing.id}/claim", headers=auth_header(claimant)).json()["chatId"]

    with client.websocket_connect(f"/ws/chats/{chat_id}?token={create_token(claimant)}") as ws:
        ws.send_text("not json")
        error = ws.receive_json()

        ws.send_json({"text": "Still here"})
        msg = ws.receive_json()

    assert error == {"error": "Message must be JSON"}
    assert msg["text"] == "Still here"
    assert not manager.rooms.get(chat_id)
