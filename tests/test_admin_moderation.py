import pytest
from starlette.websockets import WebSocketDisconnect

from shortener.services.links import link_store


def _token(headers: dict) -> str:
    return headers["Authorization"].split(" ", 1)[1]


def test_patch_updates_status_and_max_clicks(client, admin_headers, seed_links):
    [link_id] = seed_links([{"slug": "mod"}])

    response = client.patch(
        f"/api/admin/links/{link_id}",
        json={"status": "blocked", "maxClicks": 5},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "blocked"
    assert response.json()["maxClicks"] == 5


def test_patch_ignores_unknown_status(client, admin_headers, seed_links):
    [link_id] = seed_links([{"slug": "mod"}])

    response = client.patch(
        f"/api/admin/links/{link_id}", json={"status": "deleted"}, headers=admin_headers
    )

    assert response.json()["status"] == "active"


def test_patch_and_delete_missing_link(client, admin_headers):
    patch = client.patch("/api/admin/links/999", json={}, headers=admin_headers)
    delete = client.delete("/api/admin/links/999", headers=admin_headers)

    assert patch.status_code == 404
    assert patch.json() == {"message": "Link not found"}
    assert delete.status_code == 404


def test_delete_link(client, admin_headers, seed_links):
    [link_id] = seed_links([{"slug": "bye"}])

    response = client.delete(f"/api/admin/links/{link_id}", headers=admin_headers)

    assert response.json() == {"success": True}
    assert client.get("/api/links/bye").status_code == 404


def test_moderation_requires_admin(client, user_headers, seed_links):
    [link_id] = seed_links([{"slug": "mod"}])

    response = client.delete(f"/api/admin/links/{link_id}", headers=user_headers)

    assert response.status_code == 403
    assert link_store.get_by_slug("mod").slug == "mod"


def test_moderation_is_broadcast_to_admin_sockets(client, admin_headers, seed_links):
    [link_id] = seed_links([{"slug": "live"}])

    with client.websocket_connect(f"/ws/admin?token={_token(admin_headers)}") as socket:
        socket.send_text("ping")
        assert socket.receive_json() == {"event": "pong"}
        assert client.app.state.connections.active_count == 1

        client.patch(
            f"/api/admin/links/{link_id}", json={"status": "blocked"}, headers=admin_headers
        )
        updated = socket.receive_json()
        client.delete(f"/api/admin/links/{link_id}", headers=admin_headers)
        deleted = socket.receive_json()

    assert updated["event"] == "link:updated"
    assert updated["link"]["slug"] == "live"
    assert updated["link"]["status"] == "blocked"
    assert deleted == {"event": "link:deleted", "id": link_id}


@pytest.mark.parametrize("query", ["", "?token=garbage"])
def test_admin_socket_rejects_bad_tokens(client, query):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/admin{query}") as socket:
            socket.receive_json()


def test_admin_socket_rejects_non_admins(client, user_headers):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/admin?token={_token(user_headers)}") as socket:
            socket.receive_json()
