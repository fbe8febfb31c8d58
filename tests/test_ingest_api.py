from __future__ import annotations

import asyncio

from conftest import publisher_offer


def _registered(live_id: str):
    from db.repository import TrackRegistry

    return asyncio.run(TrackRegistry().get(live_id))


def _ingest(client, live_id: str, *track_names: str):
    return client.post(
        f"/ingest/{live_id}",
        content=publisher_offer(*track_names),
        headers={"content-type": "application/sdp"},
    )


def test_ingest_post_returns_whip_answer(client, fake_sfu) -> None:
    response = _ingest(client, "ingest-headers", "audio-track")

    assert response.status_code == 201
    (session_id,) = fake_sfu.sessions
    assert response.headers["content-type"] == "application/sdp"
    assert response.headers["protocol-version"] == "draft-ietf-wish-whip-06"
    assert response.headers["etag"] == f'"{session_id}"'
    assert response.headers["location"] == f"/ingest/ingest-headers/{session_id}"
    assert response.text == f"v=0\r\ns=answer {session_id}\r\n"


def test_ingest_post_registers_every_discovered_track(client, fake_sfu) -> None:
    response = _ingest(client, "ingest-tracks", "audio-track", "video-track", "screen-track")
    assert response.status_code == 201

    (session_id,) = fake_sfu.sessions
    locators = _registered("ingest-tracks")
    assert [locator.track_name for locator in locators] == ["audio-track", "video-track", "screen-track"]
    assert {locator.location for locator in locators} == {"remote"}
    assert {locator.session_id for locator in locators} == {session_id}


def test_second_ingest_overwrites_registered_tracks(client, fake_sfu) -> None:
    _ingest(client, "ingest-overwrite", "audio-track", "video-track")
    response = _ingest(client, "ingest-overwrite", "camera")
    assert response.status_code == 201

    locators = _registered("ingest-overwrite")
    assert len(locators) == 1
    assert locators[0].track_name == "camera"
    assert locators[0].session_id == "sess-2"


def test_ingest_delete_clears_registry(client) -> None:
    _ingest(client, "ingest-delete", "audio-track")

    response = client.delete("/ingest/ingest-delete")

    assert response.status_code == 200
    assert _registered("ingest-delete") == []


def test_ingest_delete_on_resource_path(client, fake_sfu) -> None:
    _ingest(client, "ingest-delete-resource", "audio-track")
    (session_id,) = fake_sfu.sessions

    response = client.delete(f"/ingest/ingest-delete-resource/{session_id}")

    assert response.status_code == 200
    assert _registered("ingest-delete-resource") == []


def test_ingest_rejects_unsupported_method(client, fake_sfu) -> None:
    response = client.put("/ingest/ingest-put", content="v=0")

    assert response.status_code == 400
    assert response.text == "Not supported"
    assert fake_sfu.calls == []


def test_ingest_options_returns_capabilities(client) -> None:
    response = client.options("/ingest/ingest-options")

    assert response.status_code == 204
    assert response.headers["accept-post"] == "application/sdp"
    assert response.headers["access-control-allow-methods"] == "PATCH,POST,PUT,DELETE,OPTIONS"
    assert response.headers["link"] == '<stun:stun.cloudflare.com:3478>; rel="ice-server"'


def test_ingest_track_error_leaves_registry_untouched(client, fake_sfu) -> None:
    fake_sfu.track_errors[("local", "video-track")] = "Unsupported codec"

    response = _ingest(client, "ingest-track-error", "audio-track", "video-track")

    assert response.status_code == 502
    assert "Unsupported codec" in response.text
    assert _registered("ingest-track-error") == []


def test_ingest_rejects_body_that_is_not_utf8(client, fake_sfu) -> None:
    response = client.post("/ingest/ingest-bad-bytes", content=b"v=0\r\n\xff\xfe\r\n")

    assert response.status_code == 400
    assert response.text == "Request body must be UTF-8 encoded SDP"
    assert fake_sfu.calls == []
    assert _registered("ingest-bad-bytes") == []
