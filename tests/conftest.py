from __future__ import annotations

import json
import os
import re
import sys
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from sfu.client import SessionClient  # noqa: E402
from sfu.realtime import RealtimeEndpointClient  # noqa: E402

SFU_BASE_URL = "https://sfu.test/v1/apps"
SFU_APP_ID = "app-test"
SFU_TOKEN = "sfu-token"
REALTIME_ENDPOINT = "https://realtime.test/v1/realtime?model=test-model&voice=alloy"
REALTIME_KEY = "realtime-key"

USER_OFFER = "v=0\r\no=- 1 2 IN IP4 127.0.0.1\r\nm=audio 9 UDP/TLS/RTP/SAVPF 111\r\na=mid:0\r\n"


def publisher_offer(*track_names: str) -> str:
    lines = ["v=0", "o=- 1 2 IN IP4 127.0.0.1"]
    for mid, name in enumerate(track_names):
        lines += ["m=audio 9 UDP/TLS/RTP/SAVPF 111", f"a=mid:{mid}", f"a=msid:stream-1 {name}"]
    return "\r\n".join(lines) + "\r\n"


_SESSION_PATH = re.compile(r"^/v1/apps/[^/]+/sessions/(?P<rest>.+)$")


class FakeSFU:
    """In-memory SFU control API plus realtime endpoint behind one mock transport."""

    def __init__(self) -> None:
        self.sessions: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.renegotiations: list[tuple[str, dict]] = []
        self.realtime_requests: list[httpx.Request] = []
        # (location, trackName) -> errorDescription reported for that track
        self.track_errors: dict[tuple[str, str], str] = {}
        # dataChannelName -> errorDescription reported for that channel
        self.channel_errors: dict[str, str] = {}
        self.fail_new_session = False
        self.renegotiate_status = 200
        self.realtime_status = 200
        self.realtime_answer = "v=0\r\no=realtime 1 1 IN IP4 0.0.0.0\r\n"
        self.transport = httpx.MockTransport(self._handle)

    def session_client(self) -> SessionClient:
        return SessionClient(SFU_BASE_URL, SFU_APP_ID, SFU_TOKEN, transport=self.transport)

    def realtime_client(self) -> RealtimeEndpointClient:
        return RealtimeEndpointClient(REALTIME_ENDPOINT, REALTIME_KEY, transport=self.transport)

    def tracks_of(self, session_id: str, location: str | None = None) -> list[dict]:
        tracks = self.sessions[session_id]["tracks"]
        return [t for t in tracks if location is None or t["location"] == location]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "realtime.test":
            self.realtime_requests.append(request)
            return httpx.Response(self.realtime_status, text=self.realtime_answer)

        assert request.headers["authorization"] == f"Bearer {SFU_TOKEN}"
        self.calls.append((request.method, request.url.path))
        match = _SESSION_PATH.match(request.url.path)
        assert match, request.url.path
        rest = match.group("rest")

        if rest == "new" and request.method == "POST":
            return self._new_session(request)
        session_id, _, action = rest.partition("/")
        if action == "tracks/new" and request.method == "POST":
            return self._new_tracks(session_id, json.loads(request.content or b"{}"))
        if action == "datachannels/new" and request.method == "POST":
            return self._new_data_channels(session_id, json.loads(request.content))
        if action == "renegotiate" and request.method == "PUT":
            self.renegotiations.append((session_id, json.loads(request.content)))
            return httpx.Response(self.renegotiate_status, json={})
        return httpx.Response(404, json={"errorCode": "not_found"})

    def _new_session(self, request: httpx.Request) -> httpx.Response:
        if self.fail_new_session:
            return httpx.Response(400, json={"errorCode": "invalid_app", "errorDescription": "App disabled"})
        session_id = f"sess-{len(self.sessions) + 1}"
        self.sessions[session_id] = {
            "third_party": request.url.params.get("thirdparty") == "true",
            "tracks": [],
            "data_channels": [],
        }
        return httpx.Response(201, json={"sessionId": session_id})

    def _new_tracks(self, session_id: str, body: dict) -> httpx.Response:
        session = self.sessions[session_id]
        offer = body.get("sessionDescription")
        if body.get("autoDiscover"):
            requested = [
                {"location": "local", "trackName": line.split(" ")[1]}
                for line in offer["sdp"].splitlines()
                if line.startswith("a=msid:")
            ]
        else:
            requested = body.get("tracks", [])

        results = []
        for spec in requested:
            name = spec["trackName"]
            error = self.track_errors.get((spec["location"], name))
            mid = self._resolve_mid(session, spec.get("mid"))
            if mid is None:
                error = f"no track named {spec['mid'][1:]!r} in session"
            if error:
                results.append({"trackName": name, "mid": "", "errorCode": "invalid_track", "errorDescription": error})
                continue
            session["tracks"].append({**spec, "resolvedMid": mid})
            results.append({"trackName": name, "mid": mid})

        payload: dict = {"tracks": results}
        if offer is not None:
            payload["sessionDescription"] = {"type": "answer", "sdp": f"v=0\r\ns=answer {session_id}\r\n"}
        elif requested:
            payload["requiresImmediateRenegotiation"] = True
            payload["sessionDescription"] = {"type": "offer", "sdp": f"v=0\r\ns=offer {session_id}\r\n"}
        return httpx.Response(200, json=payload)

    def _new_data_channels(self, session_id: str, body: dict) -> httpx.Response:
        if session_id not in self.sessions:
            return httpx.Response(404, json={"errorCode": "session_not_found", "errorDescription": "Unknown session"})
        channels = self.sessions[session_id]["data_channels"]
        results = []
        for spec in body["dataChannels"]:
            name = spec["dataChannelName"]
            error = self.channel_errors.get(name)
            if error:
                results.append({"dataChannelName": name, "errorCode": "invalid_data_channel", "errorDescription": error})
                continue
            channels.append({**spec, "id": len(channels) + 1})
            results.append({"location": spec["location"], "dataChannelName": name, "id": len(channels)})
        return httpx.Response(200, json={"dataChannels": results})

    @staticmethod
    def _resolve_mid(session: dict, raw: str | None) -> str | None:
        if raw and raw.startswith("#"):
            for track in session["tracks"]:
                if track["trackName"] == raw[1:]:
                    return track["resolvedMid"]
            return None
        return raw or str(len(session["tracks"]))


@pytest.fixture()
def fake_sfu() -> FakeSFU:
    return FakeSFU()


@pytest.fixture(scope="session")
def app(tmp_path_factory: pytest.TempPathFactory):
    tmp_dir = tmp_path_factory.mktemp("runtime")
    db_path = tmp_dir / "relay_test.db"

    # Must be set before importing modules that create the SQLAlchemy engine.
    os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{db_path.as_posix()}"
    os.environ["DATA_DIR"] = str(tmp_dir)
    os.environ["AUTO_CREATE_DB_SCHEMA"] = "true"
    os.environ["CALLS_APP_ID"] = SFU_APP_ID
    os.environ["CALLS_APP_TOKEN"] = SFU_TOKEN
    os.environ["REALTIME_API_KEY"] = REALTIME_KEY
    os.environ.pop("TURN_KEY_ID", None)
    os.environ.pop("TURN_KEY_API_TOKEN", None)

    import importlib

    # Ensure clean import with the test DB settings.
    for module_name in [
        "config.settings",
        "db.base",
        "db.models",
        "db.repository",
        "signaling.ingest",
        "signaling.play",
        "api.dependencies",
        "api.routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app, fake_sfu: FakeSFU):
    # Route every outbound call to the fake SFU; the registry stays on the test database.
    import api.dependencies as deps

    app.dependency_overrides[deps.get_session_client] = fake_sfu.session_client
    app.dependency_overrides[deps.get_realtime_client] = fake_sfu.realtime_client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
