"""WHIP-style publish handler."""

from __future__ import annotations

import logging

from db.repository import TrackRegistry
from sfu.client import SessionClient
from sfu.errors import UnsupportedMethodError
from sfu.schemas import SessionDescription, TrackLocator
from signaling.responses import SignalingResponse, options_response, sdp_created

LOGGER = logging.getLogger(__name__)

WHIP_PROTOCOL_VERSION = "draft-ietf-wish-whip-06"


class IngestHandler:
    def __init__(self, sessions: SessionClient, registry: TrackRegistry, *, ice_server_hint: str) -> None:
        self._sessions = sessions
        self._registry = registry
        self._ice_server_hint = ice_server_hint

    async def handle(self, method: str, live_id: str, body: str = "") -> SignalingResponse:
        method = method.upper()
        if method == "OPTIONS":
            return options_response(self._ice_server_hint)
        if method == "POST":
            return await self.publish(live_id, body)
        if method == "DELETE":
            return await self.unpublish(live_id)
        raise UnsupportedMethodError()

    async def publish(self, live_id: str, offer_sdp: str) -> SignalingResponse:
        """Negotiate the publisher's offer and register its tracks under ``live_id``."""

        session = await self._sessions.create_session()
        # The SFU discovers the published tracks from the offer itself.
        result = await self._sessions.add_tracks(
            session,
            [],
            offer=SessionDescription(sdp=offer_sdp, type="offer"),
            auto_discover=True,
            answer_expected=True,
        )
        locators = [
            TrackLocator(session_id=session.session_id, track_name=track.track_name)
            for track in result.tracks
        ]
        await self._registry.put(live_id, locators)
        LOGGER.info("Live %s published by session %s", live_id, session.session_id)

        return sdp_created(
            result.session_description.sdp,
            protocol_version=WHIP_PROTOCOL_VERSION,
            session_id=session.session_id,
            location=f"/ingest/{live_id}/{session.session_id}",
        )

    async def unpublish(self, live_id: str) -> SignalingResponse:
        # TODO: close the publisher's SFU session as well; only the registry entry is removed today.
        await self._registry.delete(live_id)
        return SignalingResponse(status_code=200, body="OK")
