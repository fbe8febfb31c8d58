"""WHEP-style subscribe handler."""

from __future__ import annotations

import logging

from db.repository import TrackRegistry
from sfu.client import SessionClient
from sfu.errors import NotFoundError, UnsupportedMethodError
from sfu.schemas import SessionDescription, TrackSpec
from signaling.responses import CORS_HEADERS, SignalingResponse, options_response, sdp_created

LOGGER = logging.getLogger(__name__)

WHEP_PROTOCOL_VERSION = "draft-ietf-wish-whep-00"


class PlayHandler:
    def __init__(self, sessions: SessionClient, registry: TrackRegistry, *, ice_server_hint: str) -> None:
        self._sessions = sessions
        self._registry = registry
        self._ice_server_hint = ice_server_hint

    async def handle(
        self,
        method: str,
        live_id: str,
        session_id: str | None = None,
        body: str = "",
    ) -> SignalingResponse:
        method = method.upper()
        if method == "OPTIONS":
            return options_response(self._ice_server_hint)
        if method == "POST":
            return await self.subscribe(live_id)
        if method == "PATCH":
            if not session_id:
                raise NotFoundError("Session id missing from resource path.")
            return await self.answer(session_id, body)
        if method == "DELETE":
            return SignalingResponse(status_code=200, body="OK")
        raise UnsupportedMethodError()

    async def subscribe(self, live_id: str) -> SignalingResponse:
        """Open a subscriber session requesting every track registered for ``live_id``."""

        locators = await self._registry.get(live_id)
        if not locators:
            raise NotFoundError("Live not started yet")

        session = await self._sessions.create_session()
        result = await self._sessions.add_tracks(
            session,
            [TrackSpec.from_locator(locator) for locator in locators],
            answer_expected=True,
        )
        LOGGER.info("Session %s subscribed to live %s (%d tracks)", session.session_id, live_id, len(locators))

        return sdp_created(
            result.session_description.sdp,
            protocol_version=WHEP_PROTOCOL_VERSION,
            session_id=session.session_id,
            location=f"/play/{live_id}/{session.session_id}",
            extra_headers={**CORS_HEADERS, "access-control-expose-headers": "location"},
        )

    async def answer(self, session_id: str, answer_sdp: str) -> SignalingResponse:
        status = await self._sessions.renegotiate(
            self._sessions.attach(session_id),
            SessionDescription(sdp=answer_sdp, type="answer"),
        )
        return SignalingResponse(status_code=status, headers=dict(CORS_HEADERS))
