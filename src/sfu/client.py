"""Client for the SFU session control API."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from sfu.errors import MissingAnswerError, RemoteError
from sfu.schemas import (
    DataChannelSpec,
    NewDataChannelsResult,
    NewTracksResult,
    Session,
    SessionDescription,
    TrackSpec,
)

LOGGER = logging.getLogger(__name__)


def check_new_tracks(result: NewTracksResult, *, answer_expected: bool = False) -> None:
    """Raise if a tracks/new result cannot be trusted.

    The call-level error is checked first, then every track, then the
    presence of a session description when one is required.
    """

    if result.error_code:
        raise RemoteError(result.error_description or result.error_code)
    failed = result.failed_tracks
    if failed:
        details = ", ".join(
            f"{track.track_name!r}: {track.error_description or track.error_code}" for track in failed
        )
        raise RemoteError(f"SFU rejected tracks {details}")
    if answer_expected and result.session_description is None:
        raise MissingAnswerError()


class SessionClient:
    """Stateless client issuing calls on behalf of immutable Session values."""

    def __init__(
        self,
        base_url: str,
        app_id: str,
        app_token: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not app_id or not app_token:
            raise ValueError("SFU app id and token must be configured.")
        self._endpoint = f"{base_url.rstrip('/')}/{app_id}"
        self._token = app_token
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                return await client.request(method, url, params=params, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            LOGGER.error("SFU request %s %s failed: %s", method, url, exc)
            raise RemoteError(f"SFU request failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError(f"SFU returned a non-JSON body (status {response.status_code}).") from exc
        if not isinstance(data, dict):
            raise RemoteError(f"SFU returned an unexpected body (status {response.status_code}).")
        return data

    def attach(self, session_id: str) -> Session:
        return Session(session_id=session_id, endpoint=self._endpoint)

    async def create_session(self, *, third_party: bool = False) -> Session:
        params = {"thirdparty": "true"} if third_party else None
        response = await self._send("POST", f"{self._endpoint}/sessions/new", params=params)
        data = self._json(response)
        if data.get("errorCode"):
            raise RemoteError(data.get("errorDescription") or data["errorCode"])
        session_id = data.get("sessionId")
        if not session_id:
            raise RemoteError("SFU returned no session id.")

        LOGGER.info("Created SFU session %s (third_party=%s)", session_id, third_party)
        return Session(session_id=str(session_id), endpoint=self._endpoint, third_party=third_party)

    async def add_tracks(
        self,
        session: Session,
        specs: Sequence[TrackSpec],
        offer: SessionDescription | None = None,
        *,
        auto_discover: bool = False,
        answer_expected: bool = False,
    ) -> NewTracksResult:
        body: dict[str, Any] = {}
        if offer is not None:
            body["sessionDescription"] = offer.model_dump()
        if specs:
            body["tracks"] = [spec.to_payload() for spec in specs]
        if auto_discover:
            body["autoDiscover"] = True

        response = await self._send(
            "POST",
            f"{session.endpoint}/sessions/{session.session_id}/tracks/new",
            json=body,
        )
        try:
            result = NewTracksResult.model_validate(self._json(response))
        except ValidationError as exc:
            raise RemoteError(f"SFU returned a malformed tracks result: {exc}") from exc
        if response.is_error and not result.error_code:
            raise RemoteError(f"SFU tracks/new failed with status {response.status_code}.")

        check_new_tracks(result, answer_expected=answer_expected)
        return result

    async def add_data_channels(self, session: Session, specs: Sequence[DataChannelSpec]) -> list[int]:
        """Open data channels on the session and return their negotiated ids, in request order."""

        response = await self._send(
            "POST",
            f"{session.endpoint}/sessions/{session.session_id}/datachannels/new",
            json={"dataChannels": [spec.to_payload() for spec in specs]},
        )
        try:
            result = NewDataChannelsResult.model_validate(self._json(response))
        except ValidationError as exc:
            raise RemoteError(f"SFU returned a malformed data channels result: {exc}") from exc

        if result.error_code:
            raise RemoteError(result.error_description or result.error_code)
        if response.is_error:
            raise RemoteError(f"SFU datachannels/new failed with status {response.status_code}.")
        failed = [channel for channel in result.data_channels if channel.failed]
        if failed:
            details = ", ".join(
                f"{channel.name!r}: {channel.error_description or channel.error_code or 'no id'}"
                for channel in failed
            )
            raise RemoteError(f"SFU rejected data channels {details}")
        if len(result.data_channels) != len(specs):
            raise RemoteError(
                f"SFU returned {len(result.data_channels)} data channel(s) for {len(specs)} requested."
            )

        LOGGER.info("Opened %d data channel(s) on session %s", len(specs), session.session_id)
        return [channel.id for channel in result.data_channels]

    async def renegotiate(self, session: Session, answer: SessionDescription) -> int:
        """Complete a pending offer/answer exchange; returns the SFU status code."""

        response = await self._send(
            "PUT",
            f"{session.endpoint}/sessions/{session.session_id}/renegotiate",
            json={"sessionDescription": answer.model_dump()},
        )
        if response.is_error:
            LOGGER.warning(
                "Renegotiation of session %s returned %s", session.session_id, response.status_code
            )
        return response.status_code
