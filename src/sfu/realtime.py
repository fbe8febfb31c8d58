"""Client for the third-party realtime media endpoint.

The endpoint is a plain WebRTC peer: it takes a raw SDP offer over HTTP and
replies with a raw SDP answer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

from sfu.errors import MissingAnswerError, RemoteError
from sfu.schemas import SessionDescription

LOGGER = logging.getLogger(__name__)


def merge_query(endpoint: str, inbound: Iterable[tuple[str, str]] = ()) -> httpx.URL:
    """Apply inbound query parameters on top of the endpoint's own.

    Parameters configured on the endpoint act as defaults; a parameter with
    the same name on the inbound request replaces them.
    """

    url = httpx.URL(endpoint)
    overrides = list(inbound)
    if not overrides:
        return url
    return url.copy_merge_params(overrides)


class RealtimeEndpointClient:
    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Realtime endpoint API key must be configured.")
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def request_answer(
        self,
        offer: SessionDescription,
        inbound_params: Iterable[tuple[str, str]] = (),
    ) -> SessionDescription:
        url = merge_query(self._endpoint, inbound_params)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/sdp",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, content=offer.sdp, headers=headers)
        except httpx.HTTPError as exc:
            LOGGER.error("Realtime endpoint request failed: %s", exc)
            raise RemoteError(f"Realtime endpoint request failed: {exc}") from exc

        if response.is_error:
            LOGGER.error("Realtime endpoint returned %s: %s", response.status_code, response.text)
            raise RemoteError(f"Realtime endpoint returned status {response.status_code}.")
        if not response.text.strip():
            raise MissingAnswerError("Realtime endpoint returned an empty answer.")
        return SessionDescription(sdp=response.text, type="answer")
