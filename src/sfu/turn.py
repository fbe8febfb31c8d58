from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ValidationError

from sfu.errors import RemoteError

LOGGER = logging.getLogger(__name__)


class IceServer(BaseModel):
    urls: list[str] | str
    username: str | None = None
    credential: str | None = None


class TurnCredentialClient:
    """Generates short-lived TURN credentials for browser peers."""

    def __init__(
        self,
        api_base: str,
        key_id: str,
        api_token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not key_id or not api_token:
            raise ValueError("TURN key id and API token must be configured.")
        self._url = f"{api_base.rstrip('/')}/turn/keys/{key_id}/credentials/generate-ice-servers"
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport

    async def generate_ice_servers(self, ttl: int = 86400) -> list[IceServer]:
        headers = {
            "Authorization": f"Bearer {self._api_token}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json={"ttl": ttl}, headers=headers)
        except httpx.HTTPError as exc:
            LOGGER.error("TURN credential request failed: %s", exc)
            raise RemoteError(f"TURN credential request failed: {exc}") from exc

        if response.status_code != 201:
            raise RemoteError(
                f"TURN credential request failed with status {response.status_code}: {response.text}"
            )
        try:
            servers = response.json().get("iceServers", [])
            return [IceServer.model_validate(server) for server in servers]
        except (ValueError, AttributeError, ValidationError) as exc:
            raise RemoteError(f"TURN API returned an unexpected body: {exc}") from exc
