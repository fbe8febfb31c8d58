"""Transport-neutral responses produced by the signaling handlers."""

from __future__ import annotations

from dataclasses import dataclass, field

SDP_CONTENT_TYPE = "application/sdp"
CORS_HEADERS = {"access-control-allow-origin": "*"}


@dataclass(frozen=True)
class SignalingResponse:
    status_code: int
    body: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


def options_response(ice_server_hint: str) -> SignalingResponse:
    return SignalingResponse(
        status_code=204,
        headers={
            "accept-post": SDP_CONTENT_TYPE,
            "access-control-allow-credentials": "true",
            "access-control-allow-headers": "content-type,authorization,if-match",
            "access-control-allow-methods": "PATCH,POST,PUT,DELETE,OPTIONS",
            "access-control-allow-origin": "*",
            "access-control-expose-headers": "x-thunderclap,location,link,accept-post,accept-patch,etag",
            "link": f'<{ice_server_hint}>; rel="ice-server"',
        },
    )


def sdp_created(
    sdp: str,
    *,
    protocol_version: str,
    session_id: str,
    location: str,
    extra_headers: dict[str, str] | None = None,
) -> SignalingResponse:
    headers = {
        **(extra_headers or {}),
        "content-type": SDP_CONTENT_TYPE,
        "protocol-version": protocol_version,
        "etag": f'"{session_id}"',
        "location": location,
    }
    return SignalingResponse(status_code=201, body=sdp, headers=headers)
