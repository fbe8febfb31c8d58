"""FastAPI routes exposing the WHIP/WHEP signaling surface and the realtime bridge."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response

from api.dependencies import (
    get_bridge_orchestrator,
    get_ingest_handler,
    get_play_handler,
    get_turn_client,
)
from api.schemas import IceServersResponse
from config.settings import get_settings
from relay.bridge import BridgeOrchestrator
from sfu.errors import InvalidRequestError, NotFoundError
from sfu.turn import TurnCredentialClient
from signaling.ingest import IngestHandler
from signaling.play import PlayHandler
from signaling.responses import CORS_HEADERS, SDP_CONTENT_TYPE, SignalingResponse, options_response

# Every method reaches the handlers, which reject the ones they do not support.
SIGNALING_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter()


def _to_response(result: SignalingResponse) -> Response:
    return Response(content=result.body, status_code=result.status_code, headers=result.headers)


async def _read_text(request: Request) -> str:
    try:
        return (await request.body()).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidRequestError("Request body must be UTF-8 encoded SDP") from exc


@router.api_route("/ingest/{live_id}", methods=SIGNALING_METHODS, tags=["whip"])
@router.api_route("/ingest/{live_id}/{session_id}", methods=SIGNALING_METHODS, tags=["whip"])
async def ingest(
    live_id: str,
    request: Request,
    handler: IngestHandler = Depends(get_ingest_handler),
) -> Response:
    result = await handler.handle(request.method, live_id, await _read_text(request))
    return _to_response(result)


@router.api_route("/play/{live_id}", methods=SIGNALING_METHODS, tags=["whep"])
@router.api_route("/play/{live_id}/{session_id}", methods=SIGNALING_METHODS, tags=["whep"])
async def play(
    live_id: str,
    request: Request,
    session_id: str | None = None,
    handler: PlayHandler = Depends(get_play_handler),
) -> Response:
    result = await handler.handle(request.method, live_id, session_id, await _read_text(request))
    return _to_response(result)


@router.post("/endpoint", tags=["bridge"])
@router.post("/{prefix:path}/endpoint", tags=["bridge"])
async def bridge_endpoint(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: BridgeOrchestrator = Depends(get_bridge_orchestrator),
) -> Response:
    """Connect the caller to the realtime endpoint through the SFU.

    The answer for the caller's session goes out first. The track exchange is
    attached to the response as a background task: Starlette awaits it after
    the response body is sent, inside the same request cycle.
    """

    bridge = await orchestrator.connect(await _read_text(request), request.query_params.multi_items())
    background_tasks.add_task(orchestrator.exchange, bridge)
    return Response(
        content=bridge.answer.sdp,
        status_code=200,
        media_type=SDP_CONTENT_TYPE,
        headers=CORS_HEADERS,
    )


@router.get(
    "/ice-servers",
    response_model=IceServersResponse,
    response_model_exclude_none=True,
    tags=["ice"],
)
async def ice_servers(
    turn_client: TurnCredentialClient | None = Depends(get_turn_client),
) -> IceServersResponse:
    if turn_client is None:
        raise HTTPException(status_code=404, detail="TURN credentials not configured")

    servers = await turn_client.generate_ice_servers(get_settings().turn_credential_ttl)
    return IceServersResponse(ice_servers=servers)


@router.api_route("/endpoint", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], tags=["bridge"])
@router.api_route("/{prefix:path}/endpoint", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], tags=["bridge"])
async def bridge_other_methods() -> Response:
    raise NotFoundError()


# Registered last: any path answers OPTIONS with the capability set.
@router.options("/{path:path}", tags=["signaling"])
async def capabilities(path: str) -> Response:
    return _to_response(options_response(get_settings().ice_server_hint))
