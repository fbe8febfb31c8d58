"""Shared FastAPI dependencies.

Clients are built from settings once per process; tests swap them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from config.settings import get_settings
from db.repository import TrackRegistry
from relay.bridge import BridgeOrchestrator
from sfu.client import SessionClient
from sfu.realtime import RealtimeEndpointClient
from sfu.turn import TurnCredentialClient
from signaling.ingest import IngestHandler
from signaling.play import PlayHandler


@lru_cache(maxsize=1)
def _session_client_factory() -> SessionClient:
    settings = get_settings()
    return SessionClient(
        settings.calls_base_url,
        settings.calls_app_id or "",
        settings.calls_app_token or "",
        timeout=settings.http_timeout_seconds,
    )


def get_session_client() -> SessionClient:
    return _session_client_factory()


@lru_cache(maxsize=1)
def _realtime_client_factory() -> RealtimeEndpointClient:
    settings = get_settings()
    return RealtimeEndpointClient(
        settings.realtime_endpoint,
        settings.realtime_api_key or "",
        timeout=settings.http_timeout_seconds,
    )


def get_realtime_client() -> RealtimeEndpointClient:
    return _realtime_client_factory()


def get_turn_client() -> TurnCredentialClient | None:
    settings = get_settings()
    if not settings.turn_key_id or not settings.turn_key_api_token:
        return None
    return TurnCredentialClient(
        settings.turn_api_base,
        settings.turn_key_id,
        settings.turn_key_api_token,
        timeout=settings.http_timeout_seconds,
    )


def get_track_registry() -> TrackRegistry:
    return TrackRegistry()


def get_ingest_handler(
    sessions: SessionClient = Depends(get_session_client),
    registry: TrackRegistry = Depends(get_track_registry),
) -> IngestHandler:
    return IngestHandler(sessions, registry, ice_server_hint=get_settings().ice_server_hint)


def get_play_handler(
    sessions: SessionClient = Depends(get_session_client),
    registry: TrackRegistry = Depends(get_track_registry),
) -> PlayHandler:
    return PlayHandler(sessions, registry, ice_server_hint=get_settings().ice_server_hint)


def get_bridge_orchestrator(
    sessions: SessionClient = Depends(get_session_client),
    realtime: RealtimeEndpointClient = Depends(get_realtime_client),
) -> BridgeOrchestrator:
    settings = get_settings()
    return BridgeOrchestrator(
        sessions,
        realtime,
        user_track=settings.user_track_name,
        remote_track=settings.remote_track_name,
    )
