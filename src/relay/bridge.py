"""Bridge between an end-user SFU session and a third-party realtime peer.

Two sessions are negotiated independently:

* session A connects the end user to the SFU and publishes the user's track;
* session B connects the SFU to the realtime endpoint and publishes the
  endpoint's generated track.

The caller receives session A's answer as soon as both negotiations are
complete. Cross-wiring the tracks (each session pulling the other's track
into its existing sendrecv transceiver) happens afterwards in
``BridgeOrchestrator.exchange``, so the caller's connection time does not
include it.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from sfu.client import SessionClient
from sfu.errors import RemoteError, SignalingError
from sfu.realtime import RealtimeEndpointClient
from sfu.schemas import ByTrackName, ExplicitMid, Session, SessionDescription, TrackSpec

LOGGER = logging.getLogger(__name__)


class BridgeState(str, Enum):
    INIT_A = "init_a"
    INIT_B = "init_b"
    NEGOTIATE_THIRD_PARTY = "negotiate_third_party"
    RESPOND_TO_CALLER = "respond_to_caller"
    ASYNC_EXCHANGE = "async_exchange"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Bridge:
    """Progress of one bridge; also the handle the exchange step works on."""

    bridge_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: BridgeState = BridgeState.INIT_A
    session_a: Session | None = None
    session_b: Session | None = None
    answer: SessionDescription | None = None
    error: str | None = None

    def advance(self, state: BridgeState) -> None:
        LOGGER.info("Bridge %s: %s -> %s", self.bridge_id, self.state.value, state.value)
        self.state = state

    def fail(self, error: str) -> None:
        LOGGER.error("Bridge %s failed during %s: %s", self.bridge_id, self.state.value, error)
        self.error = error
        self.state = BridgeState.FAILED


class BridgeOrchestrator:
    def __init__(
        self,
        sessions: SessionClient,
        realtime: RealtimeEndpointClient,
        *,
        user_track: str = "user-mic",
        remote_track: str = "ai-generated-voice",
    ) -> None:
        self._sessions = sessions
        self._realtime = realtime
        self._user_track = user_track
        self._remote_track = remote_track

    async def connect(self, offer_sdp: str, inbound_params: Iterable[tuple[str, str]] = ()) -> Bridge:
        """Negotiate both sessions and return the bridge holding session A's answer.

        Any error raised here happens before the caller got a response and is
        propagated after marking the bridge failed.
        """

        bridge = Bridge()
        try:
            bridge.session_a = await self._sessions.create_session()
            result_a = await self._sessions.add_tracks(
                bridge.session_a,
                [
                    TrackSpec(
                        location="local",
                        track_name=self._user_track,
                        kind="audio",
                        mid=ExplicitMid("0"),
                        bidirectional=True,
                    )
                ],
                offer=SessionDescription(sdp=offer_sdp, type="offer"),
                answer_expected=True,
            )

            bridge.advance(BridgeState.INIT_B)
            bridge.session_b = await self._sessions.create_session(third_party=True)
            # No offer: the SFU generates one for the realtime endpoint.
            result_b = await self._sessions.add_tracks(
                bridge.session_b,
                [
                    TrackSpec(
                        location="local",
                        track_name=self._remote_track,
                        kind="audio",
                        bidirectional=True,
                    )
                ],
                answer_expected=True,
            )

            bridge.advance(BridgeState.NEGOTIATE_THIRD_PARTY)
            remote_answer = await self._realtime.request_answer(result_b.session_description, inbound_params)
            status = await self._sessions.renegotiate(bridge.session_b, remote_answer)
            if status >= 400:
                raise RemoteError(f"Renegotiation of session B failed with status {status}.")
        except SignalingError as exc:
            bridge.fail(exc.detail)
            raise

        bridge.answer = result_a.session_description
        bridge.advance(BridgeState.RESPOND_TO_CALLER)
        return bridge

    async def exchange(self, bridge: Bridge) -> None:
        """Pull each session's track into the other session's transceiver.

        Runs after the caller has its answer, so failures cannot be reported
        back; they are logged and leave the bridge failed. Never raises.
        """

        if bridge.state is not BridgeState.RESPOND_TO_CALLER:
            LOGGER.warning("Bridge %s not ready for exchange (state=%s)", bridge.bridge_id, bridge.state.value)
            return

        bridge.advance(BridgeState.ASYNC_EXCHANGE)
        session_a, session_b = bridge.session_a, bridge.session_b
        # A receives B's track on the transceiver bound to the user track, and vice versa.
        pull_into_a = self._sessions.add_tracks(
            session_a,
            [
                TrackSpec(
                    location="remote",
                    session_id=session_b.session_id,
                    track_name=self._remote_track,
                    mid=ByTrackName(self._user_track),
                )
            ],
        )
        pull_into_b = self._sessions.add_tracks(
            session_b,
            [
                TrackSpec(
                    location="remote",
                    session_id=session_a.session_id,
                    track_name=self._user_track,
                    mid=ByTrackName(self._remote_track),
                )
            ],
        )
        results = await asyncio.gather(pull_into_a, pull_into_b, return_exceptions=True)

        errors = []
        for label, outcome in zip(("A", "B"), results):
            if isinstance(outcome, SignalingError):
                errors.append(f"session {label}: {outcome.detail}")
            elif isinstance(outcome, BaseException):
                LOGGER.error("Bridge %s exchange into session %s crashed", bridge.bridge_id, label, exc_info=outcome)
                errors.append(f"session {label}: {outcome!r}")
            else:
                LOGGER.info("Bridge %s exchange into session %s ready", bridge.bridge_id, label)

        if errors:
            bridge.fail("; ".join(errors))
            return
        bridge.advance(BridgeState.DONE)
