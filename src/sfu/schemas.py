"""Value types exchanged with the SFU control API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

SdpType = Literal["offer", "answer"]


class SessionDescription(BaseModel):
    model_config = ConfigDict(frozen=True)

    sdp: str
    type: SdpType


@dataclass(frozen=True)
class Session:
    """Handle on one SFU-managed peer connection.

    Credentials are not part of the value; they belong to the client that
    issues calls for it.
    """

    session_id: str
    endpoint: str
    third_party: bool = False


@dataclass(frozen=True)
class ExplicitMid:
    """A literal transceiver mid known to the caller."""

    value: str

    def wire(self) -> str:
        return self.value


@dataclass(frozen=True)
class ByTrackName:
    """Ask the SFU to resolve the mid bound to ``track_name`` in the same session."""

    track_name: str

    def wire(self) -> str:
        return f"#{self.track_name}"


Mid = Union[ExplicitMid, ByTrackName]


@dataclass(frozen=True)
class TrackSpec:
    location: Literal["local", "remote"]
    track_name: str
    session_id: str | None = None
    kind: str | None = None
    mid: Mid | None = None
    bidirectional: bool = False

    def __post_init__(self) -> None:
        if self.location == "remote" and not self.session_id:
            raise ValueError(f"Remote track {self.track_name!r} requires a session id.")
        if self.location == "local" and self.session_id:
            raise ValueError(f"Local track {self.track_name!r} must not carry a session id.")

    @classmethod
    def from_locator(cls, locator: TrackLocator) -> TrackSpec:
        return cls(location="remote", track_name=locator.track_name, session_id=locator.session_id)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"location": self.location, "trackName": self.track_name}
        if self.session_id:
            payload["sessionId"] = self.session_id
        if self.kind:
            payload["kind"] = self.kind
        if self.mid is not None:
            payload["mid"] = self.mid.wire()
        if self.bidirectional:
            payload["bidirectionalMediaStream"] = True
        return payload


@dataclass(frozen=True)
class DataChannelSpec:
    """A data channel to publish (local) or to pull from another session (remote)."""

    location: Literal["local", "remote"]
    name: str
    session_id: str | None = None

    def __post_init__(self) -> None:
        if self.location == "remote" and not self.session_id:
            raise ValueError(f"Remote data channel {self.name!r} requires a session id.")
        if self.location == "local" and self.session_id:
            raise ValueError(f"Local data channel {self.name!r} must not carry a session id.")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"location": self.location, "dataChannelName": self.name}
        if self.session_id:
            payload["sessionId"] = self.session_id
        return payload


class TrackLocator(BaseModel):
    """Persisted pointer to a published track, used to subscribe later."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    location: Literal["remote"] = "remote"
    session_id: str = Field(alias="sessionId")
    track_name: str = Field(alias="trackName")


class NewTrackResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    track_name: str = Field(default="", alias="trackName")
    mid: str | None = None
    error_code: str | None = Field(default=None, alias="errorCode")
    error_description: str | None = Field(default=None, alias="errorDescription")

    @property
    def failed(self) -> bool:
        return bool(self.error_code or self.error_description)


class NewTracksResult(BaseModel):
    """Outcome of a tracks/new call.

    Errors can be reported for the whole call or for individual tracks; a
    result is only usable once both levels have been checked.
    """

    model_config = ConfigDict(populate_by_name=True)

    tracks: list[NewTrackResult] = Field(default_factory=list)
    session_description: SessionDescription | None = Field(default=None, alias="sessionDescription")
    error_code: str | None = Field(default=None, alias="errorCode")
    error_description: str | None = Field(default=None, alias="errorDescription")

    @property
    def failed_tracks(self) -> list[NewTrackResult]:
        return [track for track in self.tracks if track.failed]


class NewDataChannelResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", alias="dataChannelName")
    id: int | None = None
    error_code: str | None = Field(default=None, alias="errorCode")
    error_description: str | None = Field(default=None, alias="errorDescription")

    @property
    def failed(self) -> bool:
        return bool(self.error_code or self.error_description) or self.id is None


class NewDataChannelsResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_channels: list[NewDataChannelResult] = Field(default_factory=list, alias="dataChannels")
    error_code: str | None = Field(default=None, alias="errorCode")
    error_description: str | None = Field(default=None, alias="errorDescription")
