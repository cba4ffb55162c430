# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Value types for Mattermost API payloads.

Only the fields the channel cache needs are kept.  All types are frozen
snapshots built from server JSON; the cache replaces them wholesale and
never patches them in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ChannelType(Enum):
    """Channel type tag as sent by the server."""

    OPEN = "O"
    PRIVATE = "P"
    DIRECT = "D"
    GROUP = "G"

    @classmethod
    def parse(cls, value: str) -> ChannelType:
        """Return the member for ``value``, defaulting to ``OPEN``."""
        try:
            return cls(value)
        except ValueError:
            return cls.OPEN


@dataclass(frozen=True)
class Channel:
    """A channel snapshot.

    Attributes:
        id: Channel ID.
        name: Raw channel name (URL slug).
        display_name: Human-readable name.  For group channels this is
            the comma separated list of member usernames.
        header: Channel header text.
        team_id: Owning team ID.  Empty for direct and group channels.
        type: Channel type.
    """

    id: str
    name: str = ""
    display_name: str = ""
    header: str = ""
    team_id: str = ""
    type: ChannelType = ChannelType.OPEN

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Channel:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            display_name=data.get("display_name", ""),
            header=data.get("header", ""),
            team_id=data.get("team_id", ""),
            type=ChannelType.parse(data.get("type", "O")),
        )


@dataclass(frozen=True)
class Team:
    """A team and the channels cached for it.

    Attributes:
        id: Team ID.
        name: Team name (URL slug).
        display_name: Human-readable name.
        channels: Channels the user has joined, in server order.
        more_channels: Public channels the user has not joined.
    """

    id: str
    name: str = ""
    display_name: str = ""
    channels: tuple[Channel, ...] = ()
    more_channels: tuple[Channel, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Team:
        """Build a team without channels from server JSON."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            display_name=data.get("display_name", ""),
        )


@dataclass(frozen=True)
class ChannelMember:
    """A user's membership record in a channel.

    Attributes:
        channel_id: Channel ID.
        user_id: User ID.
        last_viewed_at: Last time the user viewed the channel, in
            milliseconds since the epoch.
    """

    channel_id: str
    user_id: str
    last_viewed_at: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChannelMember:
        return cls(
            channel_id=data["channel_id"],
            user_id=data["user_id"],
            last_viewed_at=int(data.get("last_viewed_at", 0)),
        )


@dataclass(frozen=True)
class User:
    """The authenticated user."""

    id: str
    username: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(id=data["id"], username=data.get("username", ""))
