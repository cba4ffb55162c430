# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""In-memory mirror of the user's teams and channels.

The store holds one :class:`~mattersync.api.models.Team` per team the
user belongs to, each with the channels the user has joined and the
public channels they have not.  One team is primary.  Team snapshots are
immutable; a refresh swaps in a new snapshot under the exclusive lock
and lookups read under the shared lock.  The lock is never held across a
remote call.

Name lookups always compare :func:`normalize_name` keys, never raw
channel names.  Remote operations take an optional ``cancel`` event
that aborts their rate-limit waits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import replace

import httpx

from mattersync.api.client import MattermostApi, MattermostApiError
from mattersync.api.models import Channel, ChannelType, Team
from mattersync.channels.names import GROUP_TEAM_ID, normalize_name
from mattersync.channels.ratelimit import RateLimitRetrier, RetryCancelled
from mattersync.channels.rwlock import ReadWriteLock


logger = logging.getLogger(__name__)

_NOT_FOUND = 404


class ChannelStore:
    """Thread-safe channel cache with the lookups the bridge needs.

    Args:
        api: Mattermost API client for the few lookups that go remote.
        user_id: ID of the authenticated user.
        retrier: Retry policy wrapping every remote call.
        primary: The primary team.
        teams: All teams of the user, in display order.  The primary
            team is prepended if it is not among them.
    """

    def __init__(
        self,
        api: MattermostApi,
        user_id: str,
        retrier: RateLimitRetrier,
        primary: Team,
        teams: Sequence[Team] = (),
    ) -> None:
        self._api = api
        self._user_id = user_id
        self._retrier = retrier
        self._lock = ReadWriteLock()
        self._primary_id = primary.id

        self._teams: dict[str, Team] = {}
        if all(t.id != primary.id for t in teams):
            self._teams[primary.id] = primary
        for team in teams:
            self._teams.setdefault(team.id, team)

    @property
    def primary_team_id(self) -> str:
        return self._primary_id

    @property
    def user_id(self) -> str:
        return self._user_id

    # ------------------------------------------------------------------ #
    # Team bookkeeping
    # ------------------------------------------------------------------ #

    def team_ids(self) -> list[str]:
        """Return team IDs in store order, primary first."""
        with self._lock.read():
            others = [tid for tid in self._teams if tid != self._primary_id]
        return [self._primary_id, *others]

    def get_team(self, team_id: str) -> Team | None:
        with self._lock.read():
            return self._teams.get(team_id)

    def add_team(self, team: Team) -> None:
        """Register ``team`` unless a team with its ID is already stored."""
        with self._lock.write():
            if team.id in self._teams:
                return
            self._teams[team.id] = team
        logger.debug("Added team %s (%s)", team.id, team.name)

    # ------------------------------------------------------------------ #
    # Replacement
    # ------------------------------------------------------------------ #

    def replace_team_channels(
        self, team_id: str, channels: Iterable[Channel]
    ) -> None:
        """Replace the joined channels of a team.

        Channels with an ID seen earlier in ``channels`` are dropped.
        """
        joined = _unique_by_id(channels)
        with self._lock.write():
            team = self._teams.get(team_id) or Team(id=team_id)
            self._teams[team_id] = replace(team, channels=joined)
        logger.debug("Team %s: %d joined channels", team_id, len(joined))

    def replace_team_more_channels(
        self, team_id: str, channels: Iterable[Channel]
    ) -> None:
        """Replace the joinable (public, not joined) channels of a team."""
        more = tuple(channels)
        with self._lock.write():
            team = self._teams.get(team_id) or Team(id=team_id)
            self._teams[team_id] = replace(team, more_channels=more)
        logger.debug("Team %s: %d joinable channels", team_id, len(more))

    # ------------------------------------------------------------------ #
    # Local lookups
    # ------------------------------------------------------------------ #

    def all_joined_channels(self) -> list[Channel]:
        """Return joined channels, primary team first, duplicates kept."""
        with self._lock.read():
            channels = list(self._teams[self._primary_id].channels)
            for team in self._teams.values():
                if team.id != self._primary_id:
                    channels.extend(team.channels)
        return channels

    def all_joinable_channels(self) -> list[Channel]:
        """Return every team's joinable channels in store order."""
        with self._lock.read():
            return [c for t in self._teams.values() for c in t.more_channels]

    def find_by_id(self, channel_id: str) -> Channel | None:
        with self._lock.read():
            for _, channel in self._iter_channels():
                if channel.id == channel_id:
                    return channel
        return None

    def find_by_name(
        self,
        name: str,
        team_id: str = "",
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        """Return the ID of the channel whose normalized name is ``name``.

        With ``team_id``, only that team is searched and a miss falls
        back to fetching the channel by name from the server, which
        also finds private channels the cache does not know about.
        Without ``team_id``, every team is searched locally.

        Returns:
            The channel ID, or an empty string if there is none.

        Raises:
            MattermostApiError: If the server lookup fails other than
                with 404.
        """
        with self._lock.read():
            if team_id:
                team = self._teams.get(team_id)
                teams = [team] if team is not None else []
            else:
                teams = list(self._teams.values())
            for team in teams:
                for channel in (*team.channels, *team.more_channels):
                    if normalize_name(channel) == name:
                        return channel.id

        if not team_id:
            return ""

        try:
            channel = self._retrier.invoke(
                "GetChannelByName",
                lambda: self._api.get_channel_by_name(team_id, name),
                cancel=cancel,
            )
        except MattermostApiError as e:
            if e.status_code == _NOT_FOUND:
                logger.debug("Channel %s not found in team %s", name, team_id)
                return ""
            raise
        return channel.id

    def channel_name(self, channel_id: str) -> str:
        """Return the normalized name of a channel, or an empty string."""
        channel = self.find_by_id(channel_id)
        return normalize_name(channel) if channel is not None else ""

    def team_id_for_channel(self, channel_id: str) -> str:
        """Return the ID of the team holding a channel.

        Group channels belong to no team and report :data:`GROUP_TEAM_ID`.
        Unknown channels report an empty string.
        """
        with self._lock.read():
            for team, channel in self._iter_channels():
                if channel.id == channel_id:
                    if channel.type is ChannelType.GROUP:
                        return GROUP_TEAM_ID
                    return team.id
        return ""

    def channel_team_id(self, channel_id: str) -> str:
        """Return the ``team_id`` recorded on the channel itself."""
        channel = self.find_by_id(channel_id)
        return channel.team_id if channel is not None else ""

    def header_for_channel(self, channel_id: str) -> str:
        channel = self.find_by_id(channel_id)
        return channel.header if channel is not None else ""

    def _iter_channels(self) -> Iterator[tuple[Team, Channel]]:
        # Caller must hold the read lock.
        for team in self._teams.values():
            for channel in team.channels:
                yield team, channel
            for channel in team.more_channels:
                yield team, channel

    # ------------------------------------------------------------------ #
    # Remote operations
    # ------------------------------------------------------------------ #

    def join_channel(
        self, channel_id: str, *, cancel: threading.Event | None = None
    ) -> None:
        """Join a channel unless it is already among the primary team's.

        Raises:
            MattermostApiError: If the server rejects the join.
        """
        with self._lock.read():
            primary = self._teams[self._primary_id]
            joined = any(c.id == channel_id for c in primary.channels)
        if joined:
            logger.debug("Not joining %s, already joined", channel_id)
            return

        logger.debug("Joining %s", channel_id)
        self._retrier.invoke(
            "AddChannelMember",
            lambda: self._api.add_channel_member(channel_id, self._user_id),
            cancel=cancel,
        )

    def update_header(
        self,
        channel_id: str,
        header: str,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Set a channel's header on the server, logging any failure.

        The cached channel keeps its old header until the next refresh.
        """
        logger.debug("Updating channel header %r: %r", channel_id, header)
        try:
            self._retrier.invoke(
                "UpdateChannel",
                lambda: self._api.patch_channel(channel_id, header=header),
                cancel=cancel,
            )
        except (MattermostApiError, RetryCancelled, httpx.HTTPError) as e:
            logger.error(
                "Failed to update header of channel %s: %s", channel_id, e
            )

    def last_viewed_at(
        self, channel_id: str, *, cancel: threading.Event | None = None
    ) -> int | None:
        """Return when the user last viewed a channel, in epoch millis.

        Returns:
            The timestamp, or None if the server could not tell us.
        """
        try:
            member = self._retrier.invoke(
                "GetChannelMember",
                lambda: self._api.get_channel_member(
                    channel_id, self._user_id
                ),
                cancel=cancel,
            )
        except (MattermostApiError, RetryCancelled, httpx.HTTPError) as e:
            logger.warning(
                "Failed to fetch last viewed time of %s: %s", channel_id, e
            )
            return None
        return member.last_viewed_at

    def mark_viewed(
        self, channel_id: str, *, cancel: threading.Event | None = None
    ) -> None:
        """Record that the user has viewed a channel.

        Raises:
            MattermostApiError: If the server rejects the update.
            RetryCancelled: If cancelled while throttled.
        """
        logger.debug("Posting last view of %s", channel_id)
        try:
            self._retrier.invoke(
                "ViewChannel",
                lambda: self._api.view_channel(self._user_id, channel_id),
                cancel=cancel,
            )
        except (MattermostApiError, RetryCancelled, httpx.HTTPError) as e:
            logger.error("Channel view update for %s failed: %s", channel_id, e)
            raise


def _unique_by_id(channels: Iterable[Channel]) -> tuple[Channel, ...]:
    seen: set[str] = set()
    unique: list[Channel] = []
    for channel in channels:
        if channel.id in seen:
            continue
        seen.add(channel.id)
        unique.append(channel)
    return tuple(unique)
