# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Refreshes the channel store from the server.

Refreshes are caller-triggered and run on the calling thread, one team
at a time.  All network calls for a team complete before the store's
exclusive lock is taken for the assignment.  A fatal error aborts the
refresh and propagates; teams refreshed before it keep their new data.
"""

from __future__ import annotations

import logging
import threading
from functools import partial

from mattersync.api.client import MattermostApi
from mattersync.api.models import Channel
from mattersync.channels.ratelimit import RateLimitRetrier
from mattersync.channels.store import ChannelStore
from mattersync.config import MAX_PAGE_SIZE


logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Coordinates full and per-team channel refreshes.

    Args:
        api: Mattermost API client.
        store: Store receiving the fetched channel lists.
        retrier: Retry policy wrapping every remote call.
        page_size: Page size for public channel listings.
    """

    def __init__(
        self,
        api: MattermostApi,
        store: ChannelStore,
        retrier: RateLimitRetrier,
        *,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._api = api
        self._store = store
        self._retrier = retrier
        self._page_size = page_size

    def load_teams(self, *, cancel: threading.Event | None = None) -> int:
        """Register every team the user belongs to with the store.

        Returns:
            Number of teams reported by the server.
        """
        user_id = self._store.user_id
        teams = self._retrier.invoke(
            "GetTeamsForUser",
            lambda: self._api.get_teams_for_user(user_id),
            cancel=cancel,
        )
        for team in teams:
            self._store.add_team(team)
        logger.info("User %s belongs to %d teams", user_id, len(teams))
        return len(teams)

    def refresh_team(
        self, team_id: str, *, cancel: threading.Event | None = None
    ) -> None:
        """Replace a team's joined and joinable channels with fresh lists.

        The joined list is stored as soon as it is fetched; the joinable
        list is stored once every page has been fetched.

        Args:
            team_id: Team to refresh.
            cancel: Event that aborts the refresh while it is throttled;
                defaults to the retrier's shared event.

        Raises:
            MattermostApiError: On the first non-throttle API error.
            RetryCancelled: If cancelled while throttled.
        """
        user_id = self._store.user_id
        joined = self._retrier.invoke(
            "GetChannelsForTeamForUser",
            lambda: self._api.get_channels_for_team_for_user(team_id, user_id),
            cancel=cancel,
        )
        self._store.replace_team_channels(team_id, joined)

        more = self._fetch_public_channels(team_id, cancel)
        self._store.replace_team_more_channels(team_id, more)

        logger.info(
            "Refreshed team %s: %d joined, %d joinable channels",
            team_id,
            len(joined),
            len(more),
        )

    def refresh_all(self, *, cancel: threading.Event | None = None) -> None:
        """Refresh the primary team, then every other team.

        Raises:
            MattermostApiError: From the first team whose refresh fails.
            RetryCancelled: If cancelled while throttled.
        """
        primary_id = self._store.primary_team_id
        self.refresh_team(primary_id, cancel=cancel)

        for team_id in self._store.team_ids():
            if team_id == primary_id:
                continue
            self.refresh_team(team_id, cancel=cancel)

    def _fetch_public_channels(
        self, team_id: str, cancel: threading.Event | None
    ) -> list[Channel]:
        """Fetch public channel pages until the server returns an empty one."""
        channels: list[Channel] = []
        page = 0
        while True:
            batch = self._retrier.invoke(
                "GetPublicChannelsForTeam",
                partial(
                    self._api.get_public_channels_for_team,
                    team_id,
                    page,
                    self._page_size,
                ),
                cancel=cancel,
            )
            if not batch:
                break
            channels.extend(batch)
            page += 1
        logger.debug(
            "Team %s: fetched %d public channels in %d page(s)",
            team_id,
            len(channels),
            page,
        )
        return channels
