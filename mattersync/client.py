# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Session facade used by the bridge layer.

:class:`MatterClient` owns one API connection, one retry policy and one
channel store for the lifetime of a session.  Call :meth:`connect` once
to resolve the user and teams and to fill the store; after that the
lookup methods read the cache and the ``update_*`` methods refresh it.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence

from mattersync.api.client import MattermostApi
from mattersync.api.models import Channel, Team, User
from mattersync.channels.ratelimit import RateLimitRetrier
from mattersync.channels.store import ChannelStore
from mattersync.channels.sync import SyncOrchestrator
from mattersync.config import ClientConfig, ConfigError


logger = logging.getLogger(__name__)


class MatterClient:
    """Channel membership cache for one Mattermost session.

    Args:
        config: Client configuration.
        api: API client to use instead of building one from ``config``.
            The caller keeps ownership of an injected client.
        retrier: Retry policy to use instead of building one from
            ``config``.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        api: MattermostApi | None = None,
        retrier: RateLimitRetrier | None = None,
    ) -> None:
        self._config = config
        self._owns_api = api is None
        self._api = api or MattermostApi(
            config.server_url,
            config.token,
            timeout=config.request_timeout,
        )
        self._retrier = retrier or RateLimitRetrier(
            max_backoff=config.max_backoff,
            default_backoff=config.default_backoff,
        )
        self._user: User | None = None
        self._store: ChannelStore | None = None
        self._sync: SyncOrchestrator | None = None

    def __enter__(self) -> MatterClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def user(self) -> User:
        if self._user is None:
            raise RuntimeError("MatterClient is not connected")
        return self._user

    @property
    def store(self) -> ChannelStore:
        if self._store is None:
            raise RuntimeError("MatterClient is not connected")
        return self._store

    @property
    def sync(self) -> SyncOrchestrator:
        if self._sync is None:
            raise RuntimeError("MatterClient is not connected")
        return self._sync

    def connect(self) -> None:
        """Resolve the user and teams, then load every team's channels.

        Raises:
            ConfigError: If the user is not a member of the configured
                primary team.
            MattermostApiError: On any non-throttle API error.
        """
        user = self._retrier.invoke("GetMe", self._api.get_me)
        teams = self._retrier.invoke(
            "GetTeamsForUser", lambda: self._api.get_teams_for_user(user.id)
        )
        primary = _select_team(teams, self._config.team)
        logger.info(
            "Connected as %s, primary team %s (%s), %d teams",
            user.username,
            primary.name,
            primary.id,
            len(teams),
        )

        self._user = user
        self._store = ChannelStore(
            self._api, user.id, self._retrier, primary, teams
        )
        self._sync = SyncOrchestrator(
            self._api,
            self._store,
            self._retrier,
            page_size=self._config.page_size,
        )
        self._sync.refresh_all()

    def cancel(self) -> None:
        """Abort the operations of this session that are in progress.

        Operations started afterwards run normally.
        """
        self._retrier.cancel_pending()

    def close(self) -> None:
        self.cancel()
        if self._owns_api:
            self._api.close()

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_channels(self) -> list[Channel]:
        """Return all channels we are a member of, primary team first."""
        return self.store.all_joined_channels()

    def get_more_channels(self) -> list[Channel]:
        """Return public channels we are not a member of."""
        return self.store.all_joinable_channels()

    def get_channel_id(self, name: str, team_id: str = "") -> str:
        return self.store.find_by_name(name, team_id)

    def get_channel_name(self, channel_id: str) -> str:
        return self.store.channel_name(channel_id)

    def get_channel_team_id(self, channel_id: str) -> str:
        return self.store.channel_team_id(channel_id)

    def get_channel_header(self, channel_id: str) -> str:
        return self.store.header_for_channel(channel_id)

    def get_team_from_channel(self, channel_id: str) -> str:
        """Return the team of a channel; ``"G"`` for group channels."""
        return self.store.team_id_for_channel(channel_id)

    def get_last_viewed_at(self, channel_id: str) -> int:
        """Return when we last viewed a channel, in epoch millis.

        When the server cannot be asked the current time is returned,
        which is only an approximation.
        """
        last_viewed = self.store.last_viewed_at(channel_id)
        if last_viewed is None:
            return int(time.time() * 1000)
        return last_viewed

    # ------------------------------------------------------------------ #
    # Updates
    # ------------------------------------------------------------------ #

    def join_channel(self, channel_id: str) -> None:
        self.store.join_channel(channel_id)

    def update_channels(self, *, cancel: threading.Event | None = None) -> None:
        """Refresh the channel lists of every team."""
        self.sync.refresh_all(cancel=cancel)

    def update_channels_team(
        self, team_id: str, *, cancel: threading.Event | None = None
    ) -> None:
        self.sync.refresh_team(team_id, cancel=cancel)

    def update_teams(self, *, cancel: threading.Event | None = None) -> None:
        """Pick up teams joined since :meth:`connect`."""
        self.sync.load_teams(cancel=cancel)

    def update_channel_header(self, channel_id: str, header: str) -> None:
        self.store.update_header(channel_id, header)

    def update_last_viewed(self, channel_id: str) -> None:
        self.store.mark_viewed(channel_id)


def _select_team(teams: Sequence[Team], wanted: str) -> Team:
    """Find the team whose ID or name is ``wanted``."""
    for team in teams:
        if wanted in (team.id, team.name):
            return team
    raise ConfigError(f"User is not a member of team '{wanted}'")
