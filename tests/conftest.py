# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test packages."""

from collections.abc import Callable, Iterator
from unittest.mock import MagicMock

import pytest

from mattersync.api.client import ApiResponse, MattermostApiError
from mattersync.api.models import Channel, ChannelType, Team
from mattersync.channels.ratelimit import RateLimitRetrier
from mattersync.channels.store import ChannelStore
from mattersync.logging import SecretFilter


@pytest.fixture(autouse=True)
def _clear_secrets() -> Iterator[None]:
    """Keep registered secrets from leaking between tests."""
    yield
    SecretFilter.clear_secrets()


@pytest.fixture
def make_channel() -> Callable[..., Channel]:
    """Factory for Channel snapshots with sensible defaults."""

    def _make(
        channel_id: str,
        name: str = "",
        *,
        display_name: str = "",
        header: str = "",
        team_id: str = "team1",
        type: ChannelType = ChannelType.OPEN,
    ) -> Channel:
        return Channel(
            id=channel_id,
            name=name or f"name-{channel_id}",
            display_name=display_name or f"Display {channel_id}",
            header=header,
            team_id=team_id,
            type=type,
        )

    return _make


@pytest.fixture
def api_error() -> Callable[..., MattermostApiError]:
    """Factory for API errors with a given status and headers."""

    def _make(
        status_code: int, headers: dict[str, str] | None = None
    ) -> MattermostApiError:
        return MattermostApiError(
            f"status {status_code}",
            ApiResponse(status_code=status_code, headers=headers or {}),
        )

    return _make


@pytest.fixture
def sleeps() -> list[float]:
    """Backoff waits recorded by the ``retrier`` fixture."""
    return []


@pytest.fixture
def retrier(sleeps: list[float]) -> RateLimitRetrier:
    """Retrier that records waits instead of sleeping."""
    return RateLimitRetrier(max_backoff=30.0, sleep=sleeps.append)


@pytest.fixture
def api() -> MagicMock:
    """Mocked MattermostApi with empty listings by default."""
    api = MagicMock()
    api.get_channels_for_team_for_user.return_value = []
    api.get_public_channels_for_team.return_value = []
    api.get_teams_for_user.return_value = []
    return api


@pytest.fixture
def store(api: MagicMock, retrier: RateLimitRetrier) -> ChannelStore:
    """Store for user ``user1`` with primary ``team1`` and ``team2``."""
    return ChannelStore(
        api,
        "user1",
        retrier,
        Team(id="team1", name="primary"),
        [Team(id="team1", name="primary"), Team(id="team2", name="other")],
    )
