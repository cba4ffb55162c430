# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Minimal Mattermost REST API v4 client.

Wraps an ``httpx.Client`` and exposes the handful of endpoints the
channel cache uses.  Every method either returns the decoded payload or
raises :class:`MattermostApiError`, which carries the status code and
headers of the failed response so that callers can recognise throttling.
Transport failures (connection refused, timeouts) surface as
``httpx.HTTPError`` unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from mattersync.api.models import Channel, ChannelMember, Team, User


logger = logging.getLogger(__name__)

#: HTTP status the server uses for rate limiting.
RATE_LIMITED_STATUS = 429


@dataclass(frozen=True)
class ApiResponse:
    """Status and headers of an API response.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers with lower-cased names.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> ApiResponse:
        return cls(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == RATE_LIMITED_STATUS

    @property
    def retry_after(self) -> float | None:
        """Seconds the server asks us to wait, or None if not given.

        ``Retry-After`` is preferred; Mattermost also reports the time
        until the quota resets in ``X-RateLimit-Reset``.
        """
        for name in ("retry-after", "x-ratelimit-reset"):
            raw = self.headers.get(name)
            if raw is None:
                continue
            try:
                seconds = float(raw.strip())
            except ValueError:
                continue
            if seconds >= 0:
                return seconds
        return None


class MattermostApiError(Exception):
    """A non-2xx response from the server.

    Attributes:
        response: Status and headers of the failed response.
    """

    def __init__(self, message: str, response: ApiResponse) -> None:
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class MattermostApi:
    """Blocking Mattermost API client.

    Args:
        server_url: Server base URL, e.g. ``https://chat.example.com``.
        token: Bearer token sent with every request.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport, used by tests.
    """

    def __init__(
        self,
        server_url: str,
        token: str,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=f"{server_url.rstrip('/')}/api/v4",
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> MattermostApi:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            MattermostApiError: On a non-2xx response.
            httpx.HTTPError: On transport failure.
        """
        response = self._http.request(method, path, **kwargs)
        if not response.is_success:
            message = _error_message(response)
            logger.debug(
                "%s %s failed with %d: %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise MattermostApiError(
                f"{method} {path}: {response.status_code} {message}",
                ApiResponse.from_httpx(response),
            )
        if not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------ #
    # Users and teams
    # ------------------------------------------------------------------ #

    def get_me(self) -> User:
        return User.from_dict(self._request("GET", "/users/me"))

    def get_teams_for_user(self, user_id: str) -> list[Team]:
        data = self._request("GET", f"/users/{user_id}/teams")
        return [Team.from_dict(t) for t in data or []]

    # ------------------------------------------------------------------ #
    # Channels
    # ------------------------------------------------------------------ #

    def get_channels_for_team_for_user(
        self, team_id: str, user_id: str
    ) -> list[Channel]:
        """Return every channel the user belongs to in a team.

        The server includes direct and group channels in this listing.
        """
        data = self._request(
            "GET", f"/users/{user_id}/teams/{team_id}/channels"
        )
        return [Channel.from_dict(c) for c in data or []]

    def get_public_channels_for_team(
        self, team_id: str, page: int, per_page: int
    ) -> list[Channel]:
        """Return one page of the team's public channels.

        An empty list marks the end of the listing.
        """
        data = self._request(
            "GET",
            f"/teams/{team_id}/channels",
            params={"page": page, "per_page": per_page},
        )
        return [Channel.from_dict(c) for c in data or []]

    def get_channel_by_name(self, team_id: str, name: str) -> Channel:
        path = f"/teams/{team_id}/channels/name/{quote(name, safe='')}"
        data = self._request("GET", path)
        return Channel.from_dict(data)

    def get_channel_member(
        self, channel_id: str, user_id: str
    ) -> ChannelMember:
        data = self._request(
            "GET", f"/channels/{channel_id}/members/{user_id}"
        )
        return ChannelMember.from_dict(data)

    def add_channel_member(
        self, channel_id: str, user_id: str
    ) -> ChannelMember:
        data = self._request(
            "POST",
            f"/channels/{channel_id}/members",
            json={"user_id": user_id},
        )
        return ChannelMember.from_dict(data)

    def patch_channel(self, channel_id: str, *, header: str) -> Channel:
        data = self._request(
            "PUT", f"/channels/{channel_id}/patch", json={"header": header}
        )
        return Channel.from_dict(data)

    def view_channel(self, user_id: str, channel_id: str) -> None:
        """Mark ``channel_id`` as viewed by ``user_id``."""
        self._request(
            "POST",
            f"/channels/members/{user_id}/view",
            json={"channel_id": channel_id},
        )


def _error_message(response: httpx.Response) -> str:
    """Extract the server's error message, falling back to the reason."""
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase
