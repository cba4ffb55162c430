# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Mattermost REST API transport and payload types."""

from mattersync.api.client import ApiResponse, MattermostApi, MattermostApiError
from mattersync.api.models import (
    Channel,
    ChannelMember,
    ChannelType,
    Team,
    User,
)


__all__ = [
    # client
    "ApiResponse",
    "MattermostApi",
    "MattermostApiError",
    # models
    "Channel",
    "ChannelMember",
    "ChannelType",
    "Team",
    "User",
]
