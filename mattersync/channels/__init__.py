# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Team and channel membership cache.

- RateLimitRetrier: retries remote calls while the server throttles
- ChannelStore: in-memory channel lists with locked lookups
- SyncOrchestrator: refreshes the store from the server
- normalize_name: canonical lookup name of a channel
"""

from mattersync.channels.names import GROUP_TEAM_ID, normalize_name
from mattersync.channels.ratelimit import (
    RateLimitRetrier,
    RetryCancelled,
    RetryState,
)
from mattersync.channels.store import ChannelStore
from mattersync.channels.sync import SyncOrchestrator


__all__ = [
    "GROUP_TEAM_ID",
    "ChannelStore",
    "RateLimitRetrier",
    "RetryCancelled",
    "RetryState",
    "SyncOrchestrator",
    "normalize_name",
]
