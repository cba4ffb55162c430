# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Canonical channel names used as lookup keys."""

from mattersync.api.models import Channel, ChannelType


#: Team ID reported for group channels, which belong to no team.
GROUP_TEAM_ID = "G"


def normalize_name(channel: Channel) -> str:
    """Return the name under which ``channel`` is looked up.

    Group channels have generated names, so their display name (the
    member list, e.g. ``"alice, bob smith"``) is turned into a key:
    ``", "`` becomes ``-`` first, then remaining spaces become ``_``
    (``"alice-bob_smith"``).  Every other channel uses its raw name.
    """
    if channel.type is ChannelType.GROUP:
        res = channel.display_name.replace(", ", "-")
        return res.replace(" ", "_")
    return channel.name
