# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for channel name normalization."""

import pytest

from mattersync.api.models import Channel, ChannelType
from mattersync.channels.names import normalize_name


class TestNormalizeName:
    def test_group_separator_replaced_before_spaces(self) -> None:
        channel = Channel(
            id="g1", name="abc123", display_name="A, B C", type=ChannelType.GROUP
        )
        assert normalize_name(channel) == "A-B_C"

    def test_group_result_has_no_commas_or_spaces(self) -> None:
        channel = Channel(
            id="g1",
            name="abc123",
            display_name="alice, bob smith, carol de jong",
            type=ChannelType.GROUP,
        )
        result = normalize_name(channel)
        assert result == "alice-bob_smith-carol_de_jong"
        assert "," not in result
        assert " " not in result

    def test_group_ignores_raw_name(self) -> None:
        channel = Channel(
            id="g1", name="raw", display_name="x, y", type=ChannelType.GROUP
        )
        assert normalize_name(channel) == "x-y"

    @pytest.mark.parametrize(
        "channel_type",
        [ChannelType.OPEN, ChannelType.PRIVATE, ChannelType.DIRECT],
    )
    def test_other_types_use_raw_name(self, channel_type: ChannelType) -> None:
        channel = Channel(
            id="c1",
            name="town square, really",
            display_name="Town Square",
            type=channel_type,
        )
        assert normalize_name(channel) == "town square, really"
