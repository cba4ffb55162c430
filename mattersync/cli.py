# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command-line entry point: connect and print the channel cache."""

import argparse
import logging
import signal
import sys
from pathlib import Path

import httpx

from mattersync.api.client import MattermostApiError
from mattersync.channels.names import normalize_name
from mattersync.channels.ratelimit import RetryCancelled
from mattersync.client import MatterClient
from mattersync.config import ClientConfig, ConfigError
from mattersync.logging import configure_logging


logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0=success, 1=config error, 2=API error).
    """
    parser = argparse.ArgumentParser(
        description="Mattermost channel membership cache",
        epilog="Connects, synchronizes all teams and lists the channels.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to mattersync.yaml (default: XDG config directory)",
    )
    parser.add_argument(
        "--more",
        action="store_true",
        help="Also list public channels that are not joined",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        config = ClientConfig.from_yaml(args.config)
    except (ConfigError, ValueError) as e:
        logger.critical("Configuration error: %s", e)
        return 1

    with MatterClient(config) as client:

        def shutdown_handler(signum: int, frame: object) -> None:
            logger.info("Received signal %d, cancelling...", signum)
            client.cancel()

        signal.signal(signal.SIGINT, shutdown_handler)
        signal.signal(signal.SIGTERM, shutdown_handler)

        try:
            client.connect()
        except ConfigError as e:
            logger.critical("Configuration error: %s", e)
            return 1
        except (MattermostApiError, RetryCancelled, httpx.HTTPError) as e:
            logger.error("Synchronization failed: %s", e)
            return 2

        for channel in client.get_channels():
            _print_channel(client, channel.id)
        if args.more:
            for channel in client.get_more_channels():
                _print_channel(client, channel.id, joined=False)
    return 0


def _print_channel(
    client: MatterClient, channel_id: str, joined: bool = True
) -> None:
    channel = client.store.find_by_id(channel_id)
    if channel is None:
        return
    marker = "*" if joined else " "
    team = client.get_team_from_channel(channel_id) or "-"
    print(
        f"{marker} {team:<26} {channel.type.value} "
        f"{channel.id:<26} {normalize_name(channel)}"
    )


if __name__ == "__main__":
    sys.exit(main())
