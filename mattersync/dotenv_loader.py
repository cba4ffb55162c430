# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""One-shot ``.env`` loading for client configuration.

Two files are consulted, in order:

1. ``~/.config/mattersync/.env`` (next to ``mattersync.yaml``)
2. ``.env`` in the current working directory

``python-dotenv`` never overwrites variables that are already set, so
the real environment wins over both files and the XDG file wins over the
working directory one.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

_dotenv_loaded = False


def load_dotenv_once() -> None:
    """Load the ``.env`` files unless that already happened."""
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    from mattersync.config import get_dotenv_path

    xdg_env = get_dotenv_path()
    if xdg_env.exists():
        load_dotenv(xdg_env)
        logger.debug("Loaded .env from %s", xdg_env)

    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(cwd_env)
        logger.debug("Loaded .env from %s", cwd_env)

    _dotenv_loaded = True


def reset_dotenv_state() -> None:
    """Allow the next call to load again.  For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False
