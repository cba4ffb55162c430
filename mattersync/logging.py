# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging setup with token redaction.

Library modules log through ``logging.getLogger(__name__)``.  Entry
points call :func:`configure_logging` once; the installed handler runs
every record through :class:`SecretFilter` so that access tokens never
reach the log sink.

Usage:
    from mattersync.logging import configure_logging
    configure_logging(level=logging.DEBUG)
"""

import logging
import re
from typing import ClassVar


class SecretFilter(logging.Filter):
    """Redact registered secrets from log records.

    Secrets are registered process-wide (the client config registers its
    API token on construction).  Each occurrence in the message or in a
    string argument is replaced with ``[REDACTED]``.
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite ``record`` in place.

        Args:
            record: The log record to filter.

        Returns:
            Always True; records are modified, never dropped.
        """
        pattern = self._pattern
        if pattern is None:
            return True
        record.msg = pattern.sub("[REDACTED]", str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: pattern.sub("[REDACTED]", v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    pattern.sub("[REDACTED]", arg)
                    if isinstance(arg, str)
                    else arg
                    for arg in record.args
                )
        return True

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Add ``secret`` to the redaction set.  Empty strings are ignored."""
        if secret:
            cls._secrets.add(secret)
            cls._rebuild_pattern()

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget all registered secrets.  Used by tests."""
        cls._secrets.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        # Longest first so a secret containing another is redacted whole.
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile("|".join(re.escape(s) for s in ordered))


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_secret_filter: bool = True,
) -> None:
    """Configure the root logger.

    Replaces any handlers already installed on the root logger with a
    single stream handler.

    Args:
        level: Root logger level.
        format_string: Log format.  Defaults to timestamp, logger name,
            level and message.
        add_secret_filter: Attach :class:`SecretFilter` to the handler.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string))
    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)
