"""Console logging with secret redaction for CI runs."""

from __future__ import annotations

import logging
from collections.abc import Iterable

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class SafeLogFilter(logging.Filter):
    """Replace configured secrets in every formatted record with `***`."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self.secrets = [value for value in secrets if value]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        for secret in self.secrets:
            message = message.replace(secret, "***")
        record.msg = message
        record.args = ()
        return True


def setup_logging(*, verbose: bool = False, secrets: Iterable[str] = ()) -> None:
    """Configure root logging to stderr; `verbose` enables DEBUG."""
    handler = logging.StreamHandler()
    handler.addFilter(SafeLogFilter(secrets))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )
