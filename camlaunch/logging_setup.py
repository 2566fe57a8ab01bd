"""CLI logging setup: plain %(message)s format on stdout."""

import logging
import sys

from camlaunch.redact import SecretRedactingFilter


def setup_cli_logging(level=logging.INFO):
    """Configure the root logger for the launcher CLI.

    The redaction filter sits on the handler rather than the root logger,
    so records propagated from module loggers are masked too.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
