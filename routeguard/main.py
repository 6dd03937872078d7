"""Main entrypoint for the routeguard CLI."""
from __future__ import annotations

import os

from routeguard.cli.app import app
from routeguard.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def main() -> None:
    configure_logging(level=os.environ.get("ROUTEGUARD_LOG_LEVEL", "WARNING"))
    app()


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
