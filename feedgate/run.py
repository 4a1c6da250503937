"""Programmatic uvicorn entry point for FeedGate.

Usage:
    python -m feedgate.run     # reads .feedgate/config.yaml
    feedgate                   # via pyproject.toml [project.scripts]

Binds to config.server.host (127.0.0.1 by default). The gate forwards the
organization token on every check, so it is meant to be reachable only by the
feed host on the same machine.
"""

from __future__ import annotations

import uvicorn

from feedgate.config import load_config

# HTTP keep-alive timeout in seconds.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the FeedGate server.

    Raises:
        SystemExit: Propagated from load_config() on config parse errors.
    """
    config = load_config()

    uvicorn.run(
        "feedgate.main:app",
        host=config.server.host,
        port=config.server.port,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
