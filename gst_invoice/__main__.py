"""Module entrypoint for running the invoice API server."""

from __future__ import annotations

import sys

from .config import HOST, PORT
from .log import configure_logging
from .render_pool import DependencyError
from .server import ConfigurationError, run


def main() -> None:
    configure_logging()
    try:
        run(HOST, PORT)
    except (DependencyError, ConfigurationError) as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
