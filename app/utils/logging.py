from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=str(level or "INFO").upper(), format=LOG_FORMAT)
    # Per-request lines come from the "http" logger; werkzeug would duplicate them.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
