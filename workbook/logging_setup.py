import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts. Library code only uses getLogger(__name__)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
