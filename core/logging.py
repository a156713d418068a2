import logging

from core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # Client libraries log every request at INFO
    for name in ("httpx", "httpcore", "openai", "hpack"):
        logging.getLogger(name).setLevel(logging.WARNING)
