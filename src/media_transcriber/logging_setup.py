import logging
from typing import Optional

from .settings import LoggingSettings


def setup_logging(cfg: Optional[LoggingSettings] = None) -> logging.Logger:
    """
    Sets up root logging from the provided configuration.
    """
    level = (cfg.level if cfg else "INFO").upper()
    log_format = cfg.format if cfg else "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(level=level, format=log_format)

    # uvicorn installs its own handlers; keep its access log at our level
    logging.getLogger("uvicorn.access").setLevel(level)

    return logging.getLogger("media_transcriber")
