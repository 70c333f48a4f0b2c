# releasenotes package init
import logging
import os


def _configure_logging() -> None:
    level_name = (os.getenv("RELEASENOTES_LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logger = logging.getLogger("releasenotes")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[RELEASENOTES][%(levelname)s] %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)

    upstream_level_name = (os.getenv("RELEASENOTES_UPSTREAM_LOG_LEVEL") or level_name).upper()
    upstream_level = getattr(logging, upstream_level_name, level)
    logging.getLogger("releasenotes.upstream").setLevel(upstream_level)


_configure_logging()
