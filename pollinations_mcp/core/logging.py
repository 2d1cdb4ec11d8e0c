import logging
from typing import Any, Dict, Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("pollinations_mcp")


def configure_logging(cfg: Optional[Dict[str, Any]] = None) -> None:
    """Configure root logging from the `logging` settings section."""
    cfg = cfg or {}
    level = str(cfg.get("level", "INFO")).upper()
    logging.basicConfig(level=level, format=cfg.get("format") or DEFAULT_FORMAT)
    logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
