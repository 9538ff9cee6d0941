import json
import logging
import sys
from datetime import datetime, timezone


_logger = logging.getLogger("partshop.events")


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s", "%Y-%m-%d %H:%M:%S")
        )
        root.addHandler(handler)


def log_event(level: str, event: str, **fields) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": level.lower(),
        "event": event,
    }
    payload.update(fields or {})
    line = json.dumps(payload, ensure_ascii=False, default=str)
    sys.stdout.write(line + "\n")
    _logger.log(getattr(logging, level.upper(), logging.INFO), line)
