import json
import logging
import os
import sys
from datetime import datetime, timezone


# One JSON object per line on stderr; stdout is reserved for the run summary
logging.basicConfig(
    level=os.environ.get("FEED_LOG_LEVEL", "INFO").upper(),
    stream=sys.stderr,
    format="%(message)s",
)

logger = logging.getLogger("bonikbarta_feed")


def log_event(event: str, **fields):
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        **fields,
    }

    logger.info(json.dumps(payload, ensure_ascii=False, default=str))
