from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import Request

log = logging.getLogger(__name__)


def load_retry(path: Path) -> list[Request]:
    """Read the requests left pending by the previous run.

    A missing or unreadable file, or one that does not parse back into
    requests, means there is nothing to retry.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError):
        log.warning("ignoring unreadable retry file path=%s", path)
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("ignoring unparseable retry file path=%s", path)
        return []
    if not isinstance(parsed, list):
        log.warning("ignoring unparseable retry file path=%s", path)
        return []
    try:
        return [Request.from_dict(item) for item in parsed]
    except (KeyError, TypeError, ValueError):
        log.warning("ignoring unparseable retry file path=%s", path)
        return []


def store_retry(path: Path, requests: list[Request]) -> None:
    if not requests:
        path.unlink(missing_ok=True)
        return
    payload = [req.to_dict() for req in requests]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
