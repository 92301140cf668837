"""Push-channel message parsing.

Malformed frames are dropped with a warning; the sender gets no reply.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from tabsync._redact import preview_for_log
from tabsync.models.messages import TabUpdate

_logger = logging.getLogger(__name__)


def parse_push_message(raw: str | bytes) -> TabUpdate | None:
    """Decode and validate one client frame.

    Text and binary frames are treated alike; binary payloads must be
    UTF-8 encoded JSON.

    Returns ``None`` (after logging) for anything that is not a usable
    full-replace update.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            _logger.warning("Dropped push message that is not UTF-8 (%s)", preview_for_log(raw))
            return None

    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        _logger.warning("Dropped push message with invalid JSON: %s (%s)", exc, preview_for_log(raw))
        return None

    if not isinstance(payload, dict):
        _logger.warning("Dropped push message that is not an object: %s", preview_for_log(payload))
        return None

    try:
        return TabUpdate.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        _logger.warning("Dropped malformed push message (invalid: %s): %s", fields, preview_for_log(payload))
        return None
