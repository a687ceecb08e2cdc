from __future__ import annotations

import json
import logging
import time
import traceback
import uuid
from typing import Any, Mapping, TextIO

from agentronic.storage import RecordStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def make_event(address: str, args: Any) -> dict[str, Any]:
    """Shape of an OSC-style event as agents send it: ``{address, args, timestamp}``."""
    return {"address": address, "args": args, "timestamp": now_ms()}


def welcome_message() -> dict[str, Any]:
    return {
        "type": "connected",
        "message": "Connected to AGENTRONIC real-time sync",
        "timestamp": now_ms(),
    }


def error_message(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


def handle_message(data: Mapping[str, Any], store: RecordStore) -> dict[str, Any] | None:
    """Record one incoming event and build the reply, if its type has one."""
    if not isinstance(data, Mapping):
        raise ValueError("Message must be a JSON object.")
    event_type = data.get("type")
    payload = data.get("data")
    store.insert(
        "real_time_events",
        {
            "agent_id": data.get("agentId"),
            "session_id": data.get("sessionId"),
            "event_type": event_type,
            "event_data": payload,
        },
    )

    if event_type == "midi":
        return {"type": "ack", "eventId": data.get("id"), "timestamp": now_ms()}
    if event_type == "sessionSync":
        params = payload if isinstance(payload, Mapping) else {}
        return {
            "type": "syncConfirm",
            "tempo": params.get("tempo"),
            "timeSignature": params.get("timeSignature"),
        }
    if event_type == "analysis":
        return {"type": "analysisStarted", "analysisId": str(uuid.uuid4())}
    logger.debug("No reply for event type %r", event_type)
    return None


def _send(out: TextIO, message: Mapping[str, Any]) -> None:
    print(json.dumps(message), file=out, flush=True)


def serve_lines(inp: TextIO, out: TextIO, store: RecordStore) -> int:
    """Run the relay over newline-delimited JSON; return the number of events handled."""
    logger.info("Agent connected to real-time sync")
    _send(out, welcome_message())
    handled = 0
    for line in inp:
        if not line.strip():
            continue
        try:
            reply = handle_message(json.loads(line), store)
        except ValueError as exc:
            logger.error("Relay message error: %s", exc)
            logger.debug(traceback.format_exc())
            _send(out, error_message(str(exc)))
            continue
        handled += 1
        if reply is not None:
            _send(out, reply)
    logger.info("Agent disconnected from real-time sync")
    return handled
