"""JSON encoder/decoder for the socket wire format.

Every frame is one JSON object. Outbound frames are always the plain
``{"name", "data"}`` envelope; inbound frames may also use the
origin-wrapped envelope, which is unwrapped here so the rest of the client
only sees ``InboundEvent``.
"""

import json
from typing import Any

from pydantic import ValidationError

from codegame.errors import DecodeError
from codegame.messaging.types import EventEnvelope, InboundEvent, OriginEnvelope

# Frames above this size are rejected before parsing.
MAX_FRAME_LEN = 1024 * 1024  # 1MB


def encode(name: str, data: dict[str, Any] | None = None) -> str:
    """Encode a command as a JSON text frame. ``data`` is omitted when None."""
    frame: dict[str, Any] = {"name": name}
    if data is not None:
        frame["data"] = data
    return json.dumps(frame)


def decode_json(frame: str | bytes) -> dict[str, Any]:
    """Parse a frame into a JSON object.

    Raises DecodeError if the frame is too large, not valid JSON, or not an object.
    """
    if len(frame) > MAX_FRAME_LEN:
        raise DecodeError(f"frame too large: {len(frame)} bytes (max {MAX_FRAME_LEN})")
    try:
        result = json.loads(frame)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"failed to decode JSON frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected object, got {type(result).__name__}")
    return result


def decode(frame: str | bytes) -> InboundEvent:
    """Decode a frame in either envelope shape into an InboundEvent."""
    raw = decode_json(frame)
    try:
        if "event" in raw and "origin" in raw:
            wrapped = OriginEnvelope.model_validate(raw)
            return InboundEvent(name=wrapped.event.name, data=wrapped.event.data, origin=wrapped.origin)
        envelope = EventEnvelope.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(f"invalid event envelope: {e}") from e
    return InboundEvent(name=envelope.name, data=envelope.data)
