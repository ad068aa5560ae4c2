"""Decoding of the JSON body the browser extension posts."""
import json
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from timestamps import now_local, parse_timestamp


class PayloadError(ValueError):
    """The request body could not be turned into an AccessRequest."""
    pass


@dataclass
class AccessRequest:
    url: str
    title: str
    timestamp: datetime
    user_email: str
    user_id: str
    pin: str

    def masked(self) -> dict:
        """Loggable view of the request, PIN hidden."""
        return {
            "url": self.url,
            "title": self.title,
            "timestamp": self.timestamp.isoformat(),
            "userEmail": self.user_email,
            "userId": self.user_id,
            "pin": "*" * len(self.pin),
        }


def _field(data: dict, key: str, default: str) -> str:
    value = data.get(key)
    # falsy values get the default, same as an absent key
    return str(value).strip() if value else default


def load_object(body: str) -> dict:
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise PayloadError("JSON body must be an object")
    return data


def parse_body(body: str, tz: ZoneInfo) -> AccessRequest:
    """
    Parse a JSON request body, filling in defaults for missing fields.

    Raises PayloadError for invalid JSON, a non-object body or a timestamp
    that cannot be parsed.
    """
    data = load_object(body)

    raw_ts = data.get("timestamp")
    if raw_ts:
        timestamp = parse_timestamp(raw_ts, tz)
        if timestamp is None:
            raise PayloadError(f"Unparseable timestamp: {raw_ts!r}")
    else:
        timestamp = now_local(tz)

    return AccessRequest(
        url=_field(data, "url", "N/A"),
        title=_field(data, "title", "Untitled Page"),
        timestamp=timestamp,
        user_email=_field(data, "userEmail", "Unknown"),
        user_id=_field(data, "userId", "Unknown"),
        pin=_field(data, "pin", "Not Provided"),
    )
