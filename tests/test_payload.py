"""Tests for request body parsing."""
import json
from datetime import datetime, timezone

import pytest

from payload import PayloadError, load_object, parse_body


class TestParseBody:
    """Tests for parse_body."""

    def test_all_fields(self, tz):
        body = json.dumps({
            "url": "https://example.com",
            "title": "Ex",
            "timestamp": "2026-10-18T17:00:00Z",
            "userEmail": "a@b.com",
            "userId": "u1",
            "pin": "1234",
        })
        req = parse_body(body, tz)
        assert req.url == "https://example.com"
        assert req.title == "Ex"
        assert req.timestamp == datetime(2026, 10, 18, 17, 0, tzinfo=timezone.utc)
        assert req.user_email == "a@b.com"
        assert req.user_id == "u1"
        assert req.pin == "1234"

    def test_defaults(self, tz):
        req = parse_body("{}", tz)
        assert req.url == "N/A"
        assert req.title == "Untitled Page"
        assert req.user_email == "Unknown"
        assert req.user_id == "Unknown"
        assert req.pin == "Not Provided"
        assert req.timestamp.tzinfo is not None

    def test_numeric_pin(self, tz):
        assert parse_body('{"pin": 1234}', tz).pin == "1234"

    def test_invalid_json(self, tz):
        with pytest.raises(PayloadError, match="Invalid JSON"):
            parse_body("{not json", tz)

    def test_non_object(self, tz):
        with pytest.raises(PayloadError):
            parse_body("[1, 2]", tz)

    def test_bad_timestamp(self, tz):
        with pytest.raises(PayloadError, match="timestamp"):
            parse_body('{"timestamp": "whenever"}', tz)

    def test_masked_hides_pin(self, tz):
        masked = parse_body('{"pin": "1234"}', tz).masked()
        assert masked["pin"] == "****"


def test_load_object():
    assert load_object('{"pin": "1"}') == {"pin": "1"}
