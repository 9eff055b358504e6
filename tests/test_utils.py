from datetime import datetime, timezone

import pytest

from pulse_chat.shared.utils import (
    INVALID_TIME,
    avatar_url,
    format_display_time,
    parse_timestamp,
    validate_registration,
)


def test_format_display_time_uses_hours_and_minutes():
    assert format_display_time("2024-05-01T14:32:09") == "14:32"
    assert format_display_time("2024-05-01T09:05:00.000") == "09:05"


def test_format_display_time_converts_utc_to_local_time():
    expected = datetime(2024, 5, 1, 14, 32, tzinfo=timezone.utc).astimezone().strftime("%H:%M")
    assert format_display_time("2024-05-01T14:32:00.000Z") == expected


def test_format_display_time_accepts_epoch_milliseconds():
    millis = 1714573920000
    assert format_display_time(millis) == datetime.fromtimestamp(millis / 1000).strftime("%H:%M")


@pytest.mark.parametrize("value", ["not-a-date", "", "   ", None, True, "2024-13-45T99:99:99"])
def test_format_display_time_falls_back_for_invalid_values(value):
    assert format_display_time(value) == INVALID_TIME == "Invalid time"


def test_parse_timestamp_raises_value_error():
    with pytest.raises(ValueError):
        parse_timestamp("not-a-date")


def test_avatar_url_is_stable_per_username():
    assert avatar_url("bob_builder") == avatar_url("bob_builder")
    assert avatar_url("bob_builder") != avatar_url("carol_singer")
    assert avatar_url("bob builder").endswith("seed=bob%20builder")


def test_validate_registration():
    assert validate_registration("alice@example.com", "alice_w", "secret1") == {}
    errors = validate_registration("not-an-email", "bob", "123")
    assert set(errors) == {"email", "username", "password"}
