"""Tests for calendar connection models."""

from datetime import datetime, timedelta, timezone

import pytest

from eventsync.models.calendar import StoredCredentials


class TestNeedsRefresh:
    def test_missing_access_token(self):
        assert StoredCredentials(refresh_token="r").needs_refresh()

    def test_unknown_expiry_is_trusted(self):
        assert not StoredCredentials(access_token="a").needs_refresh()

    @pytest.mark.parametrize(
        "expires_in, expected",
        [
            (timedelta(hours=1), False),
            (timedelta(seconds=30), True),
            (timedelta(minutes=-5), True),
        ],
    )
    def test_expiry_with_leeway(self, expires_in, expected):
        credentials = StoredCredentials(
            access_token="a", token_expires_at=datetime.now(timezone.utc) + expires_in
        )
        assert credentials.needs_refresh() is expected

    def test_naive_expiry_is_utc(self):
        expires = (datetime.now(timezone.utc) + timedelta(hours=1)).replace(tzinfo=None)
        credentials = StoredCredentials(access_token="a", token_expires_at=expires)
        assert not credentials.needs_refresh()


def test_connection_repr_hides_tokens(connection_factory):
    connection = connection_factory.make()

    text = repr(connection)

    assert connection.access_token not in text
    assert connection.refresh_token not in text
    assert str(connection) == text


def test_event_visibility(event_factory):
    assert event_factory.make().is_publicly_visible
    assert not event_factory.make({"is_published": False}).is_publicly_visible
    assert not event_factory.make({"status": "rejected"}).is_publicly_visible
