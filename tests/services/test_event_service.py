"""
Tests for Event Service.
"""

import pytest
from datetime import date, datetime, timezone
from unittest.mock import patch

from tickets_service.core.exceptions import EventNotFoundError
from tickets_service.services.event_service import date_window

# Wednesday
NOW = datetime(2030, 11, 6, 12, 0, tzinfo=timezone.utc)


class TestDateWindow:

    def test_all_has_no_window(self):
        assert date_window("all", NOW) is None

    def test_today(self):
        assert date_window("today", NOW) == (date(2030, 11, 6), date(2030, 11, 6))

    def test_weekend(self):
        assert date_window("weekend", NOW) == (date(2030, 11, 9), date(2030, 11, 10))

    def test_weekend_on_sunday_is_just_today(self):
        sunday = datetime(2030, 11, 10, 9, 0, tzinfo=timezone.utc)
        assert date_window("weekend", sunday) == (date(2030, 11, 10), date(2030, 11, 10))

    def test_week_runs_to_sunday(self):
        assert date_window("week", NOW) == (date(2030, 11, 6), date(2030, 11, 10))

    def test_next7days(self):
        assert date_window("next7days", NOW) == (date(2030, 11, 6), date(2030, 11, 12))

    def test_month(self):
        assert date_window("month", NOW) == (date(2030, 11, 1), date(2030, 11, 30))

    def test_month_in_december(self):
        december = datetime(2030, 12, 15, tzinfo=timezone.utc)
        assert date_window("month", december) == (date(2030, 12, 1), date(2030, 12, 31))

    def test_unknown_filter(self):
        with pytest.raises(ValueError):
            date_window("fortnight", NOW)


class TestCreateEvent:

    @pytest.mark.asyncio
    async def test_host_becomes_creator(self, events, sample_event_data):
        data = dict(sample_event_data, creator_id="someone-else", id="chosen-id", is_user_created=False)

        event = await events.create_event(data, {"user_id": "host-7", "name": "Host"})

        assert event.id != "chosen-id"
        assert event.creator_id == "host-7"
        assert event.is_user_created is True
        assert event.sold_seats == 0

    @pytest.mark.asyncio
    async def test_get_missing_event(self, events):
        with pytest.raises(EventNotFoundError):
            await events.get_event("missing")


class TestSearchEvents:
    """Test local search filters."""

    @pytest.fixture
    def catalog(self, make_event):
        return {
            "jazz": make_event(
                title="Rooftop Jazz Night", category="music",
                iso_date=datetime(2030, 11, 9, 19, 0, tzinfo=timezone.utc)
            ),
            "pycon": make_event(
                title="Python Meetup", description="Talks about asyncio", category="tech",
                location="Lisbon Hub", iso_date=datetime(2030, 11, 6, 18, 0, tzinfo=timezone.utc)
            ),
            "tapas": make_event(
                title="Tapas Crawl", category="food",
                iso_date=datetime(2030, 12, 20, 20, 0, tzinfo=timezone.utc)
            ),
            "undated": make_event(title="Open Studio", category="arts", iso_date=None),
        }

    @pytest.mark.asyncio
    async def test_no_filters_returns_everything(self, events, catalog):
        results = await events.search_events(now=NOW)

        assert len(results) == 4

    @pytest.mark.asyncio
    async def test_query_matches_any_text_field(self, events, catalog):
        by_description = await events.search_events(query="ASYNCIO", now=NOW)
        by_location = await events.search_events(query="lisbon hub", now=NOW)

        assert [event.id for event in by_description] == [catalog["pycon"].id]
        assert [event.id for event in by_location] == [catalog["pycon"].id]

    @pytest.mark.asyncio
    async def test_category_filter(self, events, catalog):
        results = await events.search_events(category="food", now=NOW)

        assert [event.id for event in results] == [catalog["tapas"].id]

    @pytest.mark.asyncio
    async def test_date_filter_excludes_undated(self, events, catalog):
        today = await events.search_events(date_filter="today", now=NOW)
        weekend = await events.search_events(date_filter="weekend", now=NOW)
        month = await events.search_events(date_filter="month", now=NOW)

        assert [event.id for event in today] == [catalog["pycon"].id]
        assert [event.id for event in weekend] == [catalog["jazz"].id]
        assert {event.id for event in month} == {catalog["pycon"].id, catalog["jazz"].id}

    @pytest.mark.asyncio
    async def test_filters_combine(self, events, catalog):
        results = await events.search_events(query="jazz", category="tech", now=NOW)

        assert results == []

    @pytest.mark.asyncio
    async def test_unknown_category(self, events):
        with pytest.raises(ValueError):
            await events.search_events(category="opera")


class TestUserEventLists:

    @pytest.mark.asyncio
    async def test_hosted_events(self, events, make_event):
        mine = make_event(creator_id="host-1")
        make_event(creator_id="host-2")

        hosted = await events.list_hosted_events("host-1")

        assert [event.id for event in hosted] == [mine.id]

    @pytest.mark.asyncio
    async def test_attending_events_are_distinct(self, events, issuance, make_event, alice):
        issuance.ticketing_config = {"enable_capacity_checks": True, "enable_duplicate_prevention": False}
        first = make_event(title="First", max_seats=None)
        second = make_event(title="Second", max_seats=None)
        make_event(title="Not attending")

        await issuance.join_event(alice, event_id=first.id)
        await issuance.join_event(alice, event_id=second.id)
        await issuance.join_event(alice, event_id=first.id)

        attending = await events.list_attending_events("user-alice")

        assert [event.id for event in attending] == [first.id, second.id]


class TestEventSnapshotCache:

    @pytest.mark.asyncio
    async def test_snapshot_without_cache(self, events, make_event):
        event = make_event()

        snapshot = await events.get_event_snapshot(event.id)

        assert snapshot["id"] == event.id
        assert snapshot["title"] == "Rooftop Jazz Night"

    @pytest.mark.asyncio
    async def test_snapshot_cached_on_miss(self, events, make_event, mock_redis_manager):
        event = make_event()
        events.cache_config = {"enabled": True, "event_ttl": 30}

        with patch("tickets_service.services.event_service.redis_manager", mock_redis_manager):
            snapshot = await events.get_event_snapshot(event.id)

        mock_redis_manager.get_json.assert_called_once_with(f"tickets:event:{event.id}")
        mock_redis_manager.set_json.assert_called_once_with(f"tickets:event:{event.id}", snapshot, ttl=30)

    @pytest.mark.asyncio
    async def test_snapshot_served_from_cache(self, events, mock_redis_manager):
        events.cache_config = {"enabled": True, "event_ttl": 30}
        mock_redis_manager.get_json.return_value = {"id": "cached-1", "title": "Cached"}

        with patch("tickets_service.services.event_service.redis_manager", mock_redis_manager):
            snapshot = await events.get_event_snapshot("cached-1")

        assert snapshot == {"id": "cached-1", "title": "Cached"}
        mock_redis_manager.set_json.assert_not_called()
